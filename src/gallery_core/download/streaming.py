"""
Streaming download into an already-open file.

The destination is opened by the caller before the request is issued, so
filesystem problems surface before any network traffic. Chunks are written
as they arrive; nothing larger than one chunk is held in memory.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Mapping, Optional

import aiohttp

from gallery_core.errors.exceptions import (
    ErrorCategory,
    classify_http_status,
    classify_os_error,
)

CHUNK_SIZE = 256 * 1024  # media files are small; 256KB keeps writes cheap


class StreamErrorKind(Enum):
    """Where a streaming download broke."""

    HTTP_STATUS = "http-status"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    FILESYSTEM = "filesystem"


@dataclass
class StreamDownloadError:
    """
    Error result from a failed streaming download.

    Attributes:
        kind: Where the failure happened
        status_code: HTTP status code if received
        error_message: Error description
        error_category: Classification for retry decisions
    """

    kind: StreamErrorKind
    status_code: Optional[int]
    error_message: str
    error_category: ErrorCategory


@dataclass
class DownloadToFileResult:
    """
    Result from download_to_open_file.

    Attributes:
        bytes_written: Number of bytes written to file
        content_type: MIME type from Content-Type header
        status_code: HTTP status code
    """

    bytes_written: int
    content_type: Optional[str]
    status_code: int = 200


async def download_to_open_file(
    url: str,
    file_obj: BinaryIO,
    session: aiohttp.ClientSession,
    timeout: float,
    headers: Optional[Mapping[str, str]] = None,
    chunk_size: int = CHUNK_SIZE,
    allow_redirects: bool = False,
) -> tuple[Optional[DownloadToFileResult], Optional[StreamDownloadError]]:
    """
    GET a URL and stream the body into an open binary file.

    The timeout is a hard total deadline covering connect, headers and body.
    No retries; the caller only classifies.

    Args:
        url: URL to download
        file_obj: File opened for binary writing (caller closes it)
        session: aiohttp ClientSession (caller manages lifecycle)
        timeout: Total timeout in seconds
        headers: Extra request headers
        chunk_size: Size of chunks in bytes
        allow_redirects: Follow 3xx responses (default: False, so a redirect
            surfaces as a non-200 status instead of saving another host's body)

    Returns:
        Tuple of (DownloadToFileResult, None) on success
        or (None, StreamDownloadError) on failure

    Example:
        with open(path, "wb") as f:
            result, error = await download_to_open_file(url, f, session, timeout=30)
        if error:
            path.unlink(missing_ok=True)
    """
    try:
        async with session.get(
            url,
            headers=dict(headers) if headers else None,
            timeout=aiohttp.ClientTimeout(total=timeout),
            allow_redirects=allow_redirects,
        ) as response:
            if response.status != 200:
                return None, StreamDownloadError(
                    kind=StreamErrorKind.HTTP_STATUS,
                    status_code=response.status,
                    error_message=f"HTTP {response.status}",
                    error_category=classify_http_status(response.status),
                )

            content_type = response.headers.get("Content-Type")
            bytes_written = 0
            async for chunk in response.content.iter_chunked(chunk_size):
                # Use asyncio.to_thread for disk I/O to avoid blocking event loop
                await asyncio.to_thread(file_obj.write, chunk)
                bytes_written += len(chunk)

            return DownloadToFileResult(
                bytes_written=bytes_written,
                content_type=content_type,
                status_code=response.status,
            ), None

    # ServerTimeoutError is both a TimeoutError and a ClientError; timeouts first
    except asyncio.TimeoutError:
        return None, StreamDownloadError(
            kind=StreamErrorKind.TIMEOUT,
            status_code=None,
            error_message=f"Download timeout after {timeout}s",
            error_category=ErrorCategory.TRANSIENT,
        )

    except aiohttp.ClientError as e:
        # Connection errors, DNS failures, payload errors after headers
        return None, StreamDownloadError(
            kind=StreamErrorKind.TRANSPORT,
            status_code=None,
            error_message=str(e) or type(e).__name__,
            error_category=ErrorCategory.TRANSIENT,
        )

    except OSError as e:
        return None, StreamDownloadError(
            kind=StreamErrorKind.FILESYSTEM,
            status_code=None,
            error_message=str(e),
            error_category=classify_os_error(e),
        )


__all__ = [
    "CHUNK_SIZE",
    "StreamErrorKind",
    "StreamDownloadError",
    "DownloadToFileResult",
    "download_to_open_file",
]
