"""
Media downloader with a clean interface.

Provides MediaDownloader, which orchestrates:
- URL validation (no network call for unusable urls)
- Opening the destination before the request is issued
- Streaming the body to disk under a hard per-item deadline
- Partial-file cleanup and outcome classification

Clean interface: DownloadTask -> DownloadOutcome. The downloader never
retries and never touches the queue; it only classifies.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import BinaryIO, Mapping, Optional

import aiohttp

from gallery_core.download.http_client import DEFAULT_MEDIA_HEADERS, create_session
from gallery_core.download.models import (
    DEFAULT_TIMEOUT_SECONDS,
    DownloadOutcome,
    DownloadTask,
    MediaSource,
)
from gallery_core.download.streaming import (
    CHUNK_SIZE,
    StreamDownloadError,
    StreamErrorKind,
    download_to_open_file,
)
from gallery_core.errors.exceptions import ErrorCategory, classify_os_error

logger = logging.getLogger(__name__)

MEDIA_DOMAIN_MARKER = "groupme.com"


def is_valid_media_url(url: object) -> bool:
    """A media url is a non-empty string pointing at the service's domain."""
    return isinstance(url, str) and bool(url) and MEDIA_DOMAIN_MARKER in url


def _open_destination(destination: Path) -> BinaryIO:
    destination.parent.mkdir(parents=True, exist_ok=True)
    return open(destination, "wb")


def _close_destination(file_obj: BinaryIO) -> Optional[OSError]:
    try:
        file_obj.close()
    except OSError as e:
        return e
    return None


def _remove_partial(destination: Path) -> None:
    try:
        destination.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(
            "Could not remove partial file",
            extra={"destination_path": str(destination), "error_message": str(e)},
        )


class MediaDownloader:
    """
    Downloads one media item at a time into a resolved destination.

    Use a shared session for a whole drain to reuse connections; when no
    session is given, one is created per call and closed afterwards.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        headers: Mapping[str, str] | None = None,
        max_connections: int = 100,
        max_connections_per_host: int = 10,
        chunk_size: int = CHUNK_SIZE,
    ):
        self._session = session
        self._headers = dict(headers) if headers is not None else dict(DEFAULT_MEDIA_HEADERS)
        self._max_connections = max_connections
        self._max_connections_per_host = max_connections_per_host
        self._chunk_size = chunk_size

    async def download_item(
        self,
        item: MediaSource,
        destination: Path | str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> DownloadOutcome:
        """Download a queued media item to its resolved destination."""
        task = DownloadTask(
            url=item.url,
            destination=Path(destination),
            timeout=timeout,
            created=getattr(item, "created", None),
        )
        return await self.download(task)

    async def download(self, task: DownloadTask) -> DownloadOutcome:
        """Download with validation, cleanup and outcome classification."""
        # Step 1: Validate URL
        if not is_valid_media_url(task.url):
            logger.debug("Skipping invalid media url", extra={"download_url": str(task.url)[:120]})
            return DownloadOutcome.skipped("invalid-url")

        # Step 2: Open the destination before any network traffic
        try:
            file_obj = await asyncio.to_thread(_open_destination, task.destination)
        except OSError as e:
            return DownloadOutcome.failed(
                f"filesystem: {e}",
                error_category=classify_os_error(e),
            )

        # Step 3: Stream the body
        session = self._session
        should_close_session = False
        t_dl = time.perf_counter()
        try:
            if session is None:
                session = create_session(
                    max_connections=self._max_connections,
                    max_connections_per_host=self._max_connections_per_host,
                )
                should_close_session = True

            try:
                result, error = await download_to_open_file(
                    url=task.url,
                    file_obj=file_obj,
                    session=session,
                    timeout=task.timeout,
                    headers=self._headers,
                    chunk_size=self._chunk_size,
                    allow_redirects=False,
                )
            finally:
                close_error = await asyncio.to_thread(_close_destination, file_obj)
        except BaseException:
            # Cancelled mid-write: don't leave a truncated file behind
            await asyncio.to_thread(_remove_partial, task.destination)
            raise
        finally:
            if should_close_session and session:
                await session.close()
                await asyncio.sleep(0)

        # A failed flush on close leaves an incomplete file behind
        if close_error is not None and error is None:
            result, error = None, StreamDownloadError(
                kind=StreamErrorKind.FILESYSTEM,
                status_code=None,
                error_message=str(close_error),
                error_category=classify_os_error(close_error),
            )

        dl_ms = int((time.perf_counter() - t_dl) * 1000)

        # Step 4: Classify
        if error:
            await asyncio.to_thread(_remove_partial, task.destination)
            outcome = self._outcome_from_error(
                error.kind, error.error_message, error.error_category, error.status_code
            )
            log_level = logging.WARNING if error.kind is StreamErrorKind.TIMEOUT else logging.DEBUG
            logger.log(
                log_level,
                f"Download not completed in {dl_ms}ms: {outcome.reason}",
                extra={
                    "download_url": task.url[:120],
                    "timeout_seconds": task.timeout,
                    "status_code": error.status_code,
                    "outcome": outcome.status.value,
                    "reason": outcome.reason,
                },
            )
            return outcome

        # Step 5: Apply the message timestamp to the file
        if task.created is not None:
            await asyncio.to_thread(self._apply_timestamp, task.destination, task.created.timestamp())

        logger.debug(
            f"Download completed in {dl_ms}ms",
            extra={
                "download_url": task.url[:120],
                "destination_path": str(task.destination),
                "bytes_downloaded": result.bytes_written,
                "content_type": result.content_type,
            },
        )
        return DownloadOutcome.success_outcome(
            file_path=task.destination,
            bytes_downloaded=result.bytes_written,
            content_type=result.content_type,
            status_code=result.status_code,
        )

    @staticmethod
    def _outcome_from_error(
        kind: StreamErrorKind,
        message: str,
        category: ErrorCategory,
        status_code: Optional[int],
    ) -> DownloadOutcome:
        if kind is StreamErrorKind.HTTP_STATUS:
            return DownloadOutcome.skipped(
                f"http-status:{status_code}",
                status_code=status_code,
                error_category=category,
            )
        if kind is StreamErrorKind.TIMEOUT:
            return DownloadOutcome.failed("timeout", error_category=category)
        return DownloadOutcome.failed(f"{kind.value}: {message}", error_category=category)

    @staticmethod
    def _apply_timestamp(destination: Path, timestamp: float) -> None:
        try:
            os.utime(destination, (timestamp, timestamp))
        except (OSError, OverflowError, ValueError) as e:
            logger.warning(
                "Could not set file timestamp",
                extra={"destination_path": str(destination), "error_message": str(e)},
            )


__all__ = ["MediaDownloader", "is_valid_media_url"]
