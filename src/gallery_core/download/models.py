"""
Data models for media download operations.

Defines clean input/output models for the MediaDownloader interface:
- DownloadTask: What to download and where to put it
- DownloadOutcome: Terminal classification of one download attempt
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

from gallery_core.types import ErrorCategory

DEFAULT_TIMEOUT_SECONDS = 30


class DownloadStatus(Enum):
    """Terminal status of a download attempt."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class MediaSource(Protocol):
    """Anything with a url and an optional creation time (e.g. a queued MediaItem)."""

    url: str
    created: Optional[datetime]


@dataclass
class DownloadTask:
    """
    One media download: source url, destination and deadline.

    Attributes:
        url: URL to download from
        destination: Path where the file should be saved
        timeout: Hard total timeout in seconds for the request and body
        created: When set, applied to the file's atime/mtime after success
    """

    url: str
    destination: Path
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    created: Optional[datetime] = None


@dataclass
class DownloadOutcome:
    """
    Result of a media download.

    Success case:
        status=SUCCESS, file_path set, reason None

    Skipped / failed case:
        status=SKIPPED or FAILED, reason and error_category set, file_path None

    Attributes:
        status: Terminal status
        reason: Short machine-friendly reason ("invalid-url", "http-status:404",
            "timeout", "filesystem: ...", "transport: ...", "unexpected: ...")
        file_path: Path to downloaded file (None unless SUCCESS)
        bytes_downloaded: Number of bytes written to disk
        content_type: MIME type from Content-Type header
        status_code: HTTP status code (None for connection errors)
        error_category: Error classification (None on success)
    """

    status: DownloadStatus
    reason: Optional[str] = None
    file_path: Optional[Path] = None
    bytes_downloaded: int = 0
    content_type: Optional[str] = None
    status_code: Optional[int] = None
    error_category: Optional[ErrorCategory] = None

    @property
    def success(self) -> bool:
        return self.status is DownloadStatus.SUCCESS

    @classmethod
    def success_outcome(
        cls,
        file_path: Path,
        bytes_downloaded: int,
        content_type: Optional[str],
        status_code: int = 200,
    ) -> "DownloadOutcome":
        return cls(
            status=DownloadStatus.SUCCESS,
            file_path=file_path,
            bytes_downloaded=bytes_downloaded,
            content_type=content_type,
            status_code=status_code,
        )

    @classmethod
    def skipped(
        cls,
        reason: str,
        status_code: Optional[int] = None,
        error_category: ErrorCategory = ErrorCategory.PERMANENT,
    ) -> "DownloadOutcome":
        """
        Create a skipped outcome.

        Used when the item itself is unusable: a malformed url or a non-200
        response from the media host.
        """
        return cls(
            status=DownloadStatus.SKIPPED,
            reason=reason,
            status_code=status_code,
            error_category=error_category,
        )

    @classmethod
    def failed(
        cls,
        reason: str,
        error_category: ErrorCategory = ErrorCategory.TRANSIENT,
        status_code: Optional[int] = None,
    ) -> "DownloadOutcome":
        """
        Create a failed outcome.

        Used for timeouts, connection failures and filesystem errors.
        """
        return cls(
            status=DownloadStatus.FAILED,
            reason=reason,
            status_code=status_code,
            error_category=error_category,
        )


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "DownloadStatus",
    "DownloadTask",
    "DownloadOutcome",
    "MediaSource",
]
