"""
Media download module.

Provides:
- MediaDownloader: validate, open, stream and classify one media item
- DownloadTask / DownloadOutcome / DownloadStatus: interface models
- create_session: shared aiohttp session factory
- download_to_open_file: low-level streaming into an open file
"""

from gallery_core.download.downloader import MediaDownloader, is_valid_media_url
from gallery_core.download.http_client import DEFAULT_MEDIA_HEADERS, create_session
from gallery_core.download.models import (
    DEFAULT_TIMEOUT_SECONDS,
    DownloadOutcome,
    DownloadStatus,
    DownloadTask,
)
from gallery_core.download.streaming import (
    CHUNK_SIZE,
    DownloadToFileResult,
    StreamDownloadError,
    StreamErrorKind,
    download_to_open_file,
)

__all__ = [
    # Main interface
    "MediaDownloader",
    "is_valid_media_url",
    "DownloadTask",
    "DownloadOutcome",
    "DownloadStatus",
    "DEFAULT_TIMEOUT_SECONDS",
    # HTTP session
    "DEFAULT_MEDIA_HEADERS",
    "create_session",
    # Streaming
    "CHUNK_SIZE",
    "StreamErrorKind",
    "StreamDownloadError",
    "DownloadToFileResult",
    "download_to_open_file",
]
