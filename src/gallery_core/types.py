"""
Core types shared across modules.

Kept in a leaf module so that errors, download and paths can all import the
enums without circular imports.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that may succeed later
                   (e.g., 429 rate limiting, network timeouts)
        AUTH: Bad or expired access token (401). Fatal, never retried,
              since token lifecycle is managed outside this tool.
        PERMANENT: Failures that won't succeed on retry
                   (e.g., 404, malformed URLs, disk full)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class MediaKind(Enum):
    """Kind of media, inferred from the URL host."""

    IMAGE = "image"
    VIDEO = "video"


__all__ = [
    "ErrorCategory",
    "MediaKind",
]
