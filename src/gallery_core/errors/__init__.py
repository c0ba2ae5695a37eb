"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- GalleryError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from gallery_core.errors.exceptions import (
    # Auth / transport
    AuthError,
    ConfigurationError,
    # Enums
    ErrorCategory,
    GalleryError,
    GroupNotFoundError,
    PermanentError,
    # Transient errors
    ThrottlingError,
    TransientError,
    TransportError,
    # Classification utilities
    classify_http_status,
    classify_os_error,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "GalleryError",
    "TransientError",
    "PermanentError",
    # Concrete errors
    "AuthError",
    "ThrottlingError",
    "TransportError",
    "GroupNotFoundError",
    "ConfigurationError",
    # Classification utilities
    "classify_http_status",
    "classify_os_error",
]
