"""
Path resolution module.

Components:
    - classify_media(): Kind, hash and extension of a media url
    - resolve_path(): Absolute destination path for a media item
    - sanitize_name(): Make display names safe as path components
"""

from gallery_core.paths.resolver import (
    ORGANIZE_MODES,
    UNKNOWN_USER,
    MediaClassification,
    build_filename,
    classify_media,
    resolve_path,
    sanitize_name,
)

__all__ = [
    "ORGANIZE_MODES",
    "UNKNOWN_USER",
    "MediaClassification",
    "build_filename",
    "classify_media",
    "resolve_path",
    "sanitize_name",
]
