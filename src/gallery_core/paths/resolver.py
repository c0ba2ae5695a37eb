"""
Path resolution for downloaded media.

Everything here is pure: no filesystem access, so the same inputs always
produce the same path and callers can decide "already downloaded?" by
checking the resolved path themselves.

The path structure follows the pattern:
    {base_dir}/{group}/{user}-{hash}{ext}                  (organize="flat")
    {base_dir}/{group}/{YYYY}/{MM-MonthName}/{filename}    (organize="date")
    {base_dir}/{group}/{user}/{filename}                   (organize="user")

Media kind is decided by the url host; the hash and extension come from the
url itself.
"""

import calendar
import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse

from gallery_core.types import MediaKind

UNKNOWN_USER = "UnknownUser"
UNKNOWN_HASH = "unknown"
UNNAMED_GROUP = "unnamed-group"
UNDATED_FOLDER = "undated"

ORGANIZE_MODES = ("flat", "date", "user")

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*&]')

# Host -> kind. Any host not listed is treated as video.
HOST_KINDS: dict[str, MediaKind] = {
    "i.groupme.com": MediaKind.IMAGE,
}


@dataclass(frozen=True)
class KindRule:
    extension_pattern: re.Pattern
    default_extension: str


KIND_RULES: dict[MediaKind, KindRule] = {
    MediaKind.IMAGE: KindRule(re.compile(r"\.(png|jpeg|jpg|gif|bmp|webp)"), ".jpg"),
    MediaKind.VIDEO: KindRule(re.compile(r"\.(mp4|mov|wmv|mkv|webm)"), ".mp4"),
}

# Hash runs never span a path separator
_IMAGE_HASH = re.compile(r"([^/\\]{32})\s*$")
_LAST_SEGMENT = re.compile(r"([^/\\]+)$")


class ResolvableItem(Protocol):
    url: str
    user: str
    created: Optional[datetime]


@dataclass(frozen=True)
class MediaClassification:
    """What a media url is and how its file should be named."""

    kind: MediaKind
    hash: str
    extension: str


def sanitize_name(name: Optional[str]) -> str:
    """
    Make a display name safe for use as a path component.

    Trims surrounding whitespace and replaces each of < > : " / \\ | ? * &
    with an underscore. Spaces inside the name are kept.

    Examples:
        >>> sanitize_name("  Road Trip: 2019 ")
        'Road Trip_ 2019'
        >>> sanitize_name("Tom & Jerry")
        'Tom _ Jerry'
    """
    if not name:
        return ""
    return _UNSAFE_CHARS.sub("_", name.strip())


def _safe_component(name: Optional[str], fallback: str) -> str:
    """Sanitize into a single path component. Names made only of dots use the fallback."""
    cleaned = sanitize_name(name)
    return cleaned if cleaned.strip(".") else fallback


def media_kind_for_url(url: str) -> MediaKind:
    """Look up the media kind from the url host."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        host = ""
    return HOST_KINDS.get(host, MediaKind.VIDEO)


def _extract_hash(url: str, kind: MediaKind) -> str:
    if kind is MediaKind.IMAGE:
        match = _IMAGE_HASH.search(url)
        return _safe_component(match.group(1), UNKNOWN_HASH) if match else UNKNOWN_HASH

    match = _LAST_SEGMENT.search(url)
    if not match:
        return UNKNOWN_HASH
    return _safe_component(match.group(1).split(".")[0], UNKNOWN_HASH)


def _extract_extension(url: str, kind: MediaKind) -> str:
    rule = KIND_RULES[kind]
    match = rule.extension_pattern.search(url)
    return f".{match.group(1)}" if match else rule.default_extension


def classify_media(url: str) -> MediaClassification:
    """
    Classify a media url into kind, hash and file extension.

    Examples:
        >>> classify_media("https://i.groupme.com/1024x768.jpeg." + "a" * 32).extension
        '.jpeg'
        >>> classify_media("https://v.groupme.com/1/2020/clip.1280x720r90.mp4").hash
        'clip'
    """
    kind = media_kind_for_url(url)
    return MediaClassification(
        kind=kind,
        hash=_extract_hash(url, kind),
        extension=_extract_extension(url, kind),
    )


def _user_component(user: Optional[str]) -> str:
    return _safe_component(user, UNKNOWN_USER).replace(" ", "_")


def build_filename(item: ResolvableItem) -> str:
    """Build the ``{user}-{hash}{ext}`` filename for an item."""
    media = classify_media(item.url)
    return f"{_user_component(item.user)}-{media.hash}{media.extension}"


def _date_folders(created: Optional[datetime]) -> tuple[str, ...]:
    if created is None:
        return (UNDATED_FOLDER,)
    return (f"{created.year:04d}", f"{created.month:02d}-{calendar.month_name[created.month]}")


def resolve_path(
    base_dir: str | os.PathLike,
    group_name: str,
    item: ResolvableItem,
    organize: str = "flat",
) -> Path:
    """
    Resolve the absolute destination path for a media item.

    Args:
        base_dir: Output root (made absolute, not required to exist)
        group_name: Group display name; sanitized into the group folder
        item: Item with url, user and created
        organize: "flat", "date" (year/month folders) or "user" (per-poster folders)

    Returns:
        Absolute Path of the destination file

    Raises:
        ValueError: Unknown organize mode
    """
    if organize not in ORGANIZE_MODES:
        raise ValueError(f"Unknown organize mode {organize!r}, expected one of {ORGANIZE_MODES}")

    group_folder = _safe_component(group_name, UNNAMED_GROUP)
    parts: tuple[str, ...] = (group_folder,)

    if organize == "date":
        parts += _date_folders(item.created)
    elif organize == "user":
        parts += (_user_component(item.user),)

    return Path(os.path.abspath(base_dir)).joinpath(*parts, build_filename(item))


__all__ = [
    "HOST_KINDS",
    "KIND_RULES",
    "ORGANIZE_MODES",
    "UNKNOWN_USER",
    "MediaClassification",
    "sanitize_name",
    "media_kind_for_url",
    "classify_media",
    "build_filename",
    "resolve_path",
]
