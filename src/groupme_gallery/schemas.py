"""
Queue and listing schemas.

Contains Pydantic models for everything that is persisted in the queue file
or handed between the listing builder, the scheduler and the downloader.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gallery_core.paths import UNKNOWN_USER


class MediaItem(BaseModel):
    """One media attachment waiting to be downloaded.

    Identity is the url: two items with the same url are the same item.

    Attributes:
        url: Absolute media url
        user: Sanitized display name of the poster
        created: When the message carrying the attachment was posted
        source_message_id: Id of that message

    Example:
        >>> item = MediaItem(
        ...     url="https://i.groupme.com/640x480.jpeg.0123456789abcdef0123456789abcdef",
        ...     user="Alice",
        ...     source_message_id="1234",
        ... )
        >>> item.created is None
        True
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Absolute media url")
    user: str = Field(default=UNKNOWN_USER, description="Sanitized poster name")
    created: datetime | None = Field(default=None, description="Message timestamp")
    source_message_id: str = Field(default="", description="Id of the source message")

    @field_validator("user")
    @classmethod
    def default_blank_user(cls, v: str) -> str:
        return v if v and v.strip() else UNKNOWN_USER


class GroupState(BaseModel):
    """Persisted download queue for one group.

    ``media`` is the ordered pending sequence, newest first. ``listed_at`` is
    set once the listing has populated the state; a listed group with an
    empty ``media`` list is fully drained.
    """

    group_id: str = Field(..., min_length=1)
    group_name: str = Field(default="")
    token: str = Field(default="")
    media: list[MediaItem] = Field(default_factory=list)
    listed_at: datetime | None = Field(default=None)

    @field_validator("group_id")
    @classmethod
    def validate_group_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("group_id cannot be empty or whitespace")
        return v.strip()

    @field_validator("media")
    @classmethod
    def dedupe_media(cls, v: list[MediaItem]) -> list[MediaItem]:
        """Drop repeated urls, keeping the first occurrence and the original order."""
        seen: set[str] = set()
        unique: list[MediaItem] = []
        for item in v:
            if item.url in seen:
                continue
            seen.add(item.url)
            unique.append(item)
        return unique

    @property
    def is_listed(self) -> bool:
        return self.listed_at is not None

    @property
    def pending_count(self) -> int:
        return len(self.media)

    def remove_url(self, url: str) -> bool:
        """Remove the item with this url. Returns False when it wasn't queued."""
        for index, item in enumerate(self.media):
            if item.url == url:
                del self.media[index]
                return True
        return False


class TokenRecord(BaseModel):
    """The stored access token, used when none is supplied."""

    token: str = Field(..., min_length=1)


class GroupSummary(BaseModel):
    """One entry of the group index."""

    id: str
    name: str = ""


class QueueDocument(BaseModel):
    """Top-level shape of the queue file."""

    token: TokenRecord | None = None
    groups: dict[str, GroupState] = Field(default_factory=dict)


__all__ = [
    "MediaItem",
    "GroupState",
    "TokenRecord",
    "GroupSummary",
    "QueueDocument",
]
