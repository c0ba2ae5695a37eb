"""
Remote listing: turn a group's message history into an ordered download queue.

Messages are paged newest first with ``before_id``. Every image attachment
with an unseen url becomes a MediaItem, so the queue keeps remote recency
order and never holds the same url twice.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Iterable

from gallery_core.paths import UNKNOWN_USER, sanitize_name
from groupme_gallery.api_client import DEFAULT_PAGE_LIMIT, GroupMeApiClient
from groupme_gallery.schemas import GroupState, GroupSummary, MediaItem

logger = logging.getLogger(__name__)

MEDIA_ATTACHMENT_TYPES = frozenset({"image"})


def _message_created(message: dict[str, Any]) -> datetime | None:
    created_at = message.get("created_at")
    if created_at is None:
        return None
    try:
        return datetime.fromtimestamp(int(created_at), tz=UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def media_items_from_message(message: dict[str, Any]) -> Iterable[MediaItem]:
    """Yield a MediaItem for each media attachment of a message, in attachment order."""
    user = sanitize_name(message.get("name")) or UNKNOWN_USER
    created = _message_created(message)
    message_id = str(message.get("id", ""))

    for attachment in message.get("attachments") or []:
        if attachment.get("type") not in MEDIA_ATTACHMENT_TYPES:
            continue
        url = attachment.get("url")
        if not isinstance(url, str) or not url:
            continue
        yield MediaItem(url=url, user=user, created=created, source_message_id=message_id)


async def build_media_list(
    client: GroupMeApiClient,
    group_id: str,
    page_limit: int = DEFAULT_PAGE_LIMIT,
) -> GroupState:
    """
    List every media item in a group's history.

    Args:
        client: API client holding the token
        group_id: Group to list
        page_limit: Messages requested per page

    Returns:
        A listed GroupState (``listed_at`` set) with media newest first

    Raises:
        AuthError: Token rejected
        GroupNotFoundError: Group does not exist
        TransportError: Any other failure on the listing path
        ThrottlingError: Still rate limited after all backoff attempts
    """
    group = await client.get_group(group_id)
    group_name = sanitize_name(group.get("name")) or group_id

    media: list[MediaItem] = []
    seen: set[str] = set()
    before_id: str | None = None
    page = 0

    while True:
        messages = await client.get_messages(group_id, before_id=before_id, limit=page_limit)
        page += 1
        if not messages:
            break

        for message in messages:
            for item in media_items_from_message(message):
                if item.url in seen:
                    continue
                seen.add(item.url)
                media.append(item)

        before_id = str(messages[-1].get("id"))
        logger.debug(
            f"Listed page {page}: {len(messages)} messages, {len(media)} media so far",
            extra={"page": page, "page_size": len(messages), "before_id": before_id},
        )

        if len(messages) < page_limit:
            break

    logger.info(
        f"Found {len(media)} media items in {group_name}",
        extra={"group_name": group_name, "items_total": len(media), "page": page},
    )

    return GroupState(
        group_id=group_id,
        group_name=group_name,
        token=client.token,
        media=media,
        listed_at=datetime.now(UTC),
    )


async def list_groups(
    client: GroupMeApiClient,
    per_page: int = DEFAULT_PAGE_LIMIT,
) -> list[GroupSummary]:
    """Every group visible to the token, following the paginated index."""
    groups: list[GroupSummary] = []
    page = 1
    while True:
        batch = await client.list_groups_page(page, per_page=per_page)
        for entry in batch:
            group_id = str(entry.get("id") or entry.get("group_id") or "")
            if not group_id:
                continue
            groups.append(GroupSummary(id=group_id, name=entry.get("name") or ""))
        if len(batch) < per_page:
            break
        page += 1
    return groups


__all__ = [
    "MEDIA_ATTACHMENT_TYPES",
    "build_media_list",
    "list_groups",
    "media_items_from_message",
]
