"""Progress events delivered to an optional observer."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from gallery_core.download import DownloadOutcome

if TYPE_CHECKING:
    from groupme_gallery.scheduler import DrainResult
    from groupme_gallery.schemas import MediaItem

logger = logging.getLogger(__name__)


class EventKind(Enum):
    GROUP_STARTED = "group-started"
    ITEM_STARTED = "item-started"
    ITEM_COMPLETED = "item-completed"
    GROUP_COMPLETED = "group-completed"


@dataclass(frozen=True)
class ProgressEvent:
    """
    One progress notification.

    ``item`` is set for item events, ``outcome`` for ITEM_COMPLETED and
    ``result`` for GROUP_COMPLETED. ``pending`` is the number of items still
    queued when the event was emitted.
    """

    kind: EventKind
    group_id: str
    group_name: str = ""
    item: Optional[MediaItem] = None
    outcome: Optional[DownloadOutcome] = None
    result: Optional[DrainResult] = None
    pending: Optional[int] = None


# Sync callables and coroutine functions are both accepted
Observer = Callable[[ProgressEvent], Any]


async def emit(observer: Observer | None, event: ProgressEvent) -> None:
    """Deliver an event. A missing observer is fine; a failing one is logged and ignored."""
    if observer is None:
        return
    try:
        result = observer(event)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.warning(
            f"Progress observer failed on {event.kind.value}: {e}",
            exc_info=True,
            extra={"error_type": type(e).__name__},
        )


__all__ = ["EventKind", "ProgressEvent", "Observer", "emit"]
