"""
GroupMe gallery downloader.

Lists a group's media into a persistent queue, then drains the queue to
local storage with bounded concurrency. Interrupted runs resume from the
queue file without listing again.

Modules:
    api_client   - Listing endpoints with backoff on rate limiting
    listing      - Message history -> ordered, de-duplicated media queue
    queue_store  - JSON-file queue with atomic writes
    scheduler    - Bounded worker pool draining one group's queue
    pipeline     - List-or-resume then drain, group after group
    events       - Progress events for an optional observer
    config       - YAML/env configuration
"""

from groupme_gallery.pipeline import GalleryPipeline, resolve_token
from groupme_gallery.queue_store import JsonQueueStore
from groupme_gallery.scheduler import DrainResult, DrainScheduler
from groupme_gallery.schemas import GroupState, GroupSummary, MediaItem, TokenRecord

__all__ = [
    "GalleryPipeline",
    "resolve_token",
    "JsonQueueStore",
    "DrainResult",
    "DrainScheduler",
    "GroupState",
    "GroupSummary",
    "MediaItem",
    "TokenRecord",
]
