"""
Pipeline runner: list (or resume) a group, then drain it.

For each group:
1. A stored, already-listed state is resumed as is, even when empty
2. Otherwise the group is listed, items already on disk are dropped and
   the queue is persisted
3. The scheduler drains the queue; progress goes to the observer
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Iterable

from gallery_core.errors import AuthError
from gallery_core.logging import set_log_context
from gallery_core.paths import resolve_path
from groupme_gallery.api_client import DEFAULT_PAGE_LIMIT, GroupMeApiClient
from groupme_gallery.events import EventKind, Observer, ProgressEvent, emit
from groupme_gallery.listing import build_media_list
from groupme_gallery.queue_store import JsonQueueStore
from groupme_gallery.scheduler import DrainResult, DrainScheduler
from groupme_gallery.schemas import GroupState

logger = logging.getLogger(__name__)


async def resolve_token(store: JsonQueueStore, supplied: str | None = None) -> str:
    """
    Pick the access token for this run.

    A supplied token is stored (it becomes the default for later runs) and
    used; otherwise the stored token is used.

    Raises:
        AuthError: Neither a supplied nor a stored token exists
    """
    if supplied:
        await store.set_token(supplied)
        return supplied

    stored = await store.get_token()
    if stored:
        return stored

    raise AuthError("No API token available")


class GalleryPipeline:
    """Lists and drains groups one after another."""

    def __init__(
        self,
        store: JsonQueueStore,
        api_client: GroupMeApiClient,
        scheduler: DrainScheduler,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        observer: Observer | None = None,
        relist: bool = False,
    ):
        self.store = store
        self.api_client = api_client
        self.scheduler = scheduler
        self.page_limit = page_limit
        self.observer = observer
        self.relist = relist

    @property
    def output_dir(self) -> Path:
        return self.scheduler.base_dir

    async def run(self, group_ids: Iterable[str]) -> dict[str, DrainResult]:
        """Process groups sequentially. Listing-level errors abort the run."""
        results: dict[str, DrainResult] = {}
        for group_id in group_ids:
            results[group_id] = await self.run_group(group_id)
        return results

    async def run_group(self, group_id: str) -> DrainResult:
        set_log_context(group_id=group_id, stage="listing")

        if self.relist and await self.store.delete_group(group_id):
            logger.info("Discarded stored queue, listing again")

        state = await self.store.get_group(group_id)
        if state is not None and state.is_listed:
            logger.info(
                f"Resuming {state.group_name or group_id} with {state.pending_count} items pending",
                extra={"group_name": state.group_name, "items_pending": state.pending_count},
            )
        else:
            state = await build_media_list(self.api_client, group_id, page_limit=self.page_limit)
            state = await self._drop_already_downloaded(state)
            await self.store.save_group(state)

        await emit(
            self.observer,
            ProgressEvent(
                kind=EventKind.GROUP_STARTED,
                group_id=state.group_id,
                group_name=state.group_name,
                pending=state.pending_count,
            ),
        )

        set_log_context(stage="download")
        result = await self.scheduler.drain(state)

        await emit(
            self.observer,
            ProgressEvent(
                kind=EventKind.GROUP_COMPLETED,
                group_id=state.group_id,
                group_name=state.group_name,
                result=result,
                pending=0,
            ),
        )
        return result

    async def _drop_already_downloaded(self, state: GroupState) -> GroupState:
        """Remove items whose destination file already exists from a fresh listing."""
        base_dir = self.scheduler.base_dir
        organize = self.scheduler.organize
        group_folder = state.group_name or state.group_id

        def still_missing(item) -> bool:
            return not os.path.exists(resolve_path(base_dir, group_folder, item, organize))

        pending = await asyncio.to_thread(lambda: [i for i in state.media if still_missing(i)])
        skipped = state.pending_count - len(pending)
        if skipped:
            logger.info(
                f"{skipped} items already downloaded, not queueing them again",
                extra={"items_skipped_existing": skipped, "items_pending": len(pending)},
            )
        return state.model_copy(update={"media": pending})


__all__ = ["GalleryPipeline", "resolve_token"]
