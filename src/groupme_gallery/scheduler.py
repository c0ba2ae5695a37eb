"""Drain scheduler: download a group's pending queue with bounded concurrency.

A fixed pool of worker tasks pulls items from an asyncio.Queue, so a free
slot immediately takes the next pending item. Every terminal outcome removes
the item from the store; per-item failures never abort the drain.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from gallery_core.download import DownloadOutcome, DownloadStatus, MediaDownloader
from gallery_core.download.models import DEFAULT_TIMEOUT_SECONDS
from gallery_core.logging import PeriodicStatsLogger, set_log_context
from gallery_core.paths import ORGANIZE_MODES, resolve_path
from gallery_core.types import ErrorCategory
from groupme_gallery.events import EventKind, Observer, ProgressEvent, emit
from groupme_gallery.queue_store import JsonQueueStore
from groupme_gallery.schemas import GroupState, MediaItem

logger = logging.getLogger(__name__)

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 10
DEFAULT_CONCURRENCY = 3
DEFAULT_PACING_DELAY_SECONDS = 0.25
DEFAULT_PROGRESS_INTERVAL_SECONDS = 10.0


@dataclass
class DrainResult:
    """Tally of one drain.

    ``failure_count`` includes skipped items; ``skipped_count`` says how many
    of those were skips rather than hard failures.
    """

    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    def record(self, outcome: DownloadOutcome) -> None:
        if outcome.status is DownloadStatus.SUCCESS:
            self.success_count += 1
            return
        self.failure_count += 1
        if outcome.status is DownloadStatus.SKIPPED:
            self.skipped_count += 1


def validate_concurrency(concurrency: Any) -> int:
    if isinstance(concurrency, bool) or not isinstance(concurrency, int):
        raise ValueError(f"concurrency must be an integer, got {concurrency!r}")
    if not MIN_CONCURRENCY <= concurrency <= MAX_CONCURRENCY:
        raise ValueError(
            f"concurrency must be between {MIN_CONCURRENCY} and {MAX_CONCURRENCY}, got {concurrency}"
        )
    return concurrency


class DrainScheduler:
    """
    Drains one group's persisted queue through a MediaDownloader.

    Concurrent Processing:
    - ``concurrency`` worker tasks (1-10) share one asyncio.Queue
    - Each in-flight download has its own timeout clock
    - A short pacing delay follows each completion while items remain
    - Unexpected worker exceptions become FAILED("unexpected: ...")

    For each item:
    1. Resolve the destination path
    2. Download (the downloader only classifies, never retries)
    3. Remove the item from the store, keyed by url
    4. Tally the outcome and notify the observer
    """

    def __init__(
        self,
        store: JsonQueueStore,
        downloader: MediaDownloader,
        base_dir: str | os.PathLike,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        pacing_delay_seconds: float = DEFAULT_PACING_DELAY_SECONDS,
        organize: str = "flat",
        observer: Observer | None = None,
        progress_interval_seconds: float = DEFAULT_PROGRESS_INTERVAL_SECONDS,
    ):
        self.concurrency = validate_concurrency(concurrency)
        if organize not in ORGANIZE_MODES:
            raise ValueError(f"Unknown organize mode {organize!r}, expected one of {ORGANIZE_MODES}")

        self.store = store
        self.downloader = downloader
        self.base_dir = Path(base_dir)
        self.timeout_seconds = timeout_seconds
        self.pacing_delay_seconds = pacing_delay_seconds
        self.organize = organize
        self.observer = observer
        self.progress_interval_seconds = progress_interval_seconds

        self._result = DrainResult()
        self._in_flight = 0
        self._queue: asyncio.Queue[MediaItem] | None = None

    def _get_progress_stats(self, cycle_count: int) -> dict[str, Any]:
        pending = (self._queue.qsize() if self._queue else 0) + self._in_flight
        return {
            "records_succeeded": self._result.success_count,
            "records_failed": self._result.failure_count - self._result.skipped_count,
            "records_skipped": self._result.skipped_count,
            "items_pending": pending,
        }

    async def drain(self, group_state: GroupState) -> DrainResult:
        """
        Download every pending item of a group.

        Resolves only when the queue is empty and no worker is in flight.
        """
        self._result = DrainResult()
        self._in_flight = 0
        self._queue = asyncio.Queue()
        for item in group_state.media:
            self._queue.put_nowait(item)

        total = self._queue.qsize()
        if total == 0:
            logger.info(f"Nothing pending for {group_state.group_name or group_state.group_id}")
            return self._result

        pool_size = min(self.concurrency, total)
        logger.info(
            f"Downloading {total} items with {pool_size} workers",
            extra={
                "group_name": group_state.group_name,
                "items_total": total,
                "concurrency": pool_size,
            },
        )

        stats_logger = None
        if self.progress_interval_seconds and self.progress_interval_seconds > 0:
            stats_logger = PeriodicStatsLogger(
                interval_seconds=self.progress_interval_seconds,
                get_stats=self._get_progress_stats,
                stage="download",
                worker_id=group_state.group_id,
            )
            stats_logger.start()

        workers = [
            asyncio.create_task(self._worker(f"w{i}", group_state), name=f"drain-worker-{i}")
            for i in range(pool_size)
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        finally:
            if stats_logger is not None:
                await stats_logger.stop()

        result = self._result
        logger.info(
            f"Drain complete: {result.success_count} succeeded, "
            f"{result.failure_count} failed ({result.skipped_count} skipped)",
            extra={
                "group_name": group_state.group_name,
                "records_succeeded": result.success_count,
                "records_failed": result.failure_count,
                "records_skipped": result.skipped_count,
            },
        )
        return result

    async def _worker(self, worker_id: str, group_state: GroupState) -> None:
        set_log_context(worker_id=worker_id)
        queue = self._queue

        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            self._in_flight += 1
            try:
                outcome = await self._process_item(group_state, item)
                await self.store.remove_media_item(group_state.group_id, item.url)
                self._result.record(outcome)
            finally:
                self._in_flight -= 1
                queue.task_done()

            await emit(
                self.observer,
                ProgressEvent(
                    kind=EventKind.ITEM_COMPLETED,
                    group_id=group_state.group_id,
                    group_name=group_state.group_name,
                    item=item,
                    outcome=outcome,
                    pending=queue.qsize() + self._in_flight,
                ),
            )

            if not queue.empty() and self.pacing_delay_seconds > 0:
                await asyncio.sleep(self.pacing_delay_seconds)

    async def _process_item(self, group_state: GroupState, item: MediaItem) -> DownloadOutcome:
        await emit(
            self.observer,
            ProgressEvent(
                kind=EventKind.ITEM_STARTED,
                group_id=group_state.group_id,
                group_name=group_state.group_name,
                item=item,
            ),
        )

        try:
            destination = resolve_path(
                self.base_dir, group_state.group_name or group_state.group_id, item, self.organize
            )
            outcome = await self.downloader.download_item(item, destination, self.timeout_seconds)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Unhandled exception downloading item",
                exc_info=True,
                extra={"download_url": item.url[:120], "error": str(e)},
            )
            outcome = DownloadOutcome.failed(f"unexpected: {e}", error_category=ErrorCategory.UNKNOWN)

        if outcome.success:
            logger.debug(
                "Saved media item",
                extra={"download_url": item.url[:120], "destination_path": str(outcome.file_path)},
            )
        else:
            logger.info(
                f"Item {outcome.status.value}: {outcome.reason}",
                extra={
                    "download_url": item.url[:120],
                    "outcome": outcome.status.value,
                    "reason": outcome.reason,
                    "error_category": outcome.error_category.value if outcome.error_category else None,
                },
            )
        return outcome


__all__ = [
    "DEFAULT_CONCURRENCY",
    "MAX_CONCURRENCY",
    "MIN_CONCURRENCY",
    "DrainResult",
    "DrainScheduler",
    "validate_concurrency",
]
