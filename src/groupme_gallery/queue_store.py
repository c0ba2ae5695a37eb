"""Persistent download queue backed by a local JSON file.

Architecture:
- One JSON file holds the stored token and every group's pending queue
- Every mutation is a read-modify-write under a single asyncio.Lock
- Atomic writes via write-to-temp + os.replace() for crash safety
- Removal is idempotent: removing an absent url or group is a no-op

File structure:
    {
      "token": {"token": "..."},
      "groups": {
        "<group_id>": {"group_id": ..., "group_name": ..., "token": ...,
                       "media": [...], "listed_at": ...}
      }
    }

Limitations:
- Single-process concurrency only (no cross-process file locking)
"""

import asyncio
import logging
import os
import time
from pathlib import Path

from pydantic import ValidationError

from groupme_gallery.schemas import GroupState, QueueDocument, TokenRecord

logger = logging.getLogger(__name__)


class JsonQueueStore:
    """Queue store backed by one local JSON file.

    The file is re-read on every operation so the on-disk state is always the
    source of truth; a crash between operations loses nothing that was
    already acknowledged.
    """

    def __init__(self, path: str | Path) -> None:
        """
        Args:
            path: Location of the queue file. Parent directories are created
                automatically on first write.
        """
        self._path = Path(path)
        self._lock = asyncio.Lock()

        logger.debug("JsonQueueStore initialized", extra={"store_path": str(self._path)})

    @property
    def path(self) -> Path:
        return self._path

    # =========================================================================
    # Groups
    # =========================================================================

    async def get_group(self, group_id: str) -> GroupState | None:
        """Return the stored state for a group, or None if it was never created."""
        async with self._lock:
            doc = self._read()
        return doc.groups.get(group_id)

    async def create_group(self, group_id: str) -> GroupState:
        """Create an empty, not-yet-listed state. Returns the existing one if present."""
        async with self._lock:
            doc = self._read()
            state = doc.groups.get(group_id)
            if state is None:
                state = GroupState(group_id=group_id)
                doc.groups[state.group_id] = state
                self._write(doc)
                logger.debug("Created group state", extra={"group_name": group_id})
        return state

    async def save_group(self, state: GroupState) -> None:
        """Persist a group's full state, replacing whatever was stored."""
        async with self._lock:
            doc = self._read()
            doc.groups[state.group_id] = state.model_copy(deep=True)
            self._write(doc)
        logger.debug(
            "Saved group state",
            extra={"group_name": state.group_name, "items_pending": state.pending_count},
        )

    async def remove_media_item(self, group_id: str, url: str) -> bool:
        """Remove one item by url. Returns False if the group or url isn't stored."""
        async with self._lock:
            doc = self._read()
            state = doc.groups.get(group_id)
            if state is None or not state.remove_url(url):
                return False
            self._write(doc)
        return True

    async def delete_group(self, group_id: str) -> bool:
        """Discard a group's state entirely. Returns False if it wasn't stored."""
        async with self._lock:
            doc = self._read()
            if doc.groups.pop(group_id, None) is None:
                return False
            self._write(doc)
        logger.info(f"Deleted stored queue for group {group_id}")
        return True

    async def list_group_ids(self) -> list[str]:
        async with self._lock:
            doc = self._read()
        return list(doc.groups)

    # =========================================================================
    # Token
    # =========================================================================

    async def get_token(self) -> str | None:
        async with self._lock:
            doc = self._read()
        return doc.token.token if doc.token else None

    async def set_token(self, token: str) -> None:
        async with self._lock:
            doc = self._read()
            doc.token = TokenRecord(token=token)
            self._write(doc)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _read(self) -> QueueDocument:
        """Read the queue file, returning an empty document if missing or corrupt.

        Only unparsable content counts as corrupt; OSError propagates.
        """
        if not self._path.exists():
            return QueueDocument()
        try:
            with open(self._path, encoding="utf-8") as f:
                return QueueDocument.model_validate_json(f.read())
        except (ValidationError, ValueError) as e:
            backup = self._path.with_name(self._path.name + ".corrupt")
            logger.warning(
                f"Unreadable queue file {self._path}: {e}, moving it to {backup.name} and resetting",
                extra={"store_path": str(self._path)},
            )
            try:
                os.replace(self._path, backup)
            except OSError as move_error:
                logger.warning(f"Could not move aside {self._path}: {move_error}")
            return QueueDocument()

    def _write(self, doc: QueueDocument) -> None:
        """Atomic write: write to temp file then os.replace().

        On Windows, os.replace() can fail with PermissionError when another
        process (antivirus, search indexer) briefly locks the target file.
        Retries with short delays handle this.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(doc.model_dump_json(indent=2))

        max_retries = 5
        for attempt in range(max_retries):
            try:
                os.replace(tmp_path, self._path)
                return
            except PermissionError:
                if attempt < max_retries - 1:
                    delay = 0.05 * (2**attempt)  # 50ms, 100ms, 200ms, 400ms
                    logger.debug(
                        f"os.replace failed for {self._path.name} "
                        f"(attempt {attempt + 1}/{max_retries}), "
                        f"retrying in {delay * 1000:.0f}ms"
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"os.replace failed for {self._path.name} "
                        f"after {max_retries} attempts, raising"
                    )
                    raise


__all__ = [
    "JsonQueueStore",
]
