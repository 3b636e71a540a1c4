"""Delta Cache Store: the durable snapshot of every synced task list."""

import contextlib
import logging
import os
from typing import Iterator, Optional

from ..core.exceptions import SyncError
from ..core.models import TaskListCollection
from ..utils.io import file_lock, remove_file, safe_read_json, safe_write_json


class DeltaCacheStore:
    """Reads and atomically rewrites the ``{lists: [...]}`` cache file."""

    def __init__(self, cache_path: str, lock_timeout: float = 60.0,
                 logger: Optional[logging.Logger] = None):
        self.cache_path = os.path.abspath(os.path.expanduser(cache_path))
        self.lock_timeout = lock_timeout
        self.logger = logger or logging.getLogger(__name__)

    @property
    def sync_lock_path(self) -> str:
        # Separate from the per-read/write lock taken by the io helpers
        return f"{self.cache_path}.sync"

    def exists(self) -> bool:
        return os.path.exists(self.cache_path)

    @contextlib.contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the single-flight lock for one load -> fetch -> merge -> persist cycle."""
        try:
            with file_lock(self.sync_lock_path, exclusive=True, timeout=self.lock_timeout):
                yield
        except TimeoutError as exc:
            raise SyncError(
                f"Another sync is still running on {self.cache_path} "
                f"(waited {self.lock_timeout:.0f}s)"
            ) from exc

    def load(self) -> TaskListCollection:
        """Read the cache; a missing or malformed file yields an empty collection."""
        if not self.exists():
            self.logger.info("No delta cache at %s; starting cold", self.cache_path)
            return TaskListCollection()

        data = safe_read_json(self.cache_path, default={})
        if not isinstance(data, dict) or not isinstance(data.get("lists", []), list):
            self.logger.warning("Ignoring malformed delta cache %s", self.cache_path)
            return TaskListCollection()

        collection = TaskListCollection.from_dict(data)
        self.logger.debug(
            "Loaded delta cache: %d lists, %d tasks", len(collection), collection.total_tasks
        )
        return collection

    def save(self, collection: TaskListCollection) -> bool:
        ok = safe_write_json(self.cache_path, collection.to_dict())
        if ok:
            self.logger.info(
                "Saved delta cache: %d lists, %d tasks", len(collection), collection.total_tasks
            )
        else:
            self.logger.error("Failed to persist delta cache to %s", self.cache_path)
        return ok

    def reset(self) -> bool:
        removed = remove_file(self.cache_path)
        if removed:
            self.logger.info("Removed delta cache %s", self.cache_path)
        return removed
