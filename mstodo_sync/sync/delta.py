"""Delta Synchronizer: brings the cached task lists up to date."""

import logging
from typing import List, Optional

from ..core.exceptions import AuthenticationError, RemoteError
from ..core.models import RemoteTask, TaskList, TaskListCollection
from .cache import DeltaCacheStore
from .merger import merge_collections


class DeltaSynchronizer:
    """Per-list load -> fetch delta -> merge -> persist cycle.

    One failing list never aborts the others: its previous cache entry is
    kept and its name is recorded in ``failed_lists``. Authentication
    errors always propagate.
    """

    def __init__(self, api, store: DeltaCacheStore, logger: Optional[logging.Logger] = None):
        self.api = api
        self.store = store
        self.logger = logger or logging.getLogger(__name__)
        self.failed_lists: List[str] = []

    def sync_list(self, task_list: TaskList, force_reset: bool = False,
                  skip_remote_fetch: bool = False) -> TaskList:
        """Return the updated entry for ``task_list`` (the unchanged one on failure)."""
        if force_reset:
            self.store.reset()
            task_list = TaskList(list_id=task_list.list_id, name=task_list.name)

        if skip_remote_fetch:
            return task_list

        fetched: List[RemoteTask] = []
        delta_link: Optional[str] = None
        complete = False
        try:
            for page in self.api.iter_tasks_delta(task_list.list_id, task_list.delta_token):
                fetched.extend(page.items)
                if page.delta_link:
                    delta_link = page.delta_link
            complete = True
        except AuthenticationError:
            raise
        except RemoteError as exc:
            self.failed_lists.append(task_list.name or task_list.list_id)
            if not fetched:
                self.logger.warning(
                    "Delta fetch failed for list %r; keeping cached entry: %s", task_list.name, exc
                )
                return task_list
            self.logger.warning(
                "Delta fetch for list %r stopped after %d items; merging partial result: %s",
                task_list.name, len(fetched), exc,
            )

        updated = task_list.copy()
        if task_list.task_count == 0:
            # Cold start or reset: the fetch is the whole truth, even when empty
            self.logger.info(
                "Loading %d tasks into empty cache for list %r", len(fetched), task_list.name
            )
            updated.replace_tasks(merge_collections([], fetched))
        else:
            merged = merge_collections(task_list.tasks.values(), fetched)
            updated.replace_tasks(merged)
            self.logger.debug(
                "Merged %d fetched tasks into list %r (%d cached -> %d)",
                len(fetched), task_list.name, task_list.task_count, updated.task_count,
            )

        if complete and delta_link:
            updated.delta_token = delta_link
        return updated

    def _discover_lists(self, collection: TaskListCollection) -> None:
        try:
            remote_lists = self.api.list_task_lists()
        except AuthenticationError:
            raise
        except RemoteError as exc:
            self.logger.warning("Could not list task lists; using cached lists only: %s", exc)
            return

        for entry in remote_lists:
            list_id = entry.get("id")
            if list_id and collection.get_list(list_id) is None:
                name = entry.get("displayName") or ""
                collection.add_list(TaskList(list_id=list_id, name=name))
                self.logger.debug("Added list to cache: %s (%s)", name, list_id)

    def synchronize(self, force_reset: bool = False,
                    skip_remote_fetch: bool = False) -> TaskListCollection:
        """Synchronize every list; persists unless ``skip_remote_fetch``."""
        self.failed_lists = []

        with self.store.locked():
            if force_reset:
                self.store.reset()

            collection = self.store.load()
            if skip_remote_fetch:
                return collection

            self._discover_lists(collection)

            updated = TaskListCollection(
                lists=[self.sync_list(task_list) for task_list in collection]
            )
            self.store.save(updated)

        if self.failed_lists:
            self.logger.warning(
                "%d list(s) failed to sync: %s", len(self.failed_lists), ", ".join(self.failed_lists)
            )
        return updated
