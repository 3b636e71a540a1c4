"""Reconciler: decides per anchor whether to push, pull or skip."""

import logging
from typing import Dict, List, Optional

from ..core.exceptions import AuthenticationError, RemoteError
from ..core.models import LocalTaskRecord, ReconcileResult, RemoteTask, TaskListCollection
from ..obsidian.parser import match_newlines
from ..obsidian.tasks import ObsidianTodo
from ..obsidian.vault import VaultDocuments
from ..utils.date import EPOCH


def push_checklist(api, list_id: str, task_id: str, todo: ObsidianTodo,
                   known_items: Optional[List[Dict]] = None) -> int:
    """Create missing checklist items and align checked state by display name.

    Remote items with no local counterpart are left alone. Returns the
    number of remote calls made.
    """
    if not todo.checklist:
        return 0
    items = known_items if known_items is not None else api.list_checklist_items(list_id, task_id)
    by_name = {(item.get("displayName") or "").strip(): item for item in items}

    calls = 0
    for entry in todo.checklist:
        remote_item = by_name.get(entry.title.strip())
        if remote_item is None:
            api.create_checklist_item(list_id, task_id, entry.title, entry.checked)
            calls += 1
        elif bool(remote_item.get("isChecked")) != entry.checked:
            api.update_checklist_item(list_id, task_id, remote_item["id"], {"isChecked": entry.checked})
            calls += 1
    return calls


class Reconciler:
    """Reconciles local task blocks against the merged remote snapshot."""

    def __init__(self, api, vault: VaultDocuments, logger: Optional[logging.Logger] = None):
        self.api = api
        self.vault = vault
        self.logger = logger or logging.getLogger(__name__)

    def reconcile(self, local_records: Dict[str, LocalTaskRecord],
                  collection: TaskListCollection,
                  anchor_lookup: Dict[str, str]) -> ReconcileResult:
        result = ReconcileResult()

        for anchor_id, task_id in anchor_lookup.items():
            local = local_records.get(anchor_id)
            task_list, remote = collection.find_task(task_id)

            if local is None or remote is None:
                self.logger.info(
                    "Skipping %s: %s not found", anchor_id,
                    "local block" if local is None else f"remote task {task_id}",
                )
                result.skipped += 1
                continue

            if remote.removed:
                self.logger.info("Skipping %s: remote task %s was removed", anchor_id, task_id)
                result.skipped += 1
                continue

            todo = ObsidianTodo.from_block(local.raw_text)
            if todo is None:
                self.logger.warning("Skipping %s: block in %s is not a task", anchor_id, local.path)
                result.skipped += 1
                continue

            if todo.matches(remote):
                result.skipped += 1
                continue

            remote_time = remote.modified_at or EPOCH
            if remote_time < local.modified_time:
                if self._push(todo, task_list.list_id, remote):
                    result.pushed += 1
                else:
                    result.failed += 1
            else:
                if self._pull(todo, local, remote):
                    result.pulled += 1
                else:
                    result.failed += 1

        self.logger.info(
            "Reconciled: %d pushed, %d pulled, %d skipped, %d failed",
            result.pushed, result.pulled, result.skipped, result.failed,
        )
        return result

    def _push(self, todo: ObsidianTodo, list_id: str, remote: RemoteTask) -> bool:
        try:
            self.api.update_task(list_id, remote.id, todo.to_update_payload())
            push_checklist(self.api, list_id, remote.id, todo, remote.checklist_items)
        except AuthenticationError:
            raise
        except RemoteError as exc:
            self.logger.warning("Push of %s failed: %s", todo.anchor_id, exc)
            return False
        self.logger.debug("Pushed %s to task %s", todo.anchor_id, remote.id)
        return True

    def _pull(self, todo: ObsidianTodo, local: LocalTaskRecord, remote: RemoteTask) -> bool:
        new_text = todo.apply_remote(remote).to_markdown()
        try:
            content = self.vault.read_text(local.path)
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.warning("Pull of %s failed reading %s: %s", local.anchor_id, local.path, exc)
            return False

        new_text = match_newlines(new_text, content, local.raw_text)
        if local.raw_text not in content:
            self.logger.warning(
                "Pull of %s failed: block changed in %s since it was read", local.anchor_id, local.path
            )
            return False

        if not self.vault.write_text(local.path, content.replace(local.raw_text, new_text, 1)):
            return False
        self.logger.debug("Pulled task %s into %s", remote.id, local.path)
        return True
