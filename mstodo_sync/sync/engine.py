"""Sync engine: the caller-facing operations over one SyncContext."""

import logging
import os
from datetime import date
from typing import Dict, Iterable, Optional, Set

from ..core.config import save_config
from ..core.exceptions import AuthenticationError, ConfigurationError, RemoteError
from ..core.models import (
    PushResult,
    ReconcileResult,
    RemoteTask,
    SyncConfig,
    TaskList,
    TaskListCollection,
)
from ..obsidian.extractor import LocalTaskExtractor
from ..obsidian.parser import iter_task_blocks, match_newlines
from ..obsidian.tasks import ObsidianTodo, generate_anchor_id
from ..remote.todo_api import LINKED_RESOURCE_APP_NAME
from ..utils.io import atomic_write
from .context import SyncContext
from .delta import DeltaSynchronizer
from .reconciler import Reconciler, push_checklist
from .summary import DEFAULT_SUMMARY_PATH, render_summary, render_today


class SyncEngine:
    """Main engine for Obsidian <-> Microsoft To Do synchronization."""

    def __init__(self, config: SyncConfig, context: Optional[SyncContext] = None,
                 config_path: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.config_path = config_path
        self.logger = logger or logging.getLogger(__name__)
        self.context = context or SyncContext.from_config(config, logger=self.logger)

    @property
    def api(self):
        return self.context.api

    @property
    def store(self):
        return self.context.store

    def _synchronizer(self) -> DeltaSynchronizer:
        return DeltaSynchronizer(self.api, self.store, logger=self.logger)

    def _save_config(self) -> None:
        save_config(self.config, self.config_path)

    def cached_lists(self) -> TaskListCollection:
        """Read-only view of the cache (no fetch, nothing persisted)."""
        return self._synchronizer().synchronize(skip_remote_fetch=True)

    # ------------------------------------------------------------------
    # syncAll / resetCache
    # ------------------------------------------------------------------
    def sync_all(self, force_reset: bool = False) -> ReconcileResult:
        vault = self.context.require_vault()
        self.logger.info("Starting sync (force_reset=%s)", force_reset)

        synchronizer = self._synchronizer()
        collection = synchronizer.synchronize(force_reset=force_reset)

        records = LocalTaskExtractor(vault, logger=self.logger).extract()
        reconciler = Reconciler(self.api, vault, logger=self.logger)
        result = reconciler.reconcile(records, collection, self.config.task_id_lookup)
        result.failed_lists = list(synchronizer.failed_lists)

        if self.config.summary_path:
            self.generate_summary_document(collection=collection)

        return result

    def reset_cache(self) -> bool:
        with self.store.locked():
            return self.store.reset()

    # ------------------------------------------------------------------
    # Default list resolution
    # ------------------------------------------------------------------
    def resolve_default_list(self, collection: TaskListCollection) -> TaskList:
        config = self.config
        if config.resolve_list_by == "id":
            if not config.list_id:
                raise ConfigurationError("No default list configured; set todo.list_id")
            cached = collection.get_list(config.list_id)
            return cached or TaskList(list_id=config.list_id, name=config.list_name or "")

        if not config.list_name:
            raise ConfigurationError("No default list configured; set todo.list_name")

        cached = collection.find_list_by_name(config.list_name)
        if cached is not None:
            return cached

        list_id = self.api.get_list_id_by_name(config.list_name)
        if list_id:
            return TaskList(list_id=list_id, name=config.list_name)

        if not config.create_list_if_missing:
            raise ConfigurationError(f"Task list {config.list_name!r} not found")

        created = self.api.create_task_list(config.list_name)
        new_list = TaskList(list_id=created["id"], name=created.get("displayName") or config.list_name)
        with self.store.locked():
            stored = self.store.load()
            stored.add_list(new_list)
            self.store.save(stored)
        collection.add_list(new_list)
        return new_list

    # ------------------------------------------------------------------
    # Helpers shared by push / import
    # ------------------------------------------------------------------
    def _known_anchor_ids(self, vault) -> Set[str]:
        anchors = LocalTaskExtractor(vault, logger=self.logger).anchor_ids()
        anchors.update(self.config.task_id_lookup.keys())
        return anchors

    def _ensure_linked_resource(self, list_id: str, task_id: str, anchor_id: str,
                                web_url: str, remote: Optional[RemoteTask] = None) -> None:
        resources = remote.linked_resources if remote is not None else []
        if remote is None or not resources:
            resources = self.api.list_linked_resources(list_id, task_id)

        for resource in resources:
            if resource.get("applicationName") == LINKED_RESOURCE_APP_NAME and resource.get("id"):
                self.api.update_linked_resource(list_id, task_id, resource["id"], anchor_id, web_url)
                return
        self.api.create_linked_resource(list_id, task_id, anchor_id, web_url)

    # ------------------------------------------------------------------
    # addMissingLocalTasks
    # ------------------------------------------------------------------
    def add_missing_local_tasks(self, target_path: Optional[str] = None) -> int:
        """Append an anchored block for every untracked remote task."""
        vault = self.context.require_vault()
        target = vault.relative_path(target_path) if target_path else self.config.inbox_path
        collection = self.cached_lists()

        tracked_ids = set(self.config.task_id_lookup.values())
        existing_anchors = self._known_anchor_ids(vault)

        line_number = 0
        if vault.exists(target):
            line_number = len(vault.read_text(target).split('\n'))

        blocks = []
        imported = []
        for task_list in collection:
            for task in sorted(task_list.tasks.values(), key=lambda t: t.title.casefold()):
                if task.removed or task.id in tracked_ids:
                    continue
                if task.completed and not self.config.include_completed_missing:
                    continue

                anchor_id = generate_anchor_id(
                    str(vault.root), target, line_number, task.title, existing_anchors
                )
                existing_anchors.add(anchor_id)
                block = ObsidianTodo.from_remote(task, anchor_id=anchor_id).to_markdown()
                blocks.append(block)
                line_number += len(block.split('\n'))
                imported.append((task_list.list_id, task, anchor_id))

        if not blocks:
            self.logger.info("No untracked remote tasks to import")
            return 0

        if not vault.append_text(target, '\n'.join(blocks) + '\n'):
            self.logger.error("Could not write imported tasks to %s", target)
            return 0

        web_url = vault.obsidian_url(target)
        for list_id, task, anchor_id in imported:
            self.config.set_task_id(anchor_id, task.id)
            try:
                self._ensure_linked_resource(list_id, task.id, anchor_id, web_url, task)
            except AuthenticationError:
                raise
            except RemoteError as exc:
                self.logger.warning("Could not link task %s to %s: %s", task.id, target, exc)

        self._save_config()
        self.logger.info("Imported %d remote tasks into %s", len(imported), target)
        return len(imported)

    # ------------------------------------------------------------------
    # generateSummaryDocument / today view
    # ------------------------------------------------------------------
    def _write_note(self, target: str, content: str) -> None:
        if os.path.isabs(os.path.expanduser(target)):
            if not atomic_write(target, content):
                raise OSError(f"Could not write {target}")
            return

        vault = self.context.require_vault()
        if not vault.write_text(target, content):
            raise OSError(f"Could not write {target}")

    def generate_summary_document(self, path: Optional[str] = None,
                                  collection: Optional[TaskListCollection] = None) -> str:
        """Write the summary note; returns the path written."""
        target = path or self.config.summary_path or DEFAULT_SUMMARY_PATH
        if collection is None:
            collection = self.cached_lists()
        self._write_note(target, render_summary(collection))
        self.logger.info("Task summary exported to %s", target)
        return target

    def today_tasks(self, path: Optional[str] = None, today: Optional[date] = None) -> str:
        """Render open and completed-today tasks; also written to ``path`` when given."""
        content = render_today(self.cached_lists(), today)
        if path:
            self._write_note(path, content)
            self.logger.info("Today's tasks exported to %s", path)
        return content

    # ------------------------------------------------------------------
    # Lookup table maintenance
    # ------------------------------------------------------------------
    def cleanup_task_ids(self) -> int:
        """Drop lookup entries whose anchor no longer exists in the vault."""
        vault = self.context.require_vault()
        present = LocalTaskExtractor(vault, logger=self.logger).anchor_ids()
        stale = [anchor for anchor in self.config.task_id_lookup if anchor not in present]
        for anchor in stale:
            self.config.remove_anchor(anchor)
        if stale:
            self._save_config()
            self.logger.info("Removed %d stale anchors", len(stale))
        return len(stale)

    # ------------------------------------------------------------------
    # Note-level push / pull
    # ------------------------------------------------------------------
    @staticmethod
    def _selected(start: int, line_numbers: Optional[Iterable[int]]) -> bool:
        # line_numbers are 1-based, as shown in the editor
        return line_numbers is None or (start + 1) in line_numbers

    def push_document(self, path: str, line_numbers: Optional[Iterable[int]] = None) -> PushResult:
        """Create or update remote tasks for the task lines of one note."""
        vault = self.context.require_vault()
        rel_path = vault.relative_path(path)
        content = vault.read_text(rel_path)
        lines = content.split('\n')
        selected = set(line_numbers) if line_numbers is not None else None

        collection = self.cached_lists()
        existing_anchors = self._known_anchor_ids(vault)
        web_url = vault.obsidian_url(rel_path)
        default_list: Optional[TaskList] = None
        result = PushResult()
        document_changed = False
        lookup_changed = False

        for block in iter_task_blocks(content, anchored_only=False):
            if not self._selected(block.start, selected):
                continue
            todo = ObsidianTodo.from_block(block.text)
            if todo is None or not todo.title:
                continue

            task_id = self.config.get_task_id(todo.anchor_id) if todo.anchor_id else None
            try:
                if task_id:
                    task_list, remote = collection.find_task(task_id)
                    if remote is not None and todo.matches(remote):
                        result.unchanged += 1
                        continue
                    if task_list is None:
                        default_list = default_list or self.resolve_default_list(collection)
                        task_list = default_list
                    self.api.update_task(task_list.list_id, task_id, todo.to_update_payload())
                    push_checklist(self.api, task_list.list_id, task_id, todo,
                                   remote.checklist_items if remote is not None else None)
                    self._ensure_linked_resource(task_list.list_id, task_id, todo.anchor_id,
                                                 web_url, remote)
                    result.updated += 1
                    continue

                default_list = default_list or self.resolve_default_list(collection)
                created = self.api.create_task(default_list.list_id, todo.to_update_payload())
                push_checklist(self.api, default_list.list_id, created.id, todo, [])

                anchor_id = todo.anchor_id
                if not anchor_id:
                    anchor_id = generate_anchor_id(
                        str(vault.root), rel_path, block.start, todo.title, existing_anchors
                    )
                    line = lines[block.start]
                    eol = '\r' if line.endswith('\r') else ''
                    lines[block.start] = f"{line.rstrip()} ^{anchor_id}{eol}"
                    document_changed = True
                existing_anchors.add(anchor_id)
                self.config.set_task_id(anchor_id, created.id)
                lookup_changed = True

                self.api.create_linked_resource(default_list.list_id, created.id, anchor_id, web_url)
                result.created += 1
            except AuthenticationError:
                raise
            except RemoteError as exc:
                self.logger.warning("Push of line %d in %s failed: %s", block.start + 1, rel_path, exc)
                result.failed += 1

        if document_changed and not vault.write_text(rel_path, '\n'.join(lines)):
            self.logger.error("Could not write anchors back to %s", rel_path)
        if lookup_changed:
            self._save_config()
        return result

    def pull_document(self, path: str, line_numbers: Optional[Iterable[int]] = None) -> int:
        """Overwrite tracked blocks of one note with the cached remote content."""
        vault = self.context.require_vault()
        rel_path = vault.relative_path(path)
        content = vault.read_text(rel_path)
        lines = content.split('\n')
        selected = set(line_numbers) if line_numbers is not None else None
        collection = self.cached_lists()

        replacements: Dict[int, tuple] = {}
        for block in iter_task_blocks(content):
            if not self._selected(block.start, selected):
                continue
            task_id = self.config.get_task_id(block.anchor_id)
            if not task_id:
                continue
            _, remote = collection.find_task(task_id)
            if remote is None or remote.removed:
                self.logger.info("No cached remote task for %s", block.anchor_id)
                continue
            todo = ObsidianTodo.from_block(block.text)
            if todo is None or todo.matches(remote):
                continue
            rendered = todo.apply_remote(remote).to_markdown()
            new_lines = match_newlines(rendered, content, block.text).split('\n')
            replacements[block.start] = (block.end, new_lines)

        if not replacements:
            return 0

        # Bottom-up so earlier indices stay valid
        for start in sorted(replacements, reverse=True):
            end, new_lines = replacements[start]
            lines[start:end] = new_lines

        if not vault.write_text(rel_path, '\n'.join(lines)):
            self.logger.error("Could not write pulled tasks to %s", rel_path)
            return 0
        return len(replacements)
