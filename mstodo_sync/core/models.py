"""
Domain models for mstodo-sync.

This module contains the core data structures shared by the delta
synchronizer, the reconciler and the Obsidian side: remote task
snapshots, cached task lists, locally discovered task blocks and the
persisted configuration.
"""

from __future__ import annotations

import html
import json
import os
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .paths import get_path_manager
from ..utils.date import from_graph_datetime, parse_timestamp


_TAG_RE = re.compile(r'<[^>]+>')
_BREAK_RE = re.compile(r'<\s*(br|/p|/div)\s*/?>', re.IGNORECASE)


def _normalize_path(path: str) -> str:
    """Expand user and convert to absolute path."""
    return os.path.abspath(os.path.expanduser(path))


def _html_to_text(content: str) -> str:
    """Flatten the HTML bodies the To Do apps write into plain text."""
    content = _BREAK_RE.sub('\n', content)
    return html.unescape(_TAG_RE.sub('', content))


class TaskStatus(Enum):
    """Microsoft To Do task status values."""

    NOT_STARTED = "notStarted"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    WAITING_ON_OTHERS = "waitingOnOthers"
    DEFERRED = "deferred"


class Importance(Enum):
    """Microsoft To Do importance levels."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


@dataclass
class RemoteTask:
    """Snapshot of one task as known by Microsoft To Do.

    ``fields`` holds the opaque Graph payload minus the keys the merge
    logic reads (id, lastModifiedDateTime, @removed).
    """

    id: str
    last_modified: Optional[str] = None
    removed: bool = False
    removed_reason: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def modified_at(self) -> Optional[datetime]:
        return parse_timestamp(self.last_modified)

    @property
    def title(self) -> str:
        return self.fields.get("title") or ""

    @property
    def status(self) -> str:
        return self.fields.get("status") or TaskStatus.NOT_STARTED.value

    @property
    def completed(self) -> bool:
        if self.status == TaskStatus.COMPLETED.value:
            return True
        return bool(self.fields.get("completedDateTime"))

    @property
    def importance(self) -> Importance:
        try:
            return Importance(self.fields.get("importance") or "normal")
        except ValueError:
            return Importance.NORMAL

    @property
    def due_date(self) -> Optional[date]:
        return from_graph_datetime(self.fields.get("dueDateTime"))

    @property
    def created_date(self) -> Optional[date]:
        created = parse_timestamp(self.fields.get("createdDateTime"))
        return created.date() if created else None

    @property
    def completed_date(self) -> Optional[date]:
        return from_graph_datetime(self.fields.get("completedDateTime"))

    @property
    def body_content(self) -> str:
        body = self.fields.get("body") or {}
        content = body.get("content") or ""
        if (body.get("contentType") or "").lower() == "html":
            content = _html_to_text(content)
        return content.strip()

    @property
    def checklist_items(self) -> Optional[List[Dict[str, Any]]]:
        """Checklist sub-items, or None when the payload does not carry them."""
        items = self.fields.get("checklistItems")
        return list(items) if isinstance(items, list) else None

    @property
    def linked_resources(self) -> List[Dict[str, Any]]:
        return list(self.fields.get("linkedResources") or [])

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.fields)
        data["id"] = self.id
        if self.last_modified:
            data["lastModifiedDateTime"] = self.last_modified
        if self.removed:
            data["@removed"] = {"reason": self.removed_reason or "deleted"}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RemoteTask:
        removed_info = data.get("@removed")
        removed_reason = None
        if isinstance(removed_info, dict):
            removed_reason = removed_info.get("reason")
        fields = {
            key: value
            for key, value in data.items()
            if key not in ("id", "lastModifiedDateTime", "@removed")
        }
        return cls(
            id=data.get("id") or "",
            last_modified=data.get("lastModifiedDateTime") or None,
            removed=removed_info is not None,
            removed_reason=removed_reason,
            fields=fields,
        )


def list_name_matches(candidate: str, wanted: str) -> bool:
    """Case-insensitive list name match tolerating remote auto-suffixes like "Name (1)"."""
    if not candidate or not wanted:
        return False
    candidate = candidate.strip().lower()
    wanted = wanted.strip().lower()
    return candidate == wanted or candidate.startswith(f"{wanted} (")


@dataclass
class TaskList:
    """A remote task list together with its cached delta state."""

    list_id: str
    name: str
    delta_token: str = ""
    tasks: Dict[str, RemoteTask] = field(default_factory=dict)

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    def get_task(self, task_id: str) -> Optional[RemoteTask]:
        return self.tasks.get(task_id)

    def replace_tasks(self, tasks: List[RemoteTask]) -> None:
        self.tasks = {task.id: task for task in tasks if task.id}

    def copy(self) -> TaskList:
        return TaskList(
            list_id=self.list_id,
            name=self.name,
            delta_token=self.delta_token,
            tasks=dict(self.tasks),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "listId": self.list_id,
            "name": self.name,
            "deltaToken": self.delta_token,
            "tasks": [task.to_dict() for task in self.tasks.values()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TaskList:
        task_list = cls(
            list_id=data.get("listId", ""),
            name=data.get("name", ""),
            delta_token=data.get("deltaToken") or "",
        )
        tasks = []
        for entry in data.get("tasks", []):
            if isinstance(entry, dict):
                tasks.append(RemoteTask.from_dict(entry))
        task_list.replace_tasks(tasks)
        return task_list


@dataclass
class TaskListCollection:
    """The full set of cached task lists (the durable cache file contents)."""

    lists: List[TaskList] = field(default_factory=list)

    def __iter__(self) -> Iterator[TaskList]:
        return iter(self.lists)

    def __len__(self) -> int:
        return len(self.lists)

    @property
    def total_tasks(self) -> int:
        return sum(task_list.task_count for task_list in self.lists)

    def get_list(self, list_id: str) -> Optional[TaskList]:
        for task_list in self.lists:
            if task_list.list_id == list_id:
                return task_list
        return None

    def find_list_by_name(self, name: str) -> Optional[TaskList]:
        # Prefer an exact (case-insensitive) match over a suffixed duplicate
        for task_list in self.lists:
            if task_list.name.strip().lower() == (name or "").strip().lower():
                return task_list
        for task_list in self.lists:
            if list_name_matches(task_list.name, name):
                return task_list
        return None

    def find_task(self, task_id: str) -> Tuple[Optional[TaskList], Optional[RemoteTask]]:
        for task_list in self.lists:
            task = task_list.get_task(task_id)
            if task is not None:
                return task_list, task
        return None, None

    def add_list(self, task_list: TaskList) -> None:
        existing = self.get_list(task_list.list_id)
        if existing is None:
            self.lists.append(task_list)

    def to_dict(self) -> Dict[str, Any]:
        return {"lists": [task_list.to_dict() for task_list in self.lists]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TaskListCollection:
        lists = []
        for entry in (data or {}).get("lists", []):
            if isinstance(entry, dict) and entry.get("listId"):
                lists.append(TaskList.from_dict(entry))
        return cls(lists=lists)


@dataclass
class LocalTaskRecord:
    """A task block discovered in the vault, keyed by its block anchor."""

    anchor_id: str
    modified_time: datetime
    raw_text: str
    path: str
    line_number: int = 0


@dataclass
class ReconcileResult:
    """Outcome tally of a reconciliation pass."""

    pushed: int = 0
    pulled: int = 0
    skipped: int = 0
    failed: int = 0
    failed_lists: List[str] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return self.pushed + self.pulled


@dataclass
class PushResult:
    """Outcome of pushing task lines from a note."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0


@dataclass
class SyncConfig:
    """Main configuration for mstodo-sync."""

    vault_path: Optional[str] = None
    list_id: Optional[str] = None
    list_name: Optional[str] = None
    resolve_list_by: str = "id"  # "id" or "name"
    create_list_if_missing: bool = False
    task_id_lookup: Dict[str, str] = field(default_factory=dict)
    inbox_path: str = "MicrosoftToDoInbox.md"
    summary_path: Optional[str] = None
    include_completed_missing: bool = False
    # Graph / HTTP settings
    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    request_timeout: float = 30.0
    max_attempts: int = 3
    backoff_base: float = 1.0
    backoff_max: float = 30.0
    # Paths
    token_path: Optional[str] = None
    cache_path: Optional[str] = None
    lock_timeout: float = 60.0

    def __post_init__(self) -> None:
        manager = get_path_manager()

        if self.cache_path is None:
            self.cache_path = str(manager.delta_cache_path)
        else:
            self.cache_path = _normalize_path(self.cache_path)

        if self.token_path is None:
            self.token_path = str(manager.token_path)
        else:
            self.token_path = _normalize_path(self.token_path)

        if self.vault_path:
            self.vault_path = _normalize_path(self.vault_path)

        if self.resolve_list_by not in ("id", "name"):
            self.resolve_list_by = "id"

        self.task_id_lookup = {
            str(anchor).lower(): str(task_id)
            for anchor, task_id in (self.task_id_lookup or {}).items()
            if anchor and task_id
        }

    # ------------------------------------------------------------------
    # Anchor lookup helpers
    # ------------------------------------------------------------------
    def get_task_id(self, anchor_id: str) -> Optional[str]:
        if not anchor_id:
            return None
        return self.task_id_lookup.get(anchor_id.lower())

    def set_task_id(self, anchor_id: str, task_id: str) -> None:
        self.task_id_lookup[anchor_id.lower()] = task_id

    def remove_anchor(self, anchor_id: str) -> bool:
        return self.task_id_lookup.pop(anchor_id.lower(), None) is not None

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    @classmethod
    def load_from_file(cls, config_path: str) -> SyncConfig:
        config_path = _normalize_path(config_path)
        if not os.path.exists(config_path):
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError):
            return cls()

        if not isinstance(data, dict):
            return cls()

        vault = data.get("vault", {})
        todo = data.get("todo", {})
        graph = data.get("graph", {})
        paths = data.get("paths", {})

        return cls(
            vault_path=vault.get("path", data.get("vault_path")),
            list_id=todo.get("list_id"),
            list_name=todo.get("list_name"),
            resolve_list_by=todo.get("resolve_list_by", "id"),
            create_list_if_missing=todo.get("create_list_if_missing", False),
            task_id_lookup=data.get("task_id_lookup", {}),
            inbox_path=vault.get("inbox_path", "MicrosoftToDoInbox.md"),
            summary_path=vault.get("summary_path"),
            include_completed_missing=todo.get("include_completed_missing", False),
            graph_base_url=graph.get("base_url", "https://graph.microsoft.com/v1.0"),
            request_timeout=graph.get("request_timeout", 30.0),
            max_attempts=graph.get("max_attempts", 3),
            backoff_base=graph.get("backoff_base", 1.0),
            backoff_max=graph.get("backoff_max", 30.0),
            token_path=paths.get("token"),
            cache_path=paths.get("delta_cache"),
            lock_timeout=paths.get("lock_timeout", 60.0),
        )

    def save_to_file(self, config_path: str) -> None:
        config_path = _normalize_path(config_path)
        os.makedirs(os.path.dirname(config_path), exist_ok=True)

        data = {
            "vault": {
                "path": self.vault_path,
                "inbox_path": self.inbox_path,
                "summary_path": self.summary_path,
            },
            "todo": {
                "list_id": self.list_id,
                "list_name": self.list_name,
                "resolve_list_by": self.resolve_list_by,
                "create_list_if_missing": self.create_list_if_missing,
                "include_completed_missing": self.include_completed_missing,
            },
            "graph": {
                "base_url": self.graph_base_url,
                "request_timeout": self.request_timeout,
                "max_attempts": self.max_attempts,
                "backoff_base": self.backoff_base,
                "backoff_max": self.backoff_max,
            },
            "paths": {
                "token": self.token_path,
                "delta_cache": self.cache_path,
                "lock_timeout": self.lock_timeout,
            },
            "task_id_lookup": self.task_id_lookup,
        }

        with open(config_path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, ensure_ascii=False)
