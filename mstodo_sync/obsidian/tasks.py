"""Structured Obsidian task blocks and anchor generation."""

import base64
import hashlib
import os
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..core.models import Importance, RemoteTask, TaskStatus
from ..utils.date import to_graph_datetime
from .parser import format_task_line, indent_width, parse_markdown_task, TASK_RE


@dataclass
class ChecklistEntry:
    title: str
    checked: bool = False


def _normalize_body(text: str) -> str:
    lines = [line.strip() for line in (text or "").replace('\r\n', '\n').split('\n')]
    return '\n'.join(line for line in lines if line)


@dataclass
class ObsidianTodo:
    """A task block parsed into fields comparable with a remote task."""

    title: str
    completed: bool = False
    importance: Importance = Importance.NORMAL
    due_date: Optional[date] = None
    body: str = ""
    checklist: List[ChecklistEntry] = field(default_factory=list)
    anchor_id: Optional[str] = None
    indent: str = ""

    @classmethod
    def from_block(cls, text: str) -> Optional["ObsidianTodo"]:
        """Parse a task block (task line plus indented lines).

        Returns None when the first line is not a task.
        """
        lines = text.split('\n')
        parsed = parse_markdown_task(lines[0])
        if parsed is None:
            return None

        base = indent_width(lines[0])
        body_lines: List[str] = []
        checklist: List[ChecklistEntry] = []
        for line in lines[1:]:
            if not line.strip() or indent_width(line) <= base:
                continue
            match = TASK_RE.match(line)
            if match:
                checklist.append(ChecklistEntry(
                    title=' '.join(match.group(3).split()),
                    checked=match.group(2).lower() == 'x',
                ))
                continue
            stripped = line.strip()
            if stripped.startswith('>'):
                stripped = stripped[1:].lstrip()
            body_lines.append(stripped)

        return cls(
            title=parsed['title'],
            completed=parsed['completed'],
            importance=parsed['importance'],
            due_date=parsed['due_date'],
            body='\n'.join(body_lines).strip(),
            checklist=checklist,
            anchor_id=parsed['anchor_id'],
            indent=parsed['indent'],
        )

    @classmethod
    def from_remote(cls, remote: RemoteTask, anchor_id: Optional[str] = None,
                    indent: str = "") -> "ObsidianTodo":
        return cls(title=remote.title, anchor_id=anchor_id, indent=indent).apply_remote(remote)

    def to_markdown(self) -> str:
        """Render the block; body as a quote, checklist as nested items."""
        lines = [format_task_line(
            self.title,
            completed=self.completed,
            due_date=self.due_date,
            importance=self.importance,
            anchor_id=self.anchor_id,
            indent=self.indent,
        )]
        child = f"{self.indent}  "
        for body_line in self.body.split('\n') if self.body else []:
            lines.append(f"{child}> {body_line}".rstrip())
        for item in self.checklist:
            lines.append(f"{child}- [{'x' if item.checked else ' '}] {item.title}")
        return '\n'.join(lines)

    def matches(self, remote: RemoteTask) -> bool:
        """Field-for-field comparison with a remote task."""
        if self.title.strip() != remote.title.strip():
            return False
        if self.completed != remote.completed:
            return False
        if self.importance != remote.importance:
            return False
        if self.due_date != remote.due_date:
            return False
        if _normalize_body(self.body) != _normalize_body(remote.body_content):
            return False
        remote_items = remote.checklist_items
        if remote_items is not None:
            if self.checklist_pairs() != _remote_checklist_pairs(remote_items):
                return False
        return True

    def checklist_pairs(self) -> List[Tuple[str, bool]]:
        return [(item.title.strip(), item.checked) for item in self.checklist]

    def to_update_payload(self) -> Dict[str, Any]:
        """Fields the task update/create operations accept."""
        status = TaskStatus.COMPLETED if self.completed else TaskStatus.NOT_STARTED
        return {
            "title": self.title,
            "status": status.value,
            "importance": self.importance.value,
            "dueDateTime": to_graph_datetime(self.due_date),
            "body": {"content": self.body, "contentType": "text"},
        }

    def apply_remote(self, remote: RemoteTask) -> "ObsidianTodo":
        """Return a copy carrying the remote fields; anchor and indent are kept."""
        remote_items = remote.checklist_items
        checklist = self.checklist
        if remote_items is not None:
            checklist = [ChecklistEntry(title, checked)
                         for title, checked in _remote_checklist_pairs(remote_items)]
        return replace(
            self,
            title=remote.title.strip(),
            completed=remote.completed,
            importance=remote.importance,
            due_date=remote.due_date,
            body=remote.body_content,
            checklist=list(checklist),
        )


def _remote_checklist_pairs(items: Iterable[Dict[str, Any]]) -> List[Tuple[str, bool]]:
    return [
        ((item.get("displayName") or "").strip(), bool(item.get("isChecked")))
        for item in items
    ]


def generate_anchor_id(vault_path: str, file_path: str, line_number: int,
                       title: str, existing_ids: Optional[Set[str]] = None) -> str:
    """Generate a stable anchor for a new task block.

    SHA1 of the task's location and normalized title, base32 encoded and
    cut to 8 characters; a numeric suffix is appended on collision.
    """
    normalized = title.strip().lower()
    vault_id = os.path.basename(os.path.normpath(vault_path))
    unique_string = f"{vault_id}|{file_path}|{line_number}|{normalized}"

    digest = hashlib.sha1(unique_string.encode('utf-8')).digest()
    base_id = base64.b32encode(digest).decode('ascii')[:8].lower()

    anchor_id = base_id
    counter = 1
    existing = existing_ids or set()
    while anchor_id in existing:
        anchor_id = f"{base_id}{counter}"
        counter += 1
    return anchor_id
