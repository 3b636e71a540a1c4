"""Read-only markdown projections of the cached task lists."""

from datetime import date, datetime
from typing import List, Optional

from ..core.models import RemoteTask, TaskListCollection
from ..obsidian.parser import PRIORITY_SYMBOLS
from ..utils.date import format_date, utc_now


DEFAULT_SUMMARY_PATH = "Microsoft To Do Summary.md"


def _decorated_title(title: str, due_date, importance) -> str:
    parts = [title]
    if due_date:
        parts.append(f"📅 {format_date(due_date)}")
    if importance is not None:
        parts.append(PRIORITY_SYMBOLS[importance])
    return ' '.join(parts)


def _render_task(task: RemoteTask) -> List[str]:
    importance = task.importance if task.fields.get("importance") else None
    lines = [f"- [{'x' if task.completed else ' '}] "
             f"{_decorated_title(task.title or 'Untitled task', task.due_date, importance)}"]

    if task.body_content:
        for body_line in task.body_content.split('\n'):
            lines.append(f"  > {body_line}".rstrip())

    for item in task.checklist_items or []:
        checked = 'x' if item.get("isChecked") else ' '
        lines.append(f"  - [{checked}] {item.get('displayName') or 'Untitled item'}")

    lines.append("")
    return lines


def render_summary(collection: TaskListCollection, generated_at: Optional[datetime] = None) -> str:
    """Render every cached list: incomplete tasks first, then by title."""
    generated_at = generated_at or utc_now()
    lines = [
        "# Microsoft To Do Summary",
        "",
        f"> Last updated: {generated_at.strftime('%Y-%m-%d %H:%M')} UTC",
        "",
    ]

    for task_list in collection:
        tasks = [task for task in task_list.tasks.values() if task.id and not task.removed]
        if not task_list.name or not tasks:
            continue

        lines.extend([f"## {task_list.name}", ""])
        tasks.sort(key=lambda task: (task.completed, task.title.casefold()))
        for task in tasks:
            lines.extend(_render_task(task))

    return '\n'.join(lines).rstrip('\n') + '\n'


def _due_today(task: RemoteTask, today: date) -> bool:
    if not task.completed:
        return True
    completed_on = task.completed_date
    return completed_on is not None and completed_on >= today


def render_today(collection: TaskListCollection, today: Optional[date] = None) -> str:
    """Open tasks plus tasks completed today, grouped by list.

    Tasks created on an earlier day link to that day's daily note. Returns
    an empty string when nothing qualifies.
    """
    today = today or utc_now().date()
    segments = []

    for task_list in collection:
        tasks = [
            task for task in task_list.tasks.values()
            if task.id and not task.removed and _due_today(task, today)
        ]
        if not tasks:
            continue

        tasks.sort(key=lambda task: (task.completed, task.title.casefold()))
        lines = [f"**{task_list.name or 'Untitled list'}**"]
        for task in tasks:
            line = f"- [{'x' if task.completed else ' '}] {task.title or 'Untitled task'}"
            created = task.created_date
            if created and created != today:
                line += f"  ➕ [[{format_date(created)}]]"
            body = ' '.join(task.body_content.split())
            if body:
                line += f"  💡 {body}"
            lines.append(line)
        segments.append('\n'.join(lines))

    return '\n\n'.join(segments) + '\n' if segments else ""
