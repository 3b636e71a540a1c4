"""
Markdown task parsing utilities.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterator, List, Optional

from ..core.models import Importance
from ..utils.date import format_date, parse_date


# Regular expressions for parsing tasks
TASK_RE = re.compile(r'^(\s*)[-*]\s+\[([xX ])\]\s+(.*)$')
ANCHOR_RE = re.compile(r'(?:^|\s)\^([A-Za-z0-9]+)\s*$')
_MARKER = r'(?:📅\s*\d{4}-\d{1,2}-\d{1,2}|⏫|🔼|🔽)'
# Metadata is only read from the end of the line, after the title
TRAILING_META_RE = re.compile(r'(?:^|\s+)(' + _MARKER + r')\s*$')
# A title ending in something that looks like metadata is written with a
# backslash before it; the run of backslashes must follow whitespace
TITLE_TAIL_RE = re.compile(r'(?:^|(?<=\s))(\\*)' + _MARKER + r'$')
DUE_DATE_RE = re.compile(r'📅\s*(\d{4}-\d{1,2}-\d{1,2})')

PRIORITY_SYMBOLS = {
    Importance.HIGH: '⏫',
    Importance.NORMAL: '🔼',
    Importance.LOW: '🔽',
}
SYMBOL_PRIORITIES = {symbol: importance for importance, symbol in PRIORITY_SYMBOLS.items()}


@dataclass
class TaskBlock:
    """An anchored task line plus its deeper-indented continuation lines."""

    start: int  # index of the task line
    end: int  # exclusive
    anchor_id: str
    lines: List[str]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def indent_width(line: str) -> int:
    expanded = line.expandtabs(4)
    return len(expanded) - len(expanded.lstrip(' '))


def escape_title(title: str) -> str:
    """Protect a trailing marker inside a title from being read as metadata."""
    match = TITLE_TAIL_RE.search(title)
    if not match:
        return title
    return title[:match.start(1)] + '\\' + title[match.start(1):]


def unescape_title(title: str) -> str:
    match = TITLE_TAIL_RE.search(title)
    if not match or not match.group(1):
        return title
    return title[:match.start(1)] + title[match.start(1) + 1:]


def parse_markdown_task(line: str) -> Optional[Dict[str, Any]]:
    """
    Parse a markdown task line into components.

    Due date and priority are recognised only as trailing tokens between
    the title and the anchor; markers inside the title stay part of it.

    Args:
        line: Raw markdown line

    Returns:
        Dictionary with parsed task data or None if not a task
    """
    match = TASK_RE.match(line)
    if not match:
        return None

    indent = match.group(1)
    completed = match.group(2).lower() == 'x'
    content = match.group(3).rstrip()

    anchor_id = None
    anchor_match = ANCHOR_RE.search(content)
    if anchor_match:
        anchor_id = anchor_match.group(1).lower()
        content = content[:anchor_match.start()].rstrip()

    due_date = None
    importance = None
    meta_match = TRAILING_META_RE.search(content)
    while meta_match:
        token = meta_match.group(1)
        due_match = DUE_DATE_RE.match(token)
        if due_match:
            if due_date is None:
                due_date = parse_date(due_match.group(1))
        elif importance is None:
            importance = SYMBOL_PRIORITIES[token]
        content = content[:meta_match.start()]
        meta_match = TRAILING_META_RE.search(content)

    title = unescape_title(' '.join(content.split()))

    return {
        'completed': completed,
        'title': title,
        'anchor_id': anchor_id,
        'due_date': due_date,
        # No symbol means normal importance
        'importance': importance or Importance.NORMAL,
        'indent': indent,
        'raw_line': line,
    }


def format_task_line(
    title: str,
    completed: bool = False,
    due_date: Optional[date] = None,
    importance: Importance = Importance.NORMAL,
    anchor_id: Optional[str] = None,
    indent: str = ""
) -> str:
    """Format a task into the ``- [ ] title 📅 date ⏫ ^anchor`` line format."""
    parts = [f"{indent}- [{'x' if completed else ' '}]", escape_title(title.strip())]

    if due_date:
        parts.append(f"📅 {format_date(due_date)}")

    if importance != Importance.NORMAL:
        parts.append(PRIORITY_SYMBOLS[importance])

    if anchor_id:
        parts.append(f"^{anchor_id}")

    return ' '.join(part for part in parts if part)


def block_end(lines: List[str], start: int) -> int:
    """Index just past the last line belonging to the block starting at ``start``."""
    base = indent_width(lines[start])
    end = start + 1
    while end < len(lines):
        line = lines[end]
        if not line.strip() or indent_width(line) <= base:
            break
        end += 1
    return end


def iter_task_blocks(text: str, anchored_only: bool = True) -> Iterator[TaskBlock]:
    """Yield task blocks found in a document, in document order."""
    lines = text.split('\n')
    index = 0
    while index < len(lines):
        parsed = parse_markdown_task(lines[index])
        if parsed is None or (anchored_only and not parsed['anchor_id']):
            index += 1
            continue
        end = block_end(lines, index)
        yield TaskBlock(
            start=index,
            end=end,
            anchor_id=parsed['anchor_id'] or "",
            lines=lines[index:end],
        )
        index = end


def document_newline(text: str) -> str:
    return '\r\n' if '\r\n' in text else '\n'


def match_newlines(rendered: str, document: str, replaced: str = "") -> str:
    """Give freshly rendered text the newline style of ``document``.

    ``replaced`` is the span being overwritten. Spans cut from a CRLF note
    by splitting on ``\\n`` end in ``\\r``, which is kept.
    """
    keep_cr = replaced.endswith('\r')
    if document_newline(document) == '\n' and not keep_cr:
        return rendered
    converted = rendered.replace('\r\n', '\n').replace('\n', '\r\n')
    return converted + '\r' if keep_cr else converted
