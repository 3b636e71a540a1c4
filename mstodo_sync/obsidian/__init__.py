"""
Obsidian vault integration for mstodo-sync.
"""

from .parser import parse_markdown_task, format_task_line, iter_task_blocks, TaskBlock
from .tasks import ObsidianTodo, ChecklistEntry, generate_anchor_id
from .vault import VaultDocuments
from .extractor import LocalTaskExtractor

__all__ = [
    'parse_markdown_task',
    'format_task_line',
    'iter_task_blocks',
    'TaskBlock',
    'ObsidianTodo',
    'ChecklistEntry',
    'generate_anchor_id',
    'VaultDocuments',
    'LocalTaskExtractor',
]
