"""
Command implementations for mstodo-sync.
"""

from .sync import SyncCommand
from .cache import ResetCacheCommand, ListsCommand
from .missing import AddMissingCommand
from .summary import SummaryCommand, TodayCommand
from .cleanup import CleanupCommand
from .push import PushCommand, PullCommand

__all__ = [
    'SyncCommand',
    'ResetCacheCommand',
    'ListsCommand',
    'AddMissingCommand',
    'SummaryCommand',
    'TodayCommand',
    'CleanupCommand',
    'PushCommand',
    'PullCommand',
]
