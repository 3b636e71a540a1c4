"""
Core module for mstodo-sync - contains domain models, configuration, and exceptions.
"""

from .models import (
    RemoteTask,
    TaskList,
    TaskListCollection,
    LocalTaskRecord,
    ReconcileResult,
    PushResult,
    TaskStatus,
    Importance,
    SyncConfig
)

from .exceptions import (
    TodoSyncError,
    ConfigurationError,
    VaultNotFoundError,
    RemoteError,
    TransientRemoteError,
    AuthenticationError,
    SyncError
)

__all__ = [
    # Models
    'RemoteTask',
    'TaskList',
    'TaskListCollection',
    'LocalTaskRecord',
    'ReconcileResult',
    'PushResult',
    'TaskStatus',
    'Importance',
    'SyncConfig',
    # Exceptions
    'TodoSyncError',
    'ConfigurationError',
    'VaultNotFoundError',
    'RemoteError',
    'TransientRemoteError',
    'AuthenticationError',
    'SyncError'
]
