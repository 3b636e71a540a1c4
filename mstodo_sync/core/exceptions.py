"""
Exception classes for mstodo-sync.
"""

from typing import Optional


class TodoSyncError(Exception):
    """Base exception for all mstodo-sync errors."""
    pass


class ConfigurationError(TodoSyncError):
    """Raised when configuration is invalid or missing."""
    pass


class VaultNotFoundError(TodoSyncError):
    """Raised when an Obsidian vault cannot be found."""
    pass


class RemoteError(TodoSyncError):
    """Base exception for Microsoft To Do / Graph errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientRemoteError(RemoteError):
    """Raised for network failures, throttling and 5xx responses."""
    pass


class AuthenticationError(RemoteError):
    """Raised when the access token is missing, expired or rejected."""
    pass


class SyncError(TodoSyncError):
    """Raised when sync operations fail."""
    pass
