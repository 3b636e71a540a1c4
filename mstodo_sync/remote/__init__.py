"""
Microsoft To Do (Graph) access for mstodo-sync.
"""

from .graph import GraphClient, GraphRequest, RetryPolicy
from .auth import ChainTokenProvider, EnvTokenProvider, FileTokenProvider, default_token_provider
from .todo_api import DeltaPage, TodoApi

__all__ = [
    'GraphClient',
    'GraphRequest',
    'RetryPolicy',
    'ChainTokenProvider',
    'EnvTokenProvider',
    'FileTokenProvider',
    'default_token_provider',
    'DeltaPage',
    'TodoApi',
]
