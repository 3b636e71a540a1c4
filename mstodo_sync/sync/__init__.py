"""
Synchronization core: delta cache, merge, reconciliation and the engine facade.
"""

from .merger import merge_collections
from .cache import DeltaCacheStore
from .delta import DeltaSynchronizer
from .reconciler import Reconciler, push_checklist
from .context import SyncContext
from .summary import render_summary, render_today
from .engine import SyncEngine

__all__ = [
    'merge_collections',
    'DeltaCacheStore',
    'DeltaSynchronizer',
    'Reconciler',
    'push_checklist',
    'SyncContext',
    'render_summary',
    'render_today',
    'SyncEngine',
]
