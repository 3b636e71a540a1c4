"""
Utility functions for mstodo-sync.
"""

from .io import safe_read_json, safe_write_json, atomic_write, file_lock, remove_file
from .date import (
    parse_date, format_date, parse_timestamp,
    to_graph_datetime, from_graph_datetime, utc_now
)

__all__ = [
    # I/O utilities
    'safe_read_json',
    'safe_write_json',
    'atomic_write',
    'file_lock',
    'remove_file',
    # Date utilities
    'parse_date',
    'format_date',
    'parse_timestamp',
    'to_graph_datetime',
    'from_graph_datetime',
    'utc_now',
]
