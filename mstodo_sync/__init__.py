"""
mstodo-sync - Obsidian ↔ Microsoft To Do task synchronization.
"""

__version__ = "0.1.0"
