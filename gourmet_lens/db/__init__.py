"""Persistence for the scan history."""

from .backends import KeyValueBackend, MemoryBackend, SQLiteBackend
from .history import MAX_HISTORY, STORAGE_KEY, HistoryStore
from .schema import ensure_schema

__all__ = [
    "HistoryStore",
    "KeyValueBackend",
    "MemoryBackend",
    "SQLiteBackend",
    "MAX_HISTORY",
    "STORAGE_KEY",
    "ensure_schema",
]
