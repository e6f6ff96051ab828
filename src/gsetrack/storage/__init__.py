"""Persistent store adapters."""

from gsetrack.storage.base import Collection, Document, PersistentStore
from gsetrack.storage.memory import MemoryStore
from gsetrack.storage.sqlite import SqliteStore

__all__ = ["Collection", "Document", "MemoryStore", "PersistentStore", "SqliteStore"]
