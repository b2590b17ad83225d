"""
Data access layer

- store.py: DataStore interface the tracker session depends on
- memory_store.py: dict-backed store for tests and offline use
- postgres_store.py: PostgreSQL store over a psycopg connection pool

postgres_store is not imported here so the in-memory store works without
a database driver configured.
"""

from dsa_tracker.db.store import DataStore
from dsa_tracker.db.memory_store import InMemoryStore

__all__ = ["DataStore", "InMemoryStore"]
