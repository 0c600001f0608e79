"""Database package - async SQLite key-value store backing the local cache.

``from taskflow.database import LocalCache, DatabaseError``
"""
from taskflow.database.helpers import DatabaseError  # noqa: F401
from taskflow.database.core import LocalCache  # noqa: F401
