"""pysqlstore: a minimal key/value datastore on top of SQLite tables.

``pysqlstore.SQLStore`` opens a named embedded database and exposes raw
statement execution (``run``) next to per-table key/value stores
(``datastore``) supporting put/get/delete, ordered range listing, bulk
import/export, table drops and a single event subscriber.
"""

from __future__ import annotations

__all__ = [
    "SQLStore",
    "open_database",
    "Datastore",
    "Entry",
    "Event",
    "EventKind",
    "Query",
    "ResultSet",
    "DatastoreError",
    "ValidationError",
    "ExecutionError",
    "WriteError",
    "ReadError",
    "SnapshotError",
]

from .codec import Entry
from .datastore import Datastore
from .db import SQLStore, open_database
from .errors import DatastoreError, ExecutionError, ReadError, SnapshotError, ValidationError, WriteError
from .events import Event, EventKind
from .executor import ResultSet
from .query import Query
