"""Exception hierarchy shared by the executor and the datastore.

Every error carries an HTTP-like ``code`` (``400`` for caller mistakes,
``None`` when there is no meaningful status) and a human readable
``message`` so that callers can surface failures uniformly.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

__all__ = [
    "DatastoreError",
    "ValidationError",
    "ExecutionError",
    "WriteError",
    "ReadError",
    "SnapshotError",
]


class DatastoreError(Exception):
    """Base class for every error raised by pysqlstore."""

    code: Optional[int] = None

    def __init__(self, message: str, *, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(DatastoreError):
    """Caller supplied arguments are unusable; nothing was executed."""

    code = 400


class ExecutionError(DatastoreError):
    """The SQL engine rejected a statement.

    Keeps the underlying driver error together with the statement and the
    bound parameters of the failed transaction.
    """

    def __init__(self, error: BaseException, statement: str, params: Sequence[Any] = ()):
        super().__init__("Error executing SQL statement.")
        self.error = error
        self.statement = statement
        self.params = list(params)

    def __str__(self) -> str:
        return f"{self.message} {self.error} [{self.statement}]"


class WriteError(DatastoreError):
    code = 400


class ReadError(DatastoreError):
    pass


class SnapshotError(DatastoreError):
    pass
