"""High-level entry point tying the executor and datastores together.

``SQLStore`` names one embedded database and hands out per-table
:class:`~pysqlstore.datastore.Datastore` objects that share its executor.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Sequence

from .datastore import Datastore
from .errors import ValidationError
from .executor import _BUSY_TIMEOUT, _DEFAULT_SIZE, Executor, Outcome, ResultSet

__all__ = ["SQLStore", "open_database"]


class SQLStore:
    """Tiny key/value store backed by a named SQLite database."""

    def __init__(
        self,
        name: str,
        size: Optional[int] = _DEFAULT_SIZE,
        *,
        datadir: str | Path | None = None,
        busy_timeout: float = _BUSY_TIMEOUT,
    ):
        if not name or not isinstance(name, str):
            raise ValidationError("A database name is required.")
        self._executor = Executor(
            name, datadir=datadir, size_hint=size or _DEFAULT_SIZE, busy_timeout=busy_timeout
        )

    def __repr__(self) -> str:
        return f"SQLStore({self.name!r})"

    @property
    def name(self) -> str:
        return self._executor.name

    @property
    def executor(self) -> Executor:
        return self._executor

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def open(self) -> "SQLStore":
        await self._executor.open()
        return self

    async def close(self) -> None:
        await self._executor.close()

    async def __aenter__(self) -> "SQLStore":
        return await self.open()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def run(self, statement: str, params: Optional[Sequence[Any]] = None) -> ResultSet:
        return await self._executor.run(statement, params)

    async def attempt(self, statement: str, params: Optional[Sequence[Any]] = None) -> Outcome:
        return await self._executor.attempt(statement, params)

    def datastore(self, table_name: str) -> Datastore:
        """Return a new datastore for *table_name*; the table is created on first use."""
        return Datastore(self._executor, table_name)


def open_database(
    name: str,
    size: Optional[int] = _DEFAULT_SIZE,
    *,
    datadir: str | Path | None = None,
    busy_timeout: float = _BUSY_TIMEOUT,
) -> SQLStore:
    return SQLStore(name, size, datadir=datadir, busy_timeout=busy_timeout)
