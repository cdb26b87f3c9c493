"""SQL statement executor for the embedded SQLite engine.

The executor is the only component that talks to the driver. It owns a
single connection per named database, opened lazily on the first statement
and reused afterwards. Every statement runs inside its own transaction and
the blocking driver calls are pushed to a worker thread so the event loop
is never stalled.

Statements are serialized with an :class:`asyncio.Lock`; callers therefore
observe one transaction at a time against a database, which is the only
ordering guarantee the datastore layer relies on.
"""
from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Optional, Sequence, Union

from .errors import ExecutionError

__all__ = ["Executor", "ResultSet", "Success", "Failure", "Outcome"]

logger = logging.getLogger(__name__)

_DEFAULT_SIZE = 2 * 1024 * 1024  # advisory only, mirrors the engine's size hint
_MEMORY = ":memory:"
_SUFFIX = ".sqlite3"
_BUSY_TIMEOUT = 5.0  # seconds, the driver default


@dataclass
class ResultSet:
    """Rows returned by a statement plus the engine's bookkeeping."""

    rows: list[sqlite3.Row] = field(default_factory=list)
    rows_affected: int = 0
    insert_id: Optional[int] = None


@dataclass(frozen=True)
class Success:
    result: ResultSet
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    error: ExecutionError
    ok: ClassVar[bool] = False


Outcome = Union[Success, Failure]


class Executor:
    """Run SQL statements against one named SQLite database.

    Parameters
    ----------
    name: str
        Logical database name. ``":memory:"`` opens a private in-memory
        database, any other name maps to ``<datadir>/<name>.sqlite3``.
    datadir: str | Path | None
        Directory holding database files, defaults to the working directory.
    size_hint: int
        Expected database size in bytes. Recorded, never enforced.
    busy_timeout: float
        Seconds to wait for a lock held by another connection before the
        engine reports "database is locked".
    """

    def __init__(
        self,
        name: str,
        *,
        datadir: str | Path | None = None,
        size_hint: int = _DEFAULT_SIZE,
        busy_timeout: float = _BUSY_TIMEOUT,
    ) -> None:
        self.name = name
        self.size_hint = size_hint
        self.busy_timeout = busy_timeout
        self._dir = Path(datadir) if datadir is not None else Path(".")
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Optional[Path]:
        """Database file location, ``None`` for in-memory databases."""
        if self.name == _MEMORY:
            return None
        return self._dir / f"{self.name}{_SUFFIX}"

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def open(self) -> None:
        async with self._lock:
            await self._open_locked()

    async def close(self) -> None:
        async with self._lock:
            if self._conn is not None:
                await asyncio.to_thread(self._conn.close)
                self._conn = None
                logger.debug("closed database %s", self.name)

    async def _open_locked(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = await asyncio.to_thread(self._connect)
            logger.debug("opened database %s (size hint %d bytes)", self.name, self.size_hint)
        return self._conn

    def _connect(self) -> sqlite3.Connection:
        path = self.path
        if path is None:
            target = _MEMORY
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)
        # Autocommit at the driver level; transactions are issued explicitly.
        conn = sqlite3.connect(
            target, timeout=self.busy_timeout, isolation_level=None, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        return conn

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    async def run(self, statement: str, params: Optional[Sequence[Any]] = None) -> ResultSet:
        """Execute *statement* with positional *params* in one transaction.

        Raises :class:`ExecutionError` when the engine rejects the statement.
        """
        bound = list(params or [])
        async with self._lock:
            conn = await self._open_locked()
            logger.debug("%s: %s %r", self.name, statement, bound)
            worker = asyncio.ensure_future(asyncio.to_thread(self._execute, conn, statement, bound))
            try:
                return await asyncio.shield(worker)
            except sqlite3.Error as exc:
                raise ExecutionError(exc, statement, bound) from exc
            except asyncio.CancelledError:
                # The connection stays in use until the worker thread returns.
                await asyncio.wait([worker])
                if not worker.cancelled():
                    worker.exception()
                raise

    async def attempt(self, statement: str, params: Optional[Sequence[Any]] = None) -> Outcome:
        """Like :meth:`run` but report engine failures as a :class:`Failure`."""
        try:
            return Success(await self.run(statement, params))
        except ExecutionError as exc:
            return Failure(exc)

    @staticmethod
    def _execute(conn: sqlite3.Connection, statement: str, params: list[Any]) -> ResultSet:
        conn.execute("BEGIN")
        try:
            cur = conn.execute(statement, params)
            rows = cur.fetchall()
            conn.commit()
        except BaseException:
            if conn.in_transaction:
                conn.rollback()
            raise
        return ResultSet(rows=rows, rows_affected=max(cur.rowcount, 0), insert_id=cur.lastrowid)
