"""Key/value datastore backed by a single two-column SQL table.

Each :class:`Datastore` maps one logical store onto one table::

    key   TEXT PRIMARY KEY NOT NULL UNIQUE
    value TEXT            -- JSON encoded

The table is created lazily before the first operation and dropped by
:meth:`Datastore.delete_db`; the next operation afterwards recreates it.

Engine failures are handled per operation:

    put            -> WriteError (engine detail is logged, not chained)
    get / list     -> ReadError
    delete         -> logged, event still emitted
    import/export/
    delete_db      -> ExecutionError propagates unchanged
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Union

from . import query as sql
from .codec import Entry, decode_value, encode_value, to_entry
from .errors import ReadError, ValidationError, WriteError
from .events import Event, EventCallback, EventKind, EventSlot
from .executor import Executor
from .query import Query
from .snapshot import read_snapshot, write_snapshot

__all__ = ["Datastore"]

logger = logging.getLogger(__name__)


class Datastore:
    """Per-table key/value interface. Obtain one via ``SQLStore.datastore``."""

    def __init__(self, executor: Executor, table_name: str):
        sql.quote_identifier(table_name)  # reject unusable names early
        self._executor = executor
        self._table = table_name
        self._created = False
        self._events = EventSlot()

    def __repr__(self) -> str:
        return f"Datastore({self._executor.name!r}, {self._table!r})"

    @property
    def table_name(self) -> str:
        return self._table

    @property
    def created(self) -> bool:
        return self._created

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on_event(self, callback: Optional[EventCallback]) -> None:
        """Register the single event subscriber, replacing any previous one."""
        self._events.register(callback)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def put(self, key: str, value: Any) -> Event:
        if not key or not isinstance(key, str):
            raise ValidationError("A key is required.")
        text = encode_value(value)
        await self._ensure_table()
        outcome = await self._executor.attempt(*sql.replace_one(self._table, key, text))
        if not outcome.ok:
            logger.warning("write %s[%r] failed: %s", self._table, key, outcome.error)
            raise WriteError("Could not write data to key.") from None
        return self._events.emit(Event.now(EventKind.WRITE, key=key))

    async def get(self, key: str) -> Entry:
        """Return ``Entry(key, value)``; value is ``None`` when the key is absent."""
        await self._ensure_table()
        outcome = await self._executor.attempt(*sql.select_one(self._table, key))
        if not outcome.ok:
            raise ReadError(f"Could not read key {key!r}.") from outcome.error
        rows = outcome.result.rows
        return Entry(key, decode_value(rows[0]["value"]) if rows else None)

    async def delete(self, keys: Union[str, Sequence[str]]) -> Event:
        """Delete one key or a sequence of keys. Missing keys are not an error."""
        if not keys:
            raise ValidationError("A key or an array of keys is required.")
        key_ids = [keys] if isinstance(keys, str) else list(keys)
        await self._ensure_table()
        outcome = await self._executor.attempt(*sql.delete_keys(self._table, key_ids))
        if not outcome.ok:
            logger.warning("delete from %s failed: %s", self._table, outcome.error)
        return self._events.emit(Event.now(EventKind.DELETE, keys=key_ids))

    async def list(self, query: Union[Query, Mapping[str, Any], None] = None, **options: Any) -> list:
        """List keys, or entries when ``values`` is set, in key order.

        Accepts a :class:`Query`, a mapping or keyword options
        (``lt``, ``gt``, ``reverse``, ``limit``, ``values``).
        """
        q = Query.coerce(query, **options)
        stmt = sql.select_range(self._table, q)
        await self._ensure_table()
        outcome = await self._executor.attempt(*stmt)
        if not outcome.ok:
            raise ReadError(f"Could not list {self._table}.") from outcome.error
        if q.values:
            return [Entry(str(row["key"]), decode_value(row["value"])) for row in outcome.result.rows]
        return [str(row["key"]) for row in outcome.result.rows]

    async def import_db(self, records: Optional[Iterable[Any]]) -> Event:
        """Upsert *records* with one multi-row statement."""
        entries = [to_entry(r) for r in records or ()]
        rows = []
        for entry in entries:
            if entry.key is None or entry.key == "":
                raise ValidationError("Every record needs a key.")
            rows.append((str(entry.key), encode_value(entry.value)))
        await self._ensure_table()
        if not rows:
            return self._events.emit(Event.now(EventKind.IMPORT_DB, db=self._table, keys=[]))
        await self._executor.run(*sql.replace_many(self._table, rows))
        keys = [entry.key for entry in entries]
        return self._events.emit(Event.now(EventKind.IMPORT_DB, db=self._table, keys=keys))

    async def export_db(self) -> list[Entry]:
        """Every entry in key order. Engine failures propagate as ExecutionError."""
        await self._ensure_table()
        result = await self._executor.run(*sql.select_range(self._table, Query(values=True)))
        return [Entry(str(row["key"]), decode_value(row["value"])) for row in result.rows]

    async def delete_db(self) -> Event:
        await self._ensure_table()
        await self._executor.run(*sql.drop_table(self._table))
        self._created = False
        logger.debug("dropped table %s", self._table)
        return self._events.emit(Event.now(EventKind.DELETE_DB, db=self._table))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    async def dump(self, path: str | Path) -> int:
        """Write every entry to a snapshot file, returns the number written."""
        return await write_snapshot(path, await self.export_db())

    async def load(self, path: str | Path) -> Event:
        return await self.import_db(await read_snapshot(path))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _ensure_table(self) -> None:
        if not self._created:
            await self._executor.run(*sql.create_table(self._table))
            self._created = True
            logger.debug("ensured table %s", self._table)
