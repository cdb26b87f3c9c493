"""Statement builders for the two-column key/value table.

All table access goes through the helpers below so that clause text and
bound parameters never mix: user supplied keys and bounds are always passed
as ``?`` parameters, only the (quoted) table name and the validated integer
limit are rendered into the SQL text.
"""
from __future__ import annotations

import dataclasses
import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional, Sequence

from .errors import ValidationError

__all__ = [
    "Query",
    "Statement",
    "quote_identifier",
    "create_table",
    "drop_table",
    "select_one",
    "select_range",
    "replace_one",
    "replace_many",
    "delete_keys",
]


class Statement(NamedTuple):
    sql: str
    params: list[Any]


@dataclass(frozen=True)
class Query:
    """Options understood by ``Datastore.list``.

    ``lt`` / ``gt`` are exclusive key bounds, ``reverse`` switches to
    descending key order, ``limit`` caps the number of rows and ``values``
    includes the decoded value next to every key.
    """

    lt: Any = None
    gt: Any = None
    reverse: bool = False
    limit: Any = None
    values: bool = False

    @classmethod
    def coerce(cls, query: "Query | Mapping[str, Any] | None" = None, **options: Any) -> "Query":
        """Build a Query from another Query, a mapping and/or keyword options.

        Unknown options are ignored.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        options = {k: v for k, v in options.items() if k in known}
        if isinstance(query, Query):
            return dataclasses.replace(query, **options) if options else query
        data = {k: v for k, v in dict(query or {}).items() if k in known}
        data.update(options)
        return cls(**data)

    def limit_value(self) -> Optional[int]:
        """Return the floored limit, or ``None`` when no numeric limit is set."""
        limit = self.limit
        if limit is None or isinstance(limit, bool):
            return None
        if isinstance(limit, str):
            try:
                limit = float(limit.strip())
            except ValueError:
                return None
        if not isinstance(limit, numbers.Real) or not math.isfinite(limit):
            return None
        n = math.floor(limit)
        if n < 0:
            raise ValidationError("limit must be a non-negative integer.")
        return n


def quote_identifier(name: str) -> str:
    if not name or not isinstance(name, str):
        raise ValidationError("A table name is required.")
    return '"' + name.replace('"', '""') + '"'


def create_table(table: str) -> Statement:
    return Statement(
        f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} "
        "(key TEXT PRIMARY KEY NOT NULL UNIQUE, value TEXT)",
        [],
    )


def drop_table(table: str) -> Statement:
    return Statement(f"DROP TABLE IF EXISTS {quote_identifier(table)}", [])


def select_one(table: str, key: Any) -> Statement:
    return Statement(f"SELECT key, value FROM {quote_identifier(table)} WHERE key = ?", [key])


def replace_one(table: str, key: str, text: str) -> Statement:
    return Statement(f"REPLACE INTO {quote_identifier(table)} (key, value) VALUES (?, ?)", [key, text])


def replace_many(table: str, rows: Sequence[tuple[str, str]]) -> Statement:
    """Single multi-row REPLACE; one ``(?, ?)`` group per row."""
    if not rows:
        raise ValueError("replace_many needs at least one row")
    groups = ", ".join("(?, ?)" for _ in rows)
    params = [p for row in rows for p in row]
    return Statement(f"REPLACE INTO {quote_identifier(table)} (key, value) VALUES {groups}", params)


def delete_keys(table: str, keys: Sequence[Any]) -> Statement:
    marks = ", ".join("?" for _ in keys)
    return Statement(f"DELETE FROM {quote_identifier(table)} WHERE key IN ({marks})", list(keys))


def select_range(table: str, query: Query) -> Statement:
    """Translate a :class:`Query` into ``SELECT ... ORDER BY key [LIMIT n]``.

    Clause order is fixed: the ``lt`` bound comes before the ``gt`` bound,
    ordering is always by key (ascending unless ``reverse``) and the limit
    goes last.
    """
    columns = "key, value" if query.values else "key"
    clauses: list[str] = []
    params: list[Any] = []
    if query.lt:
        clauses.append("key < ?")
        params.append(str(query.lt))
    if query.gt:
        clauses.append("key > ?")
        params.append(str(query.gt))
    sql = f"SELECT {columns} FROM {quote_identifier(table)}"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY key DESC" if query.reverse else " ORDER BY key"
    limit = query.limit_value()
    if limit is not None:
        sql += f" LIMIT {limit}"
    return Statement(sql, params)
