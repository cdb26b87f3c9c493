"""Unit tests for the statement builders."""
import pytest

from pysqlstore.errors import ValidationError
from pysqlstore.query import (
    Query,
    create_table,
    delete_keys,
    quote_identifier,
    replace_many,
    select_range,
)


def test_default_list_statement():
    stmt = select_range("items", Query())
    assert stmt.sql == 'SELECT key FROM "items" ORDER BY key'
    assert stmt.params == []


def test_values_column_and_reverse():
    stmt = select_range("items", Query(values=True, reverse=True))
    assert stmt.sql == 'SELECT key, value FROM "items" ORDER BY key DESC'


def test_bounds_are_bound_not_rendered():
    stmt = select_range("items", Query(lt="m", gt=5))
    assert stmt.sql == 'SELECT key FROM "items" WHERE key < ? AND key > ? ORDER BY key'
    assert stmt.params == ["m", "5"]


def test_single_bound():
    stmt = select_range("items", Query(gt="b"))
    assert stmt.sql == 'SELECT key FROM "items" WHERE key > ? ORDER BY key'
    assert stmt.params == ["b"]


@pytest.mark.parametrize(
    "limit, expected",
    [(10, 10), (2.9, 2), ("3", 3), (" 4.5 ", 4), (0, 0)],
)
def test_limit_is_floored(limit, expected):
    stmt = select_range("items", Query(limit=limit))
    assert stmt.sql.endswith(f"ORDER BY key LIMIT {expected}")


@pytest.mark.parametrize("limit", [None, "abc", True, float("nan"), float("inf")])
def test_non_numeric_limit_is_ignored(limit):
    assert "LIMIT" not in select_range("items", Query(limit=limit)).sql


def test_negative_limit_rejected():
    with pytest.raises(ValidationError):
        select_range("items", Query(limit=-1))


def test_coerce_from_mapping_and_options():
    q = Query.coerce({"values": True, "deep": True}, limit=5)
    assert q == Query(values=True, limit=5)
    assert Query.coerce(q) is q
    assert Query.coerce(q, reverse=True) == Query(values=True, limit=5, reverse=True)
    assert Query.coerce() == Query()


def test_quote_identifier():
    assert quote_identifier('odd"name') == '"odd""name"'
    with pytest.raises(ValidationError):
        quote_identifier("")


def test_bulk_replace_one_group_per_row():
    stmt = replace_many("items", [("a", "1"), ("b", "2")])
    assert stmt.sql == 'REPLACE INTO "items" (key, value) VALUES (?, ?), (?, ?)'
    assert stmt.params == ["a", "1", "b", "2"]


def test_delete_one_placeholder_per_key():
    stmt = delete_keys("items", ["a", "b", "c"])
    assert stmt.sql.endswith("WHERE key IN (?, ?, ?)")
    assert stmt.params == ["a", "b", "c"]


def test_create_table_schema():
    assert create_table("items").sql == (
        'CREATE TABLE IF NOT EXISTS "items" (key TEXT PRIMARY KEY NOT NULL UNIQUE, value TEXT)'
    )
