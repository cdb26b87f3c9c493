"""Integration tests for the key/value datastore."""
import asyncio
import logging
import time

import pytest

from pysqlstore import (
    Entry,
    EventKind,
    ExecutionError,
    Query,
    ReadError,
    SQLStore,
    ValidationError,
    WriteError,
)


@pytest.fixture
async def store(tmp_path):
    """Temporary database for each test."""
    store = SQLStore("test", datadir=tmp_path)
    await store.open()
    yield store
    await store.close()


@pytest.fixture
def kv(store):
    return store.datastore("items")


async def _fill(kv, keys):
    for k in keys:
        await kv.put(k, k.upper())


async def _tables(store):
    res = await store.run("SELECT name FROM sqlite_master WHERE type = 'table'")
    return [r["name"] for r in res.rows]


async def test_put_get(kv):
    for value in [{"n": 1}, [1, "two", None], "text", 3.5, True, None]:
        await kv.put("k", value)
        assert await kv.get("k") == Entry("k", value)


async def test_last_write_wins(kv, store):
    await kv.put("k", 1)
    await kv.put("k", 2)
    assert (await kv.get("k")).value == 2
    res = await store.run('SELECT count(*) AS c FROM "items"')
    assert res.rows[0]["c"] == 1


async def test_missing_key(kv):
    assert await kv.get("nope") == Entry("nope", None)


@pytest.mark.parametrize("key", ["", None, 5, b"bytes"])
async def test_put_requires_key(kv, key):
    with pytest.raises(ValidationError) as info:
        await kv.put(key, 1)
    assert info.value.code == 400
    assert info.value.message == "A key is required."


async def test_put_unserializable(kv):
    with pytest.raises(ValidationError):
        await kv.put("k", object())


async def test_put_failure_is_translated(kv, store):
    await kv.get("warmup")
    await store.run('DROP TABLE "items"')
    with pytest.raises(WriteError) as info:
        await kv.put("k", 1)
    assert info.value.code == 400
    assert info.value.message == "Could not write data to key."


async def test_put_event(kv):
    seen = []
    kv.on_event(seen.append)
    before = int(time.time() * 1000)
    event = await kv.put("k", 1)
    assert seen == [event]
    assert event.event == EventKind.WRITE
    assert event.key == "k"
    assert event.timestamp >= before
    assert event.as_dict() == {"event": "write", "key": "k", "timestamp": event.timestamp}


async def test_on_event_replaces_subscriber(kv):
    first, second = [], []
    kv.on_event(first.append)
    kv.on_event(second.append)
    await kv.put("k", 1)
    assert first == []
    assert len(second) == 1
    kv.on_event(None)
    await kv.put("k", 2)
    assert len(second) == 1


async def test_callback_errors_propagate(kv):
    def boom(event):
        raise RuntimeError("subscriber failed")

    kv.on_event(boom)
    with pytest.raises(RuntimeError):
        await kv.put("k", 1)
    kv.on_event(None)
    assert (await kv.get("k")).value == 1


async def test_delete(kv):
    await kv.put("x", 1)
    event = await kv.delete(["x", "y"])
    assert event.event == EventKind.DELETE
    assert event.keys == ["x", "y"]
    assert await kv.get("x") == Entry("x", None)


async def test_delete_single_key(kv):
    await kv.put("x", 1)
    event = await kv.delete("x")
    assert event.keys == ["x"]
    assert await kv.list() == []


@pytest.mark.parametrize("keys", [None, "", []])
async def test_delete_requires_keys(kv, keys):
    with pytest.raises(ValidationError):
        await kv.delete(keys)


async def test_delete_failure_is_tolerated(kv, store, caplog):
    await kv.get("warmup")
    await store.run('DROP TABLE "items"')
    seen = []
    kv.on_event(seen.append)
    with caplog.at_level(logging.WARNING, logger="pysqlstore.datastore"):
        event = await kv.delete("x")
    assert seen == [event]
    assert "delete from items failed" in caplog.text


async def test_read_failure_is_explicit(kv, store):
    await kv.get("warmup")
    await store.run('DROP TABLE "items"')
    with pytest.raises(ReadError) as info:
        await kv.get("k")
    assert isinstance(info.value.__cause__, ExecutionError)
    with pytest.raises(ReadError):
        await kv.list()


async def test_list_order_and_limit(kv):
    await _fill(kv, ["c", "a", "d", "b"])
    assert await kv.list() == ["a", "b", "c", "d"]
    assert await kv.list(reverse=True) == ["d", "c", "b", "a"]
    assert await kv.list(limit=2) == ["a", "b"]
    assert await kv.list({"limit": 2, "reverse": True}) == ["d", "c"]
    assert await kv.list(limit=0) == []


async def test_list_range(kv):
    await _fill(kv, ["a", "b", "c", "d", "e"])
    assert await kv.list(gt="a", lt="d") == ["b", "c"]
    assert await kv.list(Query(gt="c")) == ["d", "e"]
    assert await kv.list(lt="c", reverse=True) == ["b", "a"]


async def test_list_values(kv):
    await kv.put("a", {"n": 1})
    await kv.put("b", {"n": 2})
    assert await kv.list(values=True) == [Entry("a", {"n": 1}), Entry("b", {"n": 2})]


async def test_import_export(kv):
    seen = []
    kv.on_event(seen.append)
    event = await kv.import_db([
        Entry("b", 2),
        {"key": "a", "value": {"x": [1]}},
        ("c", None),
    ])
    assert event.event == EventKind.IMPORT_DB
    assert event.db == "items"
    assert event.keys == ["b", "a", "c"]
    assert seen == [event]
    assert await kv.export_db() == [Entry("a", {"x": [1]}), Entry("b", 2), Entry("c", None)]


async def test_import_overwrites(kv):
    await kv.put("a", 1)
    await kv.import_db([("a", 10), ("z", 26)])
    assert await kv.export_db() == [Entry("a", 10), Entry("z", 26)]


async def test_import_empty(kv):
    await kv.put("a", 1)
    seen = []
    kv.on_event(seen.append)
    for records in ([], None):
        event = await kv.import_db(records)
        assert event.event == EventKind.IMPORT_DB
        assert event.keys == []
        assert event.db == "items"
        assert seen[-1] is event
    assert len(seen) == 2
    assert await kv.list() == ["a"]


async def test_import_rejects_empty_key(kv, store):
    with pytest.raises(ValidationError):
        await kv.import_db([("a", 1), ("", 2)])
    with pytest.raises(ValidationError):
        await kv.import_db([object()])
    assert await _tables(store) == []
    assert await kv.list() == []


async def test_negative_limit_creates_nothing(kv, store):
    with pytest.raises(ValidationError):
        await kv.list(limit=-1)
    assert await _tables(store) == []
    assert not kv.created


async def test_import_failure_propagates(kv, store):
    await kv.get("warmup")
    await store.run('DROP TABLE "items"')
    with pytest.raises(ExecutionError):
        await kv.import_db([("a", 1)])


async def test_export_failure_propagates(kv, store):
    await kv.get("warmup")
    await store.run('DROP TABLE "items"')
    with pytest.raises(ExecutionError):
        await kv.export_db()


async def test_delete_db_recreates_lazily(kv, store):
    await _fill(kv, ["a", "b"])
    seen = []
    kv.on_event(seen.append)
    event = await kv.delete_db()
    assert event.event == EventKind.DELETE_DB
    assert event.as_dict() == {"event": "deleteDB", "db": "items", "timestamp": event.timestamp}
    assert seen == [event]
    assert not kv.created
    assert await _tables(store) == []
    assert await kv.list() == []
    assert kv.created


async def test_stores_are_isolated(store):
    one, two = store.datastore("one"), store.datastore("two")
    await one.put("k", 1)
    assert await two.get("k") == Entry("k", None)
    await two.delete_db()
    assert (await one.get("k")).value == 1


async def test_odd_table_name(store):
    kv = store.datastore('my "odd" table')
    await kv.put("k", 1)
    assert await kv.list() == ["k"]


def test_table_name_required():
    with pytest.raises(ValidationError):
        SQLStore(":memory:").datastore("")


async def test_concurrent_operations(kv, store):
    """Concurrent writers and readers: one row per key, reads see written values."""
    keys = [f"k{i:02d}" for i in range(20)]
    written = {k: set() for k in keys}

    async def writer(n):
        for k in keys:
            written[k].add(n)
            await kv.put(k, n)

    async def reader():
        for k in keys:
            entry = await kv.get(k)
            if entry.value is not None:  # key might not be written yet
                assert entry.value in written[k]
            listed = await kv.list(lt=k)
            assert listed == sorted(set(listed))

    await asyncio.gather(*[writer(n) for n in range(5)], *[reader() for _ in range(5)])

    res = await store.run('SELECT key, count(*) AS c FROM "items" GROUP BY key')
    assert {r["key"]: r["c"] for r in res.rows} == {k: 1 for k in keys}
    for entry in await kv.export_db():
        assert entry.value in range(5)
