"""Snapshot files: a portable dump of one datastore.

A snapshot is a flat sequence of length-prefixed *msgpack* frames:

    ┌──────────────┬──────────────────────────────┐
    │ <u32 length> │ msgpack [key, value]         │
    └──────────────┴──────────────────────────────┘

Frames are written in key order as produced by ``Datastore.export_db`` and
read back verbatim, so ``load`` restores both keys and decoded values.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable

import msgpack

from .codec import Entry
from .errors import SnapshotError

__all__ = ["write_snapshot", "read_snapshot"]

_LEN_BYTES = 4


def _frame(entry: Entry) -> bytes:
    try:
        rec = msgpack.packb((entry.key, entry.value), use_bin_type=True)
    except (OverflowError, TypeError) as exc:
        raise SnapshotError(f"cannot snapshot key {entry.key!r}: {exc}") from exc
    return len(rec).to_bytes(_LEN_BYTES, "big") + rec


async def write_snapshot(path: str | Path, entries: Iterable[Entry]) -> int:
    """Write *entries* to *path*, replacing any existing file. Returns the count."""
    frames = [_frame(e) for e in entries]
    await asyncio.to_thread(Path(path).write_bytes, b"".join(frames))
    return len(frames)


async def read_snapshot(path: str | Path) -> list[Entry]:
    return await asyncio.to_thread(_read_sync, Path(path))


def _read_sync(path: Path) -> list[Entry]:
    entries: list[Entry] = []
    with open(path, "rb") as fp:
        while True:
            nbytes = fp.read(_LEN_BYTES)
            if not nbytes:
                break
            if len(nbytes) < _LEN_BYTES:
                raise SnapshotError(f"{path}: truncated frame header")
            length = int.from_bytes(nbytes, "big")
            blob = fp.read(length)
            if len(blob) < length:
                raise SnapshotError(f"{path}: truncated frame")
            try:
                key, value = msgpack.unpackb(blob, raw=False)
            except (ValueError, TypeError) as exc:
                raise SnapshotError(f"{path}: corrupt frame: {exc}") from exc
            entries.append(Entry(key, value))
    return entries
