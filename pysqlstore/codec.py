"""Record type and the text encoding of stored values."""
from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from .errors import ValidationError

__all__ = ["Entry", "encode_value", "decode_value", "to_entry"]


@dataclass(frozen=True)
class Entry:
    """A single key/value pair as returned by the datastore."""

    key: str
    value: Any = None

    def as_dict(self) -> dict[str, Any]:
        return {"key": self.key, "value": self.value}


def encode_value(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Value is not JSON serializable: {exc}") from exc


def decode_value(text: Optional[str]) -> Any:
    # empty and NULL columns both read back as None
    if not text:
        return None
    return json.loads(text)


def to_entry(record: Any) -> Entry:
    """Accept an Entry, a ``{"key", "value"}`` mapping or a ``(key, value)`` pair."""
    if isinstance(record, Entry):
        return record
    if isinstance(record, Mapping):
        if "key" not in record:
            raise ValidationError("Every record needs a key.")
        return Entry(record["key"], record.get("value"))
    if isinstance(record, (tuple, list)) and len(record) == 2:
        return Entry(record[0], record[1])
    raise ValidationError(f"Unsupported record: {record!r}")
