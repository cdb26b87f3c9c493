"""Lifecycle events emitted by a datastore after every mutation."""
from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

__all__ = ["Event", "EventKind", "EventSlot", "EventCallback"]


class EventKind(str, enum.Enum):
    WRITE = "write"
    DELETE = "delete"
    IMPORT_DB = "importDB"
    DELETE_DB = "deleteDB"


@dataclass(frozen=True)
class Event:
    """Notification record; only the fields relevant to ``event`` are set."""

    event: EventKind
    timestamp: int
    key: Optional[str] = None
    keys: Optional[list[Any]] = None
    db: Optional[str] = None

    @classmethod
    def now(cls, event: EventKind, **fields: Any) -> "Event":
        return cls(event, int(time.time() * 1000), **fields)

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"event": self.event.value}
        for name in ("key", "keys", "db"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        data["timestamp"] = self.timestamp
        return data


EventCallback = Callable[[Event], Any]


class EventSlot:
    """Holds at most one subscriber; registering again replaces it."""

    def __init__(self) -> None:
        self._callback: Optional[EventCallback] = None

    @property
    def callback(self) -> Optional[EventCallback]:
        return self._callback

    def register(self, callback: Optional[EventCallback]) -> None:
        if callback is not None and not callable(callback):
            raise TypeError("event callback must be callable")
        self._callback = callback

    def emit(self, event: Event) -> Event:
        # The return value is ignored and errors propagate to the caller.
        if self._callback is not None:
            self._callback(event)
        return event
