"""Durable key/value store abstractions and record codecs."""

import logging
from dataclasses import dataclass, field
from typing import Protocol, TypeVar

from pydantic import TypeAdapter, ValidationError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreKey:
    """Keys under which app state is persisted."""

    GOALS = "SM.goals.v1"
    TODAY_MEALS = "SM.today.meals.v1"
    TODAY_TOTALS = "SM.today.totals.v1"
    LAST_DAY = "SM.last.day.v1"
    USAGE_COUNT = "SM.usage.count.v1"
    HISTORY = "SM.history.v1"


class DurableStore(Protocol):
    """Generic key to bytes persistence."""

    def get_bytes(self, key: str) -> bytes | None:
        """Return the stored bytes for a key, if present."""

    def set_bytes(self, key: str, value: bytes) -> None:
        """Store bytes under a key, replacing any previous value."""

    def delete(self, key: str) -> None:
        """Remove a key if present."""


@dataclass
class InMemoryDurableStore(DurableStore):
    """Process-local store for development and tests."""

    _entries: dict[str, bytes] = field(default_factory=dict, init=False, repr=False)

    def get_bytes(self, key: str) -> bytes | None:
        return self._entries.get(key)

    def set_bytes(self, key: str, value: bytes) -> None:
        self._entries[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)


def load_record(store: DurableStore, key: str, adapter: TypeAdapter[T]) -> T | None:
    """Decode a stored record, treating undecodable bytes as absent."""
    raw = store.get_bytes(key)
    if raw is None:
        return None
    try:
        return adapter.validate_json(raw)
    except ValidationError as exc:
        _logger.warning(
            "Discarding unreadable stored value: key=%s errors=%s",
            key,
            exc.error_count(),
        )
        return None


def save_record(
    store: DurableStore, key: str, adapter: TypeAdapter[T], value: T
) -> None:
    """Encode a record as JSON bytes and store it."""
    store.set_bytes(key, adapter.dump_json(value))
