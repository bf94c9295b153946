"""Timeline stores -- persisted ``cycle name -> last fired (epoch ms)``.

Stores hold no scheduling logic. The scheduler reads a timestamp, decides,
and writes the new one back; everything here is about keeping those writes
ordered per key and durable.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Iterator
from pathlib import Path

from ._json_store import JsonStore

logger = logging.getLogger(__name__)


class TimelineStore:
    """In-memory timeline map with a pluggable durable write.

    Subclasses override :meth:`_write` to persist a full copy of the map.
    Every mutation marks the store dirty; with write-through enabled the
    mutation is persisted before the call returns, otherwise it waits for
    :meth:`flush`. A failed write leaves the store dirty so the next flush
    retries it.
    """

    write_through: bool = True

    def __init__(self, entries: dict[str, int] | None = None) -> None:
        self._entries: dict[str, int] = dict(entries or {})
        self._lock = threading.RLock()
        self._dirty = False
        self._deferred = 0

    # -- reads -------------------------------------------------------------

    def get_last_fired(self, name: str) -> int | None:
        return self._entries.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._entries)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # -- writes ------------------------------------------------------------

    def set_last_fired(self, name: str, timestamp: int) -> None:
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise TypeError(f"Timestamp must be epoch milliseconds (int), got {timestamp!r}")
        with self._lock:
            self._entries[name] = timestamp
            self._mutated()

    def remove(self, name: str) -> bool:
        with self._lock:
            if name not in self._entries:
                return False
            del self._entries[name]
            self._mutated()
            return True

    def clear(self) -> None:
        with self._lock:
            if not self._entries:
                return
            self._entries.clear()
            self._mutated()

    def flush(self) -> None:
        """Make every earlier write durable or raise ``PersistenceFailure``."""
        with self._lock:
            if self._dirty:
                self._persist()

    @contextlib.contextmanager
    def batch(self) -> Iterator[TimelineStore]:
        """Hold durable writes back until the block exits, then flush once."""
        with self._lock:
            self._deferred += 1
        try:
            yield self
        finally:
            with self._lock:
                self._deferred -= 1
                if self._deferred == 0:
                    self.flush()

    def close(self) -> None:
        self.flush()

    def _mutated(self) -> None:
        self._dirty = True
        if self.write_through and not self._deferred:
            self._persist()

    def _persist(self) -> None:
        self._write(dict(self._entries))
        self._dirty = False

    def _write(self, entries: dict[str, int]) -> None:
        raise NotImplementedError


class MemoryTimelineStore(TimelineStore):
    """Process-local store; timelines do not survive a restart."""

    def _write(self, entries: dict[str, int]) -> None:
        return None


class JsonTimelineStore(TimelineStore):
    """Timelines kept in a JSON object ``{"name": epoch_ms}``."""

    def __init__(self, path: Path | str, *, write_through: bool = True) -> None:
        self._store = JsonStore(Path(path), default={})
        self.write_through = write_through
        super().__init__(self._read())
        logger.debug(
            "[timeline] loaded %d timeline(s) from %s", len(self._entries), self._store.path,
        )

    @property
    def path(self) -> Path:
        return self._store.path

    def reload(self) -> None:
        """Replace in-memory state with what is on disk, dropping unflushed writes."""
        with self._lock:
            self._entries = self._read()
            self._dirty = False

    def _read(self) -> dict[str, int]:
        raw = self._store.load()
        if not isinstance(raw, dict):
            logger.warning(
                "[timeline] %s does not hold a JSON object, ignoring it", self._store.path,
            )
            return {}
        entries: dict[str, int] = {}
        for name, value in raw.items():
            if isinstance(value, bool) or not isinstance(value, int):
                logger.warning(
                    "[timeline] dropping %r from %s: bad timestamp %r",
                    name, self._store.path, value,
                )
                continue
            entries[name] = value
        return entries

    def _write(self, entries: dict[str, int]) -> None:
        self._store.save(entries)
