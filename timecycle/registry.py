"""Cycle registry -- the set of live cycle definitions, keyed by name."""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable

from pydantic import BaseModel, Field, ValidationError

from .errors import InvalidPeriod
from .models import Cycle, now_ms

logger = logging.getLogger(__name__)


class CycleParams(BaseModel):
    name: str = Field(min_length=1, description="Unique cycle name")
    period_ms: int = Field(gt=0, strict=True, description="Milliseconds between firings")


def _validate(name: str, period_ms: int) -> CycleParams:
    try:
        return CycleParams(name=name, period_ms=period_ms)
    except ValidationError as exc:
        fields = {err["loc"][0] for err in exc.errors() if err.get("loc")}
        if "period_ms" in fields:
            raise InvalidPeriod(name, period_ms) from exc
        raise ValueError(f"Invalid cycle name: {name!r}") from exc


class CycleRegistry:
    """Thread-safe name -> :class:`Cycle` mapping.

    The lock is only held while the mapping is mutated or copied, so a
    scheduler scanning a :meth:`snapshot` never blocks registration and a
    registration never waits on listeners.

    The registry also remembers every name it has ever seen. That set only
    grows, which is what makes the Initialize event fire once per name for
    the lifetime of the registry.
    """

    def __init__(self) -> None:
        self._cycles: dict[str, Cycle] = {}
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def register(
        self, name: str, period_ms: int, owner_id: Hashable,
    ) -> tuple[Cycle, Cycle | None, bool]:
        """Insert or replace *name*.

        Returns ``(cycle, previous, first_seen)``. Raises
        :class:`InvalidPeriod` without touching the registry when the period
        is not a positive integer.
        """
        params = _validate(name, period_ms)
        hash(owner_id)  # owners key bulk unregistration
        cycle = Cycle(
            name=params.name,
            period_ms=params.period_ms,
            owner_id=owner_id,
            registered_at=now_ms(),
        )
        with self._lock:
            previous = self._cycles.get(cycle.name)
            first_seen = cycle.name not in self._seen
            self._cycles[cycle.name] = cycle
            self._seen.add(cycle.name)
        if previous is not None:
            logger.info(
                "[registry] cycle %s replaced (period %d -> %d ms, owner=%r)",
                cycle.name, previous.period_ms, cycle.period_ms, owner_id,
            )
        else:
            logger.info(
                "[registry] cycle %s registered (period=%d ms, owner=%r)",
                cycle.name, cycle.period_ms, owner_id,
            )
        return cycle, previous, first_seen

    def unregister(self, name: str) -> Cycle | None:
        with self._lock:
            cycle = self._cycles.pop(name, None)
        if cycle is not None:
            logger.info("[registry] cycle %s unregistered", name)
        return cycle

    def unregister_all_by_owner(self, owner_id: Hashable) -> list[Cycle]:
        with self._lock:
            removed = [c for c in self._cycles.values() if c.owner_id == owner_id]
            for cycle in removed:
                del self._cycles[cycle.name]
        if removed:
            logger.info(
                "[registry] %d cycle(s) unregistered for owner %r: %s",
                len(removed), owner_id, ", ".join(c.name for c in removed),
            )
        return removed

    def lookup(self, name: str) -> Cycle | None:
        return self._cycles.get(name)

    def by_owner(self, owner_id: Hashable) -> list[Cycle]:
        return [c for c in self.snapshot() if c.owner_id == owner_id]

    def snapshot(self) -> list[Cycle]:
        with self._lock:
            return list(self._cycles.values())

    def has_seen(self, name: str) -> bool:
        return name in self._seen

    def __contains__(self, name: object) -> bool:
        return name in self._cycles

    def __len__(self) -> int:
        return len(self._cycles)
