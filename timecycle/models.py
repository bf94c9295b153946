"""Cycle definitions, events and tick reports."""

from __future__ import annotations

import enum
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class MissedFirePolicy(enum.Enum):
    """How a cycle catches up after sleeping through several periods."""

    skip = "skip"
    replay = "replay"


@dataclass(frozen=True)
class Cycle:
    name: str
    period_ms: int
    owner_id: Hashable
    registered_at: int = field(default_factory=now_ms, compare=False)

    def next_fired_at(self, last_fired_at: int | None) -> int | None:
        if last_fired_at is None:
            return None
        return last_fired_at + self.period_ms

    def is_due(self, last_fired_at: int | None, now: int) -> bool:
        if last_fired_at is None:
            return True
        return now - last_fired_at >= self.period_ms


@dataclass(frozen=True)
class RegistrationResult:
    cycle: Cycle
    previous: Cycle | None = None
    initialized: bool = False

    @property
    def replaced(self) -> bool:
        return self.previous is not None


@dataclass(frozen=True)
class InitializeEvent:
    """Emitted the first time a cycle name is registered.

    ``last_fired_at`` is whatever the timeline store already holds for the
    name, so listeners can tell a fresh cycle from one restored after a
    restart.
    """

    cycle: Cycle
    last_fired_at: int | None = None

    @property
    def name(self) -> str:
        return self.cycle.name


@dataclass(frozen=True)
class FireEvent:
    """Emitted each time a cycle is found due."""

    name: str
    period_ms: int
    owner_id: Hashable
    last_fired_at: int | None
    now: int

    @property
    def elapsed_ms(self) -> int | None:
        if self.last_fired_at is None:
            return None
        return self.now - self.last_fired_at

    @property
    def next_fired_at(self) -> int:
        return self.now + self.period_ms

    @property
    def first_fire(self) -> bool:
        return self.last_fired_at is None


Event = InitializeEvent | FireEvent
Listener = Callable[[Any], Any]


@dataclass(frozen=True)
class ListenerFailure:
    event: Event
    listener: Listener
    error: BaseException

    @property
    def listener_name(self) -> str:
        return getattr(self.listener, "__qualname__", repr(self.listener))


@dataclass
class TickReport:
    now: int
    fired: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    listener_failures: list[ListenerFailure] = field(default_factory=list)
    persistence_errors: dict[str, str] = field(default_factory=dict)
    overlapped: bool = False

    @property
    def ok(self) -> bool:
        return not self.listener_failures and not self.persistence_errors
