"""Exceptions raised by the cycle scheduler."""

from __future__ import annotations

from typing import Any


class TimeCycleError(Exception):
    """Base class for every error raised by this package."""


class InvalidPeriod(TimeCycleError, ValueError):
    """A cycle was registered with a non-positive or non-integer period."""

    def __init__(self, name: str, period: Any) -> None:
        self.name = name
        self.period = period
        super().__init__(
            f"Invalid period for cycle {name!r}: {period!r} (must be an integer > 0 ms)"
        )


class PersistenceFailure(TimeCycleError, OSError):
    """The timeline store could not durably record its state.

    Retryable: the store keeps the pending value in memory and the next
    ``flush()`` tries again.
    """
