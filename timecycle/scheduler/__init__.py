"""Scheduler -- polling loop over registered cycles with persisted timelines."""

from .engine import (
    Clock,
    Scheduler,
    build_scheduler,
    scheduler_loop,
)

__all__ = [
    "Clock",
    "Scheduler",
    "build_scheduler",
    "scheduler_loop",
]
