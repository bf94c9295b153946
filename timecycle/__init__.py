"""timecycle -- named recurring cycles with timelines that survive restarts."""

from .errors import InvalidPeriod, PersistenceFailure, TimeCycleError
from .events import EventDispatcher
from .models import (
    Cycle,
    FireEvent,
    InitializeEvent,
    ListenerFailure,
    MissedFirePolicy,
    RegistrationResult,
    TickReport,
)
from .registry import CycleRegistry
from .scheduler import Scheduler, build_scheduler, scheduler_loop
from .state import JsonTimelineStore, MemoryTimelineStore, TimelineStore

__all__ = [
    "Cycle",
    "CycleRegistry",
    "EventDispatcher",
    "FireEvent",
    "InitializeEvent",
    "InvalidPeriod",
    "JsonTimelineStore",
    "ListenerFailure",
    "MemoryTimelineStore",
    "MissedFirePolicy",
    "PersistenceFailure",
    "RegistrationResult",
    "Scheduler",
    "TickReport",
    "TimeCycleError",
    "TimelineStore",
    "build_scheduler",
    "scheduler_loop",
]
