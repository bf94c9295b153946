"""Persistent timeline stores."""

from __future__ import annotations

from ._json_store import JsonStore
from .timeline import JsonTimelineStore, MemoryTimelineStore, TimelineStore

__all__ = [
    "JsonStore",
    "JsonTimelineStore",
    "MemoryTimelineStore",
    "TimelineStore",
]
