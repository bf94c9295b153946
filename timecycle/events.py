"""Initialize / Fire publish-subscribe, scoped to the cycle scheduler."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from .models import FireEvent, InitializeEvent, ListenerFailure

logger = logging.getLogger(__name__)

InitializeListener = Callable[[InitializeEvent], object]
FireListener = Callable[[FireEvent], object]


class EventDispatcher:
    """Synchronous, ordered dispatch to plain callables.

    Every listener runs inside its own ``try`` block: a failing listener is
    logged and reported back to the caller but never stops the remaining
    listeners, nor whatever the caller does after dispatch.
    """

    def __init__(self) -> None:
        self._initialize: list[InitializeListener] = []
        self._fire: list[FireListener] = []
        self._lock = threading.Lock()

    def listen_initialize(self, handler: InitializeListener) -> Callable[[], None]:
        return self._subscribe(self._initialize, handler)

    def listen_fire(self, handler: FireListener) -> Callable[[], None]:
        return self._subscribe(self._fire, handler)

    @property
    def listener_count(self) -> int:
        return len(self._initialize) + len(self._fire)

    def emit_initialize(self, event: InitializeEvent) -> list[ListenerFailure]:
        return self._dispatch(self._initialize, event)

    def emit_fire(self, event: FireEvent) -> list[ListenerFailure]:
        return self._dispatch(self._fire, event)

    def _subscribe(self, bucket: list, handler: Callable) -> Callable[[], None]:
        if not callable(handler):
            raise TypeError(f"Listener must be callable, got {handler!r}")
        with self._lock:
            bucket.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                try:
                    bucket.remove(handler)
                except ValueError:
                    pass

        return unsubscribe

    def _dispatch(self, bucket: list, event: InitializeEvent | FireEvent) -> list[ListenerFailure]:
        with self._lock:
            listeners = list(bucket)
        failures: list[ListenerFailure] = []
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:
                failure = ListenerFailure(event=event, listener=listener, error=exc)
                logger.error(
                    "[events] %s listener %s failed for cycle %s: %s",
                    type(event).__name__, failure.listener_name, event.name, exc,
                    exc_info=True,
                )
                failures.append(failure)
        return failures
