"""Scheduler -- polls registered cycles and fires the ones that are due."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Hashable
from typing import Any

from ..config.settings import Settings, cfg
from ..errors import PersistenceFailure
from ..events import EventDispatcher, FireListener, InitializeListener
from ..models import (
    Cycle,
    FireEvent,
    InitializeEvent,
    MissedFirePolicy,
    RegistrationResult,
    TickReport,
    now_ms,
)
from ..registry import CycleRegistry
from ..state.timeline import JsonTimelineStore, MemoryTimelineStore, TimelineStore

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


class Scheduler:
    """Registry, timeline store and dispatcher joined by cycle name.

    ``tick()`` is the whole scheduling algorithm: snapshot the registry,
    compare each cycle's elapsed time against its period, fire the due ones
    and persist their new timestamp. The host decides how often to call it,
    either directly or through :func:`scheduler_loop`.
    """

    def __init__(
        self,
        store: TimelineStore | None = None,
        *,
        registry: CycleRegistry | None = None,
        dispatcher: EventDispatcher | None = None,
        clock: Clock | None = None,
        missed_fire_policy: MissedFirePolicy = MissedFirePolicy.skip,
    ) -> None:
        self._store = store if store is not None else MemoryTimelineStore()
        self._registry = registry if registry is not None else CycleRegistry()
        self._dispatcher = dispatcher if dispatcher is not None else EventDispatcher()
        self._clock = clock or now_ms
        self.missed_fire_policy = missed_fire_policy
        self._tick_lock = threading.Lock()
        self._forgotten: set[str] = set()
        self._task: asyncio.Task[None] | None = None

    @property
    def store(self) -> TimelineStore:
        return self._store

    @property
    def registry(self) -> CycleRegistry:
        return self._registry

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    def now(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, name: str, period_ms: int, owner_id: Hashable) -> RegistrationResult:
        cycle, previous, first_seen = self._registry.register(name, period_ms, owner_id)
        if first_seen:
            self._dispatcher.emit_initialize(
                InitializeEvent(cycle=cycle, last_fired_at=self._store.get_last_fired(cycle.name)),
            )
        return RegistrationResult(cycle=cycle, previous=previous, initialized=first_seen)

    def unregister(self, name: str, *, forget: bool = False) -> bool:
        """Remove *name*; with *forget* its timeline entry is dropped as well."""
        removed = self._registry.unregister(name) is not None
        if removed and forget:
            self._forget(name)
        return removed

    def remove(self, name: str) -> bool:
        return self.unregister(name, forget=True)

    def unregister_all_by_owner(self, owner_id: Hashable, *, forget: bool = False) -> int:
        removed = self._registry.unregister_all_by_owner(owner_id)
        if forget:
            for cycle in removed:
                self._forget(cycle.name)
        return len(removed)

    def lookup(self, name: str) -> Cycle | None:
        return self._registry.lookup(name)

    def cycles(self) -> list[Cycle]:
        return self._registry.snapshot()

    def listen_initialize(self, handler: InitializeListener) -> Callable[[], None]:
        return self._dispatcher.listen_initialize(handler)

    def listen_fire(self, handler: FireListener) -> Callable[[], None]:
        return self._dispatcher.listen_fire(handler)

    # ------------------------------------------------------------------
    # Timeline queries
    # ------------------------------------------------------------------

    def get_last_fired(self, name: str) -> int | None:
        return self._store.get_last_fired(name)

    def get_next_fired(self, name: str) -> int | None:
        """Next firing time in epoch ms; ``None`` if unknown or due immediately."""
        cycle = self._registry.lookup(name)
        if cycle is None:
            return None
        return cycle.next_fired_at(self._store.get_last_fired(name))

    def is_due(self, name: str, now: int | None = None) -> bool:
        cycle = self._registry.lookup(name)
        if cycle is None:
            return False
        return cycle.is_due(self._store.get_last_fired(name), self.now() if now is None else now)

    def status(self, now: int | None = None) -> list[dict[str, Any]]:
        now = self.now() if now is None else now
        rows: list[dict[str, Any]] = []
        for cycle in sorted(self._registry.snapshot(), key=lambda c: c.name):
            last = self._store.get_last_fired(cycle.name)
            rows.append({
                "name": cycle.name,
                "period_ms": cycle.period_ms,
                "owner_id": cycle.owner_id,
                "last_fired_at": last,
                "next_fired_at": cycle.next_fired_at(last),
                "due": cycle.is_due(last, now),
            })
        return rows

    def reset(self, name: str) -> bool:
        """Forget the timeline of *name* so it fires on the next tick."""
        return self._forget(name)

    def clear_timelines(self) -> None:
        self._store.clear()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self, now: int | None = None) -> TickReport:
        """Evaluate every registered cycle once and fire those that are due.

        Never raises for listener or persistence errors; both are logged and
        collected on the returned report. Refuses to run concurrently with
        itself.
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("[scheduler] tick skipped -- previous tick still running")
            return TickReport(now=self.now() if now is None else now, overlapped=True)
        try:
            return self._tick(self.now() if now is None else now)
        finally:
            self._tick_lock.release()

    def _tick(self, now: int) -> TickReport:
        report = TickReport(now=now)
        cycles = self._registry.snapshot()
        logger.debug("[scheduler] tick at %d -- %d cycle(s) registered", now, len(cycles))

        for cycle in cycles:
            last = self._store.get_last_fired(cycle.name)
            if not cycle.is_due(last, now):
                logger.debug(
                    "[scheduler]   %s not due (last=%s, next=%s)",
                    cycle.name, last, cycle.next_fired_at(last),
                )
                continue
            live = self._registry.lookup(cycle.name)
            if live is None:
                logger.debug("[scheduler]   %s skipped -- no longer registered", cycle.name)
                report.skipped.append(cycle.name)
                continue
            if live is not cycle:
                # Replaced since the snapshot; the live definition decides.
                if not live.is_due(last, now):
                    logger.debug("[scheduler]   %s replaced and not due yet", cycle.name)
                    continue
                cycle = live
            self._fire(cycle, last, now, report)

        try:
            self._store.flush()
        except PersistenceFailure as exc:
            logger.error("[scheduler] timeline flush failed: %s", exc, exc_info=True)
            report.persistence_errors["*"] = str(exc)

        if report.fired:
            logger.debug("[scheduler] tick at %d fired %d cycle(s)", now, len(report.fired))
        return report

    def _fire(self, cycle: Cycle, last: int | None, now: int, report: TickReport) -> None:
        logger.info(
            "[scheduler] FIRING %s (period=%d ms, owner=%r, last=%s)",
            cycle.name, cycle.period_ms, cycle.owner_id, last,
        )
        event = FireEvent(
            name=cycle.name,
            period_ms=cycle.period_ms,
            owner_id=cycle.owner_id,
            last_fired_at=last,
            now=now,
        )
        report.fired.append(cycle.name)
        self._forgotten.discard(cycle.name)
        report.listener_failures.extend(self._dispatcher.emit_fire(event))

        if self._removed_during_fire(cycle.name):
            logger.info("[scheduler] %s removed while firing -- timeline not recorded", cycle.name)
            return
        try:
            self._store.set_last_fired(cycle.name, self._next_last_fired(cycle, last, now))
            if self._removed_during_fire(cycle.name):
                self._store.remove(cycle.name)
        except PersistenceFailure as exc:
            logger.error(
                "[scheduler] could not persist timeline for %s: %s", cycle.name, exc, exc_info=True,
            )
            report.persistence_errors[cycle.name] = str(exc)

    def _next_last_fired(self, cycle: Cycle, last: int | None, now: int) -> int:
        if self.missed_fire_policy is MissedFirePolicy.replay and last is not None:
            return last + cycle.period_ms
        return now

    def _removed_during_fire(self, name: str) -> bool:
        return name in self._forgotten and self._registry.lookup(name) is None

    def _forget(self, name: str) -> bool:
        self._forgotten.add(name)
        try:
            return self._store.remove(name)
        except PersistenceFailure as exc:
            logger.error("[scheduler] could not drop timeline for %s: %s", name, exc, exc_info=True)
            return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval_seconds: float | None = None) -> asyncio.Task[None]:
        """Run :func:`scheduler_loop` as a task on the current event loop."""
        if self.running:
            logger.warning("[scheduler] already running")
            return self._task  # type: ignore[return-value]
        self._task = asyncio.create_task(scheduler_loop(self, interval_seconds))
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.close()

    def flush(self) -> None:
        self._store.flush()

    def close(self) -> None:
        try:
            self._store.close()
        except PersistenceFailure as exc:
            logger.error("[scheduler] final timeline flush failed: %s", exc, exc_info=True)


def build_scheduler(settings: Settings | None = None, *, clock: Clock | None = None) -> Scheduler:
    """Build a scheduler from configuration."""
    settings = settings or cfg
    if settings.store_backend == "memory":
        store: TimelineStore = MemoryTimelineStore()
    else:
        settings.ensure_dirs()
        store = JsonTimelineStore(settings.timeline_path, write_through=settings.write_through)
    logger.info(
        "[scheduler] built (store=%s, policy=%s, write_through=%s)",
        settings.store_backend, settings.missed_fire_policy.value, settings.write_through,
    )
    return Scheduler(store, clock=clock, missed_fire_policy=settings.missed_fire_policy)


async def scheduler_loop(scheduler: Scheduler, interval_seconds: float | None = None) -> None:
    interval = interval_seconds if interval_seconds is not None else cfg.tick_seconds
    logger.info(
        "[scheduler] loop started (interval=%.3fs, cycles=%d)",
        interval, len(scheduler.registry),
    )
    while True:
        try:
            await asyncio.to_thread(scheduler.tick)
        except Exception as exc:
            logger.error("[scheduler] loop error: %s", exc, exc_info=True)
        await asyncio.sleep(interval)
