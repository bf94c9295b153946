"""aiohttp lifecycle hooks -- run the scheduler loop alongside the app."""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web

from ..config.settings import cfg
from ..scheduler.engine import Scheduler, scheduler_loop

logger = logging.getLogger(__name__)

SCHEDULER_KEY = "timecycle_scheduler"
TASK_KEY = "timecycle_task"


def setup_scheduler(
    app: web.Application,
    scheduler: Scheduler,
    interval_seconds: float | None = None,
) -> None:
    """Start *scheduler* with the app and stop it (final flush) on cleanup."""
    interval = interval_seconds if interval_seconds is not None else cfg.tick_seconds
    app[SCHEDULER_KEY] = scheduler

    async def on_startup(app: web.Application) -> None:
        app[TASK_KEY] = asyncio.create_task(scheduler_loop(scheduler, interval))
        logger.info(
            "[startup] timecycle loop scheduled (interval=%.3fs, cycles=%d)",
            interval, len(scheduler.registry),
        )

    async def on_cleanup(app: web.Application) -> None:
        task = app.get(TASK_KEY)
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        scheduler.close()
        logger.info("[cleanup] timecycle loop stopped")

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
