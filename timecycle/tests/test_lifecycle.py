"""Tests for the aiohttp lifecycle hooks."""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from timecycle.models import FireEvent
from timecycle.scheduler import Scheduler
from timecycle.server.lifecycle import SCHEDULER_KEY, TASK_KEY, setup_scheduler


class TestSetupScheduler:
    @pytest.mark.asyncio
    async def test_loop_runs_with_app(self, scheduler: Scheduler) -> None:
        fired: list[FireEvent] = []
        scheduler.listen_fire(fired.append)
        scheduler.register("c", 1000, "o")

        app = web.Application()
        setup_scheduler(app, scheduler, interval_seconds=0.01)
        assert app[SCHEDULER_KEY] is scheduler

        async with TestClient(TestServer(app)) as client:
            task = client.app[TASK_KEY]
            await asyncio.sleep(0.05)
            assert not task.done()
            assert [e.name for e in fired] == ["c"]

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_cleanup_flushes_store(self, scheduler: Scheduler, monkeypatch) -> None:
        closed: list[bool] = []
        monkeypatch.setattr(scheduler.store, "close", lambda: closed.append(True))

        app = web.Application()
        setup_scheduler(app, scheduler, interval_seconds=0.01)
        async with TestClient(TestServer(app)):
            pass
        assert closed == [True]
