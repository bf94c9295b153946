"""Shared pytest fixtures for timecycle tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from timecycle.scheduler import Scheduler
from timecycle.state import MemoryTimelineStore


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = 0) -> None:
        self.value = start

    def __call__(self) -> int:
        return self.value

    def advance(self, ms: int) -> int:
        self.value += ms
        return self.value


@pytest.fixture(autouse=True)
def _isolate_data_dir(
    tmp_path: Path, tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Path:
    data_dir = tmp_path_factory.mktemp("data")
    monkeypatch.setenv("TIMECYCLE_DATA_DIR", str(data_dir))
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    for key in (
        "TIMECYCLE_TICK_SECONDS",
        "TIMECYCLE_MISSED_FIRE_POLICY",
        "TIMECYCLE_STORE",
        "TIMECYCLE_WRITE_THROUGH",
        "TIMECYCLE_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    return data_dir


@pytest.fixture()
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(1000)


@pytest.fixture()
def scheduler(clock: FakeClock) -> Scheduler:
    return Scheduler(MemoryTimelineStore(), clock=clock)
