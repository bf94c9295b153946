"""Scheduler settings -- reads from environment and ``.env`` file."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import ClassVar

from ..models import MissedFirePolicy
from ..util.env_file import EnvOverlay

logger = logging.getLogger(__name__)

DEFAULT_TICK_SECONDS = 1.0
STORE_BACKENDS: frozenset[str] = frozenset({"json", "memory"})
_TRUTHY = ("1", "true", "yes", "on")


class Settings:

    _DATA_DIR_ENV: ClassVar[str] = "TIMECYCLE_DATA_DIR"

    def __init__(self) -> None:
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            if data_dir:
                dotenv = str(Path(data_dir) / ".env")
            else:
                dotenv = ".env"
        self.env = EnvOverlay(dotenv)
        self.reload()

    def reload(self) -> None:
        self.env.load()
        e = self.env.get

        raw_tick = e("TIMECYCLE_TICK_SECONDS")
        try:
            tick = float(raw_tick) if raw_tick else DEFAULT_TICK_SECONDS
        except ValueError:
            logger.warning("Ignoring TIMECYCLE_TICK_SECONDS=%r (not a number)", raw_tick)
            tick = DEFAULT_TICK_SECONDS
        self.tick_seconds: float = tick if tick > 0 else DEFAULT_TICK_SECONDS

        raw_policy = (e("TIMECYCLE_MISSED_FIRE_POLICY") or "skip").lower()
        try:
            self.missed_fire_policy: MissedFirePolicy = MissedFirePolicy(raw_policy)
        except ValueError:
            logger.warning("Ignoring TIMECYCLE_MISSED_FIRE_POLICY=%r", raw_policy)
            self.missed_fire_policy = MissedFirePolicy.skip

        raw_store = (e("TIMECYCLE_STORE") or "json").lower()
        self.store_backend: str = raw_store if raw_store in STORE_BACKENDS else "json"

        raw_wt = e("TIMECYCLE_WRITE_THROUGH")
        self.write_through: bool = raw_wt.lower() in _TRUTHY if raw_wt else True

        self.log_level: str = (e("TIMECYCLE_LOG_LEVEL") or "INFO").upper()

    @property
    def data_dir(self) -> Path:
        return Path(os.getenv(self._DATA_DIR_ENV, str(Path.home() / ".timecycle")))

    @property
    def timeline_path(self) -> Path:
        return self.data_dir / "timelines.json"

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)


cfg = Settings()
