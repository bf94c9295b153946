"""Root logger setup for hosts that run the scheduler standalone."""

from __future__ import annotations

import logging

from .settings import Settings, cfg

LOG_FORMAT = "%(asctime)s  %(name)s  %(levelname)s  %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or cfg
    level = getattr(logging, settings.log_level, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
