"""Host integration for aiohttp applications."""

from .lifecycle import setup_scheduler

__all__ = ["setup_scheduler"]
