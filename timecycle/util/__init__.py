"""Shared utilities."""

from .env_file import EnvOverlay

__all__ = ["EnvOverlay"]
