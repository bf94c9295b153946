"""Read-only ``.env`` overlay for ``TIMECYCLE_*`` settings."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class EnvOverlay:
    """Looks a setting up in a ``.env`` file first, then in ``os.environ``.

    Only keys starting with *prefix* are taken from the file; anything else
    in it belongs to the host and is ignored. The file is parsed once per
    :meth:`load` so a settings reload picks up edits.
    """

    def __init__(self, path: str | Path, prefix: str = "TIMECYCLE_") -> None:
        self.path = Path(path)
        self.prefix = prefix
        self._values: dict[str, str] = {}
        self.load()

    def load(self) -> dict[str, str]:
        self._values = self._parse()
        return dict(self._values)

    def get(self, key: str, default: str = "") -> str:
        return self._values.get(key) or os.getenv(key, default)

    def _parse(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable %s: %s", self.path, exc)
            return {}
        values: dict[str, str] = {}
        for line in text.splitlines():
            key, sep, value = line.strip().removeprefix("export ").partition("=")
            key = key.strip()
            if not sep or not key.startswith(self.prefix):
                continue
            values[key] = value.strip().strip('"').strip("'")
        return values
