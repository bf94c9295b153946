"""Thread-safe JSON document on disk."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from ..errors import PersistenceFailure

logger = logging.getLogger(__name__)


class JsonStore:
    """Reads and atomically replaces a single JSON document.

    Writes go to a temporary file in the same directory which is fsynced and
    then renamed over the target, so readers only ever see the previous or
    the new document.
    """

    def __init__(self, path: Path, default: Any = None) -> None:
        self._path = Path(path)
        self._default = default if default is not None else {}
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Any:
        if not self._path.exists():
            return self._default_copy()
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as exc:
            logger.warning("Failed to load %s: %s", self._path, exc, exc_info=True)
            return self._default_copy()

    def save(self, data: Any) -> None:
        payload = json.dumps(data, indent=2, sort_keys=True) + "\n"
        with self._lock:
            tmp_name = None
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent,
                )
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, self._path)
                tmp_name = None
            except OSError as exc:
                raise PersistenceFailure(f"Failed to write {self._path}: {exc}") from exc
            finally:
                if tmp_name is not None:
                    Path(tmp_name).unlink(missing_ok=True)

    def _default_copy(self) -> Any:
        if isinstance(self._default, dict):
            return dict(self._default)
        if isinstance(self._default, list):
            return list(self._default)
        return self._default
