from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Protocol

logger = logging.getLogger(__name__)


class StorageUnavailable(RuntimeError):
    """Raised when the persistent store cannot be read or written."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class JsonFileStore:
    """Durable string-to-string mapping kept as one JSON object on disk.

    A missing file is an empty store. Writes go through a temporary file that
    replaces the original, so a crash mid-write leaves the previous contents.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = Lock()

    def _read_locked(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageUnavailable(f"Cannot read {self.path}: {exc}") from exc
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt store file %s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read_locked().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_locked()
            data[key] = value
            payload = json.dumps(data, indent=2)
            tmp_path = self.path.with_name(self.path.name + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(payload, encoding="utf-8")
                os.replace(tmp_path, self.path)
            except OSError as exc:
                raise StorageUnavailable(f"Cannot write {self.path}: {exc}") from exc
