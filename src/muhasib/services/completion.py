from __future__ import annotations

from datetime import date
import json
import logging
from threading import Lock
from typing import Iterable

from ..models import PrayerEntry, PrayerName
from .storage import KeyValueStore, StorageUnavailable

logger = logging.getLogger(__name__)

COMPLETION_STORE_KEY = "completed_prayers"

SCOPE_PRAYER = "prayer"
SCOPE_DAY = "day"
SCOPES = (SCOPE_PRAYER, SCOPE_DAY)


class CompletionStore:
    """Persisted checked state for prayers.

    With the default ``"prayer"`` scope the map is keyed by prayer id alone,
    so marking Fajr done marks it done on every day. The ``"day"`` scope keys
    by ``"<date>:<id>"`` instead. Unchecked prayers are left out of the map.
    """

    def __init__(self, store: KeyValueStore, scope: str = SCOPE_PRAYER) -> None:
        if scope not in SCOPES:
            raise ValueError(f"Unknown completion scope: {scope}")
        self.store = store
        self.scope = scope
        self._lock = Lock()
        self._memory: dict[str, bool] = {}
        self._unsaved = False

    def key(self, prayer_id: int, day: date | str | None = None) -> str:
        PrayerName.from_id(prayer_id)
        if self.scope == SCOPE_DAY:
            if day is None:
                raise ValueError("A day is required for day-scoped completion")
            day_str = day.isoformat() if isinstance(day, date) else day
            return f"{day_str}:{prayer_id}"
        return str(prayer_id)

    def _read_locked(self) -> dict[str, bool]:
        if self._unsaved:
            return dict(self._memory)
        raw = self.store.get(COMPLETION_STORE_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable completion map")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): bool(v) for k, v in data.items()}

    def get_all(self) -> dict[str, bool]:
        with self._lock:
            return self._read_locked()

    def is_checked(self, prayer_id: int, day: date | str | None = None) -> bool:
        return self.get_all().get(self.key(prayer_id, day), False)

    def set_checked(self, prayer_id: int, value: bool, day: date | str | None = None) -> dict[str, bool]:
        key = self.key(prayer_id, day)
        with self._lock:
            current = self._read_locked()
            if value:
                current[key] = True
            else:
                current.pop(key, None)
            return self._write_locked(current)

    def toggle(self, prayer_id: int, day: date | str | None = None) -> dict[str, bool]:
        key = self.key(prayer_id, day)
        with self._lock:
            current = self._read_locked()
            if current.get(key, False):
                current.pop(key)
            else:
                current[key] = True
            return self._write_locked(current)

    def _write_locked(self, values: dict[str, bool]) -> dict[str, bool]:
        # the in-memory copy keeps the toggle even when the disk write fails
        self._memory = dict(values)
        try:
            self.store.set(COMPLETION_STORE_KEY, json.dumps(values, sort_keys=True))
        except StorageUnavailable:
            logger.warning("Could not persist completion map", exc_info=True)
            self._unsaved = True
            raise
        self._unsaved = False
        return dict(values)

    def overlay(self, entries: Iterable[PrayerEntry]) -> list[PrayerEntry]:
        values = self.get_all()
        return [
            entry.with_checked(values.get(self.key(entry.id, entry.date), False))
            for entry in entries
        ]
