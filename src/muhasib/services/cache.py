from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
import json
import logging
from threading import Lock
from typing import Callable

from ..models import CacheEntry, PrayerEntry
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_STORE_KEY = "prayer_cache"
DEFAULT_FRESHNESS = timedelta(hours=24)
KEY_SEPARATOR = "|"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PrayerCache:
    """Fetched prayer times keyed by day and exact coordinates.

    Every entry carries its own ``fetched_at``; freshness is judged per entry
    so a new fetch for one day never revives a stale entry for another. The
    blob-level ``last_fetch`` is kept for display only. Nothing is evicted.
    """

    def __init__(
        self,
        store: KeyValueStore,
        freshness: timedelta = DEFAULT_FRESHNESS,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.freshness = freshness
        self._clock = clock or _utcnow
        self._lock = Lock()

    @staticmethod
    def key(day: date, latitude: float, longitude: float) -> str:
        # repr keeps coordinates verbatim; neither ISO dates nor floats contain "|"
        return KEY_SEPARATOR.join([day.isoformat(), repr(float(latitude)), repr(float(longitude))])

    def _load(self) -> dict:
        raw = self.store.get(CACHE_STORE_KEY)
        if not raw:
            return {"entries": {}}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable prayer cache blob")
            return {"entries": {}}
        if not isinstance(data, dict) or not isinstance(data.get("entries"), dict):
            return {"entries": {}}
        return data

    def _decode(self, key: str, record: object) -> CacheEntry | None:
        if not isinstance(record, dict):
            return None
        try:
            fetched_at = datetime.fromisoformat(record["fetched_at"])
            entries = [PrayerEntry.from_dict(item) for item in record["prayers"]]
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed cache entry %s", key)
            return None
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        return CacheEntry(key=key, entries=entries, fetched_at=fetched_at)

    def peek(self, day: date, latitude: float, longitude: float) -> CacheEntry | None:
        key = self.key(day, latitude, longitude)
        with self._lock:
            record = self._load()["entries"].get(key)
        if record is None:
            return None
        return self._decode(key, record)

    def is_fresh(self, entry: CacheEntry) -> bool:
        now = self._clock()
        # a fetched_at ahead of the clock (clock moved back) counts as stale
        return entry.fetched_at <= now and now - entry.fetched_at < self.freshness

    def get(self, day: date, latitude: float, longitude: float) -> CacheEntry | None:
        entry = self.peek(day, latitude, longitude)
        if entry is None or not self.is_fresh(entry):
            return None
        return entry

    def put(self, day: date, latitude: float, longitude: float, entries: list[PrayerEntry]) -> CacheEntry:
        key = self.key(day, latitude, longitude)
        fetched_at = self._clock()
        record = {
            "fetched_at": fetched_at.isoformat(),
            "prayers": [entry.to_dict() for entry in entries],
        }
        with self._lock:
            data = self._load()
            data["entries"][key] = record
            data["last_fetch"] = fetched_at.isoformat()
            self.store.set(CACHE_STORE_KEY, json.dumps(data))
        return CacheEntry(key=key, entries=[entry.with_checked(False) for entry in entries], fetched_at=fetched_at)

    def last_fetch(self) -> datetime | None:
        with self._lock:
            value = self._load().get("last_fetch")
        if not value:
            return None
        try:
            return datetime.fromisoformat(value)
        except (TypeError, ValueError):
            return None
