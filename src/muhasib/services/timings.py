from __future__ import annotations

from datetime import date
import logging
from typing import Protocol

import httpx  # type: ignore[import]

from ..config import PrayerSettings
from ..models import Coordinate, PrayerName
from ..timeutils import sanitize_time

logger = logging.getLogger(__name__)

ALADHAN_API = "https://api.aladhan.com/v1/timings/{day}"
DEFAULT_METHOD = 2
DEFAULT_TIMEZONE = "UTC"

ALADHAN_METHODS = {
    "Shia Ithna-Ansari": 0,
    "University of Islamic Sciences, Karachi": 1,
    "Karachi": 1,
    "Islamic Society of North America": 2,
    "ISNA": 2,
    "MuslimWorldLeague": 3,
    "UmmAlQura": 4,
    "EgyptianGeneralAuthority": 5,
    "Tehran": 7,
    "Gulf": 8,
    "Kuwait": 9,
    "Qatar": 10,
    "Singapore": 11,
    "France": 12,
    "Diyanet": 13,
    "Russia": 14,
    "Moonsighting": 15,
}


class FetchFailed(RuntimeError):
    """Raised when prayer times could not be obtained from the service."""


class TimeServiceClient(Protocol):
    def fetch(self, day: date, coordinate: Coordinate) -> dict[PrayerName, str]:
        ...


def resolve_method(value: str | int | None) -> int:
    if value is None or value == "":
        return DEFAULT_METHOD
    method_value = ALADHAN_METHODS.get(str(value), value)
    try:
        return int(method_value)
    except (TypeError, ValueError):
        logger.warning("Unknown calculation method %r, using ISNA", value)
        return DEFAULT_METHOD


def extract_timings(payload: object) -> dict[PrayerName, str]:
    """Pick the five prayers out of an Aladhan response body.

    Keys may be titlecase or lowercase; prayers the service omits map to "".
    """
    if not isinstance(payload, dict):
        raise FetchFailed("Prayer time response is not an object")
    data = payload.get("data", payload)
    timings = data.get("timings") if isinstance(data, dict) else None
    if not isinstance(timings, dict):
        raise FetchFailed("Prayer time response has no timings")
    result: dict[PrayerName, str] = {}
    for name in PrayerName:
        raw = timings.get(name.value, timings.get(name.value.lower()))
        result[name] = sanitize_time(raw)
    return result


class AladhanClient:
    name = "aladhan"

    def __init__(self, settings: PrayerSettings | None = None) -> None:
        self.settings = settings or PrayerSettings()

    def params(self, coordinate: Coordinate) -> dict[str, object]:
        settings = self.settings
        params: dict[str, object] = {
            "latitude": coordinate.latitude,
            "longitude": coordinate.longitude,
            "method": resolve_method(settings.calculation_method),
            "timezonestring": settings.timezone or coordinate.timezone or DEFAULT_TIMEZONE,
        }
        if settings.madhab:
            params["school"] = 1 if settings.madhab.lower() == "hanafi" else 0
        return params

    def fetch(self, day: date, coordinate: Coordinate) -> dict[PrayerName, str]:
        url = (self.settings.endpoint or ALADHAN_API).format(day=day.strftime("%Y-%m-%d"))
        try:
            response = httpx.get(url, params=self.params(coordinate), timeout=self.settings.timeout)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise FetchFailed(f"Prayer time request failed: {exc}") from exc
        except ValueError as exc:
            raise FetchFailed(f"Prayer time response is not JSON: {exc}") from exc
        return extract_timings(payload)
