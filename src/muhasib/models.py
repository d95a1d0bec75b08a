from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Iterable


class PrayerName(str, Enum):
    FAJR = "Fajr"
    DHUHR = "Dhuhr"
    ASR = "Asr"
    MAGHRIB = "Maghrib"
    ISHA = "Isha"

    @property
    def id(self) -> int:
        return list(PrayerName).index(self) + 1

    @classmethod
    def from_id(cls, prayer_id: int) -> "PrayerName":
        members = list(cls)
        if not 1 <= prayer_id <= len(members):
            raise ValueError(f"Unknown prayer id: {prayer_id}")
        return members[prayer_id - 1]


@dataclass(slots=True)
class Coordinate:
    latitude: float
    longitude: float
    timezone: str | None = None


@dataclass(slots=True)
class PrayerEntry:
    id: int
    name: PrayerName
    time: str
    date: str
    checked: bool = False

    @classmethod
    def from_dict(cls, values: dict) -> "PrayerEntry":
        name = PrayerName(values["name"])
        return cls(
            id=name.id,
            name=name,
            time=str(values.get("time") or ""),
            date=str(values["date"]),
            checked=bool(values.get("checked", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name.value,
            "time": self.time,
            "date": self.date,
        }

    def with_checked(self, checked: bool) -> "PrayerEntry":
        return replace(self, checked=checked)


def build_entries(day: date, timings: dict[PrayerName, str]) -> list[PrayerEntry]:
    """Build one unchecked entry per prayer, in canonical order."""
    return [
        PrayerEntry(
            id=index + 1,
            name=name,
            time=timings.get(name, "") or "",
            date=day.isoformat(),
        )
        for index, name in enumerate(PrayerName)
    ]


@dataclass(slots=True)
class CacheEntry:
    key: str
    entries: list[PrayerEntry]
    fetched_at: datetime


@dataclass(slots=True)
class DayView:
    current_day: date
    prayers: list[PrayerEntry] = field(default_factory=list)
    loading: bool = False
    error_msg: str | None = None
    warning: str | None = None

    @property
    def completed_count(self) -> int:
        return sum(1 for prayer in self.prayers if prayer.checked)

    def is_today(self, today: date | None = None) -> bool:
        return self.current_day == (today or date.today())

    def with_prayers(self, prayers: Iterable[PrayerEntry]) -> "DayView":
        return replace(self, prayers=list(prayers))
