from __future__ import annotations

from datetime import date
from threading import Lock
from typing import Callable

from .timeutils import shift_day

DayListener = Callable[[date], None]


class DayNavigator:
    """Owns the currently viewed day and notifies listeners when it moves."""

    def __init__(self, start: date | None = None) -> None:
        self._current = start or date.today()
        self._lock = Lock()
        self._listeners: list[DayListener] = []

    def subscribe(self, listener: DayListener) -> None:
        self._listeners.append(listener)

    def current(self) -> date:
        with self._lock:
            return self._current

    def previous(self) -> date:
        return self._move(-1)

    def next(self) -> date:
        return self._move(1)

    def today(self) -> date:
        return self.go_to(date.today())

    def go_to(self, day: date) -> date:
        with self._lock:
            self._current = day
        self._notify(day)
        return day

    def _move(self, days: int) -> date:
        with self._lock:
            self._current = shift_day(self._current, days)
            day = self._current
        self._notify(day)
        return day

    def _notify(self, day: date) -> None:
        for listener in list(self._listeners):
            listener(day)
