from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import replace
from datetime import date
import logging
from threading import RLock
from typing import Callable

from ..models import Coordinate, DayView, build_entries
from ..navigator import DayNavigator
from .cache import PrayerCache
from .completion import CompletionStore
from .location import LocationError, LocationProvider, resolve_location
from .storage import StorageUnavailable
from .timings import FetchFailed, TimeServiceClient

logger = logging.getLogger(__name__)

ERROR_LOCATION_UNAVAILABLE = "location unavailable"
ERROR_FETCH_FAILED = "fetch failed"
WARNING_STORAGE_UNAVAILABLE = "storage unavailable"
WARNING_COMPLETION_NOT_SAVED = "completion not saved"

ViewListener = Callable[[DayView], None]


class SyncEngine:
    """Reconciles location, cached/fetched prayer times and completion marks.

    Every ``load_day`` call takes a new generation number. Only the result of
    the most recent generation is published to listeners; older responses are
    still cached and returned from their future but never replace the view.
    Failed fetches are not retried; the next navigation is the retry.
    """

    def __init__(
        self,
        cache: PrayerCache,
        completion: CompletionStore,
        client: TimeServiceClient,
        navigator: DayNavigator | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.cache = cache
        self.completion = completion
        self.client = client
        self.navigator = navigator or DayNavigator()
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="muhasib-sync")
        self._executor_owned = executor is None
        # listeners run under this lock so publications reach them in order
        self._lock = RLock()
        self._generation = 0
        self._completion_revision = 0
        self._coordinate: Coordinate | None = None
        self._location_settled = False
        self._pending: Future | None = None
        self._listeners: list[ViewListener] = []
        self._view = DayView(current_day=self.navigator.current(), loading=True)
        self.navigator.subscribe(self.day_changed)

    # -- observation -----------------------------------------------------

    def subscribe(self, listener: ViewListener) -> None:
        with self._lock:
            self._listeners.append(listener)
            view = self._view
        listener(view)

    def snapshot(self) -> DayView:
        with self._lock:
            return self._view

    @property
    def coordinate(self) -> Coordinate | None:
        with self._lock:
            return self._coordinate

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _publish(self, generation: int, view: DayView) -> DayView:
        # completion marks are applied under the lock so a toggle can never
        # land between reading the map and publishing it
        with self._lock:
            if generation == self._generation:
                # overlay again if a toggle called back into the engine mid-read
                revision = -1
                while revision != self._completion_revision:
                    revision = self._completion_revision
                    published = self._with_completion(view)
                view = published
                self._view = view
                for listener in list(self._listeners):
                    listener(view)
                return view
            logger.debug(
                "Discarding view for %s from generation %d (current %d)",
                view.current_day, generation, self._generation,
            )
        return self._with_completion(view)

    # -- triggers --------------------------------------------------------

    def start(self, provider: LocationProvider) -> Future:
        """Resolve the location once in the background, then load the current day."""
        future = self._executor.submit(self._resolve_and_load, provider)
        self._pending = future
        return future

    def _resolve_and_load(self, provider: LocationProvider) -> DayView:
        try:
            coordinate: Coordinate | None = resolve_location(provider)
        except LocationError as exc:
            logger.warning("Location unavailable: %s", exc)
            coordinate = None
        with self._lock:
            self._coordinate = coordinate
            self._location_settled = True
        generation = self._next_generation()
        return self._load(generation, self.navigator.current(), coordinate)

    def location_resolved(self, coordinate: Coordinate | None) -> Future:
        with self._lock:
            self._coordinate = coordinate
            self._location_settled = True
        return self.load_day(self.navigator.current(), coordinate)

    def day_changed(self, day: date) -> Future | None:
        with self._lock:
            settled = self._location_settled
            coordinate = self._coordinate
            if not settled:
                # nothing to fetch yet; location_resolved loads the current day
                self._view = replace(self._view, current_day=day)
                view = self._view
                for listener in list(self._listeners):
                    listener(view)
                return None
        return self.load_day(day, coordinate)

    def previous_day(self) -> date:
        return self.navigator.previous()

    def next_day(self) -> date:
        return self.navigator.next()

    def today(self) -> date:
        return self.navigator.today()

    # -- loading ---------------------------------------------------------

    def load_day(self, day: date, coordinate: Coordinate | None) -> Future:
        generation = self._next_generation()
        future = self._executor.submit(self._load, generation, day, coordinate)
        self._pending = future
        return future

    def _load(self, generation: int, day: date, coordinate: Coordinate | None) -> DayView:
        if coordinate is None:
            view = DayView(current_day=day, prayers=[], loading=False, error_msg=ERROR_LOCATION_UNAVAILABLE)
            return self._publish(generation, view)

        warning: str | None = None
        try:
            cached = self.cache.get(day, coordinate.latitude, coordinate.longitude)
        except StorageUnavailable:
            logger.warning("Prayer cache unreadable, fetching %s", day, exc_info=True)
            cached = None
            warning = WARNING_STORAGE_UNAVAILABLE

        if cached is not None:
            logger.debug("Cache hit for %s", cached.key)
            entries = cached.entries
        else:
            self._publish(generation, replace(self.snapshot(), current_day=day, loading=True, error_msg=None))
            try:
                timings = self.client.fetch(day, coordinate)
            except FetchFailed as exc:
                logger.warning("Fetching prayer times for %s failed: %s", day, exc)
                view = replace(
                    self.snapshot(),
                    current_day=day,
                    loading=False,
                    error_msg=ERROR_FETCH_FAILED,
                )
                return self._publish(generation, view)
            entries = build_entries(day, timings)
            try:
                self.cache.put(day, coordinate.latitude, coordinate.longitude, entries)
            except StorageUnavailable:
                logger.warning("Could not cache prayer times for %s", day, exc_info=True)
                warning = WARNING_STORAGE_UNAVAILABLE

        view = DayView(
            current_day=day,
            prayers=entries,
            loading=False,
            error_msg=None,
            warning=warning,
        )
        return self._publish(generation, view)

    def _with_completion(self, view: DayView) -> DayView:
        try:
            prayers = self.completion.overlay(view.prayers)
        except StorageUnavailable:
            logger.warning("Completion map unreadable", exc_info=True)
            prayers = [entry.with_checked(False) for entry in view.prayers]
            return replace(view, prayers=prayers, warning=view.warning or WARNING_STORAGE_UNAVAILABLE)
        return replace(view, prayers=prayers)

    # -- completion ------------------------------------------------------

    def toggle(self, prayer_id: int) -> DayView:
        """Flip one prayer's checked state and republish without refetching."""
        with self._lock:
            # key by the displayed row's own date; after a failed fetch the
            # rows can still belong to the previous day
            entry = next((p for p in self._view.prayers if p.id == prayer_id), None)
            day = entry.date if entry is not None else self._view.current_day
            warning: str | None = None
            try:
                self.completion.toggle(prayer_id, day)
            except StorageUnavailable:
                warning = WARNING_COMPLETION_NOT_SAVED
            self._completion_revision += 1
            view = self._with_completion(replace(self._view, warning=warning))
            self._view = view
            for listener in list(self._listeners):
                listener(view)
        return view

    # -- lifecycle -------------------------------------------------------

    def wait(self) -> DayView | None:
        pending = self._pending
        if pending is None:
            return None
        return pending.result()

    def close(self) -> None:
        if self._executor_owned and isinstance(self._executor, ThreadPoolExecutor):
            self._executor.shutdown(wait=False, cancel_futures=True)
