from __future__ import annotations

from datetime import date
import unittest

from muhasib.navigator import DayNavigator


class DayNavigatorTests(unittest.TestCase):
    def test_defaults_to_today(self) -> None:
        self.assertEqual(DayNavigator().current(), date.today())

    def test_next_then_previous_returns_to_start(self) -> None:
        for start in (date(2024, 1, 31), date(2023, 12, 31), date(2024, 2, 28), date(2024, 3, 1)):
            navigator = DayNavigator(start)
            navigator.next()
            navigator.previous()
            self.assertEqual(navigator.current(), start)

    def test_moves_one_calendar_day_across_month_and_year(self) -> None:
        navigator = DayNavigator(date(2023, 12, 31))
        self.assertEqual(navigator.next(), date(2024, 1, 1))
        navigator.go_to(date(2024, 3, 1))
        self.assertEqual(navigator.previous(), date(2024, 2, 29))

    def test_daylight_saving_transition_moves_exactly_one_day(self) -> None:
        # clocks go forward on 2024-03-31 in Helsinki
        navigator = DayNavigator(date(2024, 3, 30))
        navigator.next()
        navigator.next()
        self.assertEqual(navigator.current(), date(2024, 4, 1))

    def test_listeners_receive_each_new_day(self) -> None:
        seen: list[date] = []
        navigator = DayNavigator(date(2024, 3, 1))
        navigator.subscribe(seen.append)

        navigator.previous()
        navigator.previous()
        navigator.next()

        self.assertEqual(seen, [date(2024, 2, 29), date(2024, 2, 28), date(2024, 2, 29)])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
