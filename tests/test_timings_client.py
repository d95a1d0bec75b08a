from __future__ import annotations

from datetime import date
import unittest
from unittest.mock import patch

import httpx  # type: ignore[import]

from muhasib.config import PrayerSettings
from muhasib.models import Coordinate, PrayerName
from muhasib.services.timings import AladhanClient, FetchFailed, extract_timings, resolve_method

SAMPLE = {
    "code": 200,
    "data": {
        "timings": {
            "Fajr": "05:12",
            "Sunrise": "07:01",
            "Dhuhr": "12:30",
            "Asr": "15:45",
            "Maghrib": "18:50",
            "Isha": "20:10",
        },
        "meta": {"method": {"id": 2}},
    },
}


def _response(status: int, json_body=None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("GET", "https://api.aladhan.com/v1/timings/2024-03-01")
    if json_body is not None:
        return httpx.Response(status, json=json_body, request=request)
    return httpx.Response(status, text=text or "", request=request)


class AladhanClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.coordinate = Coordinate(latitude=60.17, longitude=24.94, timezone="Europe/Helsinki")

    def test_fetch_returns_all_five_prayers(self) -> None:
        client = AladhanClient()
        with patch("muhasib.services.timings.httpx.get", return_value=_response(200, SAMPLE)) as mocked:
            timings = client.fetch(date(2024, 3, 1), self.coordinate)

        self.assertEqual(timings, {
            PrayerName.FAJR: "05:12",
            PrayerName.DHUHR: "12:30",
            PrayerName.ASR: "15:45",
            PrayerName.MAGHRIB: "18:50",
            PrayerName.ISHA: "20:10",
        })
        args, kwargs = mocked.call_args
        self.assertEqual(args[0], "https://api.aladhan.com/v1/timings/2024-03-01")
        self.assertEqual(kwargs["params"]["latitude"], 60.17)
        self.assertEqual(kwargs["params"]["longitude"], 24.94)
        self.assertEqual(kwargs["params"]["method"], 2)
        self.assertEqual(kwargs["params"]["timezonestring"], "Europe/Helsinki")
        self.assertNotIn("school", kwargs["params"])
        self.assertEqual(kwargs["timeout"], 10.0)

    def test_settings_drive_method_school_timezone_and_timeout(self) -> None:
        settings = PrayerSettings(calculation_method="Diyanet", madhab="Hanafi", timezone="Europe/Istanbul", timeout=3.5)
        client = AladhanClient(settings)
        with patch("muhasib.services.timings.httpx.get", return_value=_response(200, SAMPLE)) as mocked:
            client.fetch(date(2024, 3, 1), self.coordinate)

        kwargs = mocked.call_args.kwargs
        self.assertEqual(kwargs["params"]["method"], 13)
        self.assertEqual(kwargs["params"]["school"], 1)
        self.assertEqual(kwargs["params"]["timezonestring"], "Europe/Istanbul")
        self.assertEqual(kwargs["timeout"], 3.5)

    def test_lowercase_keys_and_missing_prayers(self) -> None:
        payload = {"data": {"timings": {"fajr": "05:12 (EET)", "isha": "20:10"}}}
        timings = extract_timings(payload)

        self.assertEqual(timings[PrayerName.FAJR], "05:12")
        self.assertEqual(timings[PrayerName.ISHA], "20:10")
        self.assertEqual(timings[PrayerName.DHUHR], "")

    def test_server_error_raises_fetch_failed(self) -> None:
        with patch("muhasib.services.timings.httpx.get", return_value=_response(500, {"code": 500})):
            with self.assertRaises(FetchFailed):
                AladhanClient().fetch(date(2024, 3, 1), self.coordinate)

    def test_transport_error_raises_fetch_failed(self) -> None:
        with patch("muhasib.services.timings.httpx.get", side_effect=httpx.ConnectError("offline")):
            with self.assertRaises(FetchFailed):
                AladhanClient().fetch(date(2024, 3, 1), self.coordinate)

    def test_timeout_raises_fetch_failed(self) -> None:
        with patch("muhasib.services.timings.httpx.get", side_effect=httpx.ReadTimeout("slow")):
            with self.assertRaises(FetchFailed):
                AladhanClient().fetch(date(2024, 3, 1), self.coordinate)

    def test_malformed_body_raises_fetch_failed(self) -> None:
        with patch("muhasib.services.timings.httpx.get", return_value=_response(200, text="<html>")):
            with self.assertRaises(FetchFailed):
                AladhanClient().fetch(date(2024, 3, 1), self.coordinate)
        with patch("muhasib.services.timings.httpx.get", return_value=_response(200, {"data": {}})):
            with self.assertRaises(FetchFailed):
                AladhanClient().fetch(date(2024, 3, 1), self.coordinate)

    def test_resolve_method(self) -> None:
        self.assertEqual(resolve_method("MuslimWorldLeague"), 3)
        self.assertEqual(resolve_method("15"), 15)
        self.assertEqual(resolve_method(""), 2)
        self.assertEqual(resolve_method("Nonsense"), 2)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
