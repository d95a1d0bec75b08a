from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx  # type: ignore[import]

from ..config import LocationSettings
from ..models import Coordinate

logger = logging.getLogger(__name__)


class LocationError(RuntimeError):
    pass


class LocationPermissionDenied(LocationError):
    """The user did not allow the location lookup."""


class LocationUnavailable(LocationError):
    """Permission was granted but no coordinate could be obtained."""


class LocationProvider(Protocol):
    def request_permission(self) -> bool:
        ...

    def current_coordinate(self) -> Coordinate:
        ...


class ConfiguredLocationProvider:
    def __init__(self, coordinate: Coordinate) -> None:
        self.coordinate = coordinate

    def request_permission(self) -> bool:
        return True

    def current_coordinate(self) -> Coordinate:
        return self.coordinate


class DeniedLocationProvider:
    def request_permission(self) -> bool:
        return False

    def current_coordinate(self) -> Coordinate:  # pragma: no cover - never granted
        raise LocationPermissionDenied("Location lookup is disabled")


class IpLocationProvider:
    """Resolve the user's approximate location via an IP geolocation service."""

    def __init__(self, enabled: bool = True, endpoint: str = "https://ipapi.co/json/", timeout: float = 5.0) -> None:
        self.enabled = enabled
        self.endpoint = endpoint
        self.timeout = timeout

    def request_permission(self) -> bool:
        return self.enabled

    def current_coordinate(self) -> Coordinate:
        try:
            response = httpx.get(self.endpoint, timeout=self.timeout)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LocationUnavailable(f"IP geolocation failed: {exc}") from exc

        if not isinstance(data, dict):
            raise LocationUnavailable("IP geolocation returned an unexpected payload")
        lat = data.get("latitude", data.get("lat"))
        lon = data.get("longitude", data.get("lon"))
        timezone = data.get("timezone") or data.get("time_zone")
        if lat is None or lon is None:
            raise LocationUnavailable("IP geolocation returned no coordinates")
        try:
            return Coordinate(
                latitude=float(lat),
                longitude=float(lon),
                timezone=str(timezone) if timezone else None,
            )
        except (TypeError, ValueError) as exc:
            raise LocationUnavailable(f"IP geolocation returned bad coordinates: {exc}") from exc


def provider_from_config(settings: LocationSettings) -> LocationProvider:
    if settings.has_coordinates():
        return ConfiguredLocationProvider(
            Coordinate(
                latitude=float(settings.latitude),  # type: ignore[arg-type]
                longitude=float(settings.longitude),  # type: ignore[arg-type]
                timezone=settings.timezone,
            )
        )
    if settings.use_geolocation:
        return IpLocationProvider()
    return DeniedLocationProvider()


def resolve_location(provider: LocationProvider) -> Coordinate:
    """Run the one-shot permission handshake and coordinate lookup."""
    if not provider.request_permission():
        raise LocationPermissionDenied("Permission to access location was denied")
    try:
        coordinate = provider.current_coordinate()
    except LocationError:
        raise
    except Exception as exc:
        raise LocationUnavailable(str(exc)) from exc
    if coordinate is None:
        raise LocationUnavailable("No coordinate available")
    return coordinate
