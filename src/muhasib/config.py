from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
import tomllib


def _default_config_root() -> Path:
    return Path.home() / ".config" / "muhasib"


def _default_store_path() -> Path:
    return Path.home() / ".local" / "share" / "muhasib" / "store.json"


@dataclass(slots=True)
class LocationSettings:
    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None
    use_geolocation: bool = True

    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(slots=True)
class PrayerSettings:
    endpoint: str = ""
    calculation_method: str = "Islamic Society of North America"
    madhab: str = ""
    timezone: str | None = None
    timeout: float = 10.0


@dataclass(slots=True)
class CacheSettings:
    freshness_hours: float = 24.0

    @property
    def freshness(self) -> timedelta:
        return timedelta(hours=self.freshness_hours)


@dataclass(slots=True)
class StorageSettings:
    path: Path = field(default_factory=_default_store_path)
    completion_scope: str = "prayer"


@dataclass(slots=True)
class MuhasibConfig:
    location: LocationSettings
    prayer_settings: PrayerSettings
    cache: CacheSettings
    storage: StorageSettings

    @classmethod
    def default(cls) -> "MuhasibConfig":
        return cls(
            location=LocationSettings(),
            prayer_settings=PrayerSettings(),
            cache=CacheSettings(),
            storage=StorageSettings(),
        )

    def to_dict(self) -> dict:
        return {
            "location": {
                "latitude": self.location.latitude,
                "longitude": self.location.longitude,
                "timezone": self.location.timezone,
                "use_geolocation": self.location.use_geolocation,
            },
            "prayer_settings": {
                "endpoint": self.prayer_settings.endpoint,
                "calculation_method": self.prayer_settings.calculation_method,
                "madhab": self.prayer_settings.madhab,
                "timezone": self.prayer_settings.timezone,
                "timeout": self.prayer_settings.timeout,
            },
            "cache": {
                "freshness_hours": self.cache.freshness_hours,
            },
            "storage": {
                "path": str(self.storage.path),
                "completion_scope": self.storage.completion_scope,
            },
        }


class ConfigManager:
    """Simple TOML configuration loader."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path = config_path or (_default_config_root() / "config.toml")
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self._errors: list[str] = []

    def errors(self) -> list[str]:
        return list(self._errors)

    def load(self) -> MuhasibConfig:
        self._errors.clear()
        if not self.config_path.exists():
            config = MuhasibConfig.default()
            self._write(config)
            return config

        try:
            with self.config_path.open("rb") as handle:
                raw = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            self._errors.append(f"Invalid config file: {exc}")
            return MuhasibConfig.default()

        location_cfg = raw.get("location", {})
        prayer_cfg = raw.get("prayer_settings", {})
        cache_cfg = raw.get("cache", {})
        storage_cfg = raw.get("storage", {})
        defaults = MuhasibConfig.default()

        def _float_or_none(key: str, value: float | str | None) -> float | None:
            if value in (None, "", "nan"):
                return None
            try:
                return float(value)
            except (TypeError, ValueError):
                self._errors.append(f"Invalid {key}: {value!r}")
                return None

        def _positive_float(key: str, value: object, default: float) -> float:
            try:
                number = float(value)  # type: ignore[arg-type]
            except (TypeError, ValueError):
                self._errors.append(f"Invalid {key}: {value!r}")
                return default
            if number <= 0:
                self._errors.append(f"Invalid {key}: must be positive")
                return default
            return number

        def _string_or_none(value: object | None) -> str | None:
            if value in (None, "", "null"):
                return None
            return str(value)

        scope = str(storage_cfg.get("completion_scope", defaults.storage.completion_scope))
        if scope not in ("prayer", "day"):
            self._errors.append(f"Invalid storage.completion_scope: {scope!r}")
            scope = defaults.storage.completion_scope

        store_path_value = storage_cfg.get("path") or str(defaults.storage.path)

        return MuhasibConfig(
            location=LocationSettings(
                latitude=_float_or_none("location.latitude", location_cfg.get("latitude")),
                longitude=_float_or_none("location.longitude", location_cfg.get("longitude")),
                timezone=_string_or_none(location_cfg.get("timezone")),
                use_geolocation=bool(location_cfg.get("use_geolocation", True)),
            ),
            prayer_settings=PrayerSettings(
                endpoint=str(prayer_cfg.get("endpoint", "")),
                calculation_method=str(
                    prayer_cfg.get("calculation_method", defaults.prayer_settings.calculation_method)
                ),
                madhab=str(prayer_cfg.get("madhab", "")),
                timezone=_string_or_none(prayer_cfg.get("timezone")),
                timeout=_positive_float(
                    "prayer_settings.timeout",
                    prayer_cfg.get("timeout", defaults.prayer_settings.timeout),
                    defaults.prayer_settings.timeout,
                ),
            ),
            cache=CacheSettings(
                freshness_hours=_positive_float(
                    "cache.freshness_hours",
                    cache_cfg.get("freshness_hours", defaults.cache.freshness_hours),
                    defaults.cache.freshness_hours,
                ),
            ),
            storage=StorageSettings(
                path=Path(store_path_value).expanduser(),
                completion_scope=scope,
            ),
        )

    def _write(self, config: MuhasibConfig) -> None:
        data = config.to_dict()
        lines = ["[location]"]
        if data["location"]["latitude"] is not None:
            lines.append(f"latitude = {data['location']['latitude']}")
        if data["location"]["longitude"] is not None:
            lines.append(f"longitude = {data['location']['longitude']}")
        lines.append(f"timezone = \"{data['location']['timezone'] or ''}\"")
        lines.append(f"use_geolocation = {str(data['location']['use_geolocation']).lower()}")
        lines.extend([
            "",
            "[prayer_settings]",
            f"endpoint = \"{data['prayer_settings']['endpoint']}\"",
            f"calculation_method = \"{data['prayer_settings']['calculation_method']}\"",
            f"madhab = \"{data['prayer_settings']['madhab']}\"",
            f"timezone = \"{data['prayer_settings']['timezone'] or ''}\"",
            f"timeout = {data['prayer_settings']['timeout']}",
            "",
            "[cache]",
            f"freshness_hours = {data['cache']['freshness_hours']}",
            "",
            "[storage]",
            f"path = \"{data['storage']['path']}\"",
            f"completion_scope = \"{data['storage']['completion_scope']}\"",
        ])
        self.config_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    def save(self, config: MuhasibConfig) -> None:
        self._write(config)
