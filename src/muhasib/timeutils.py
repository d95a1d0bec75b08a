from __future__ import annotations

from datetime import date, time, timedelta


def parse_hhmm(value: str) -> time:
    value = value.strip()
    parts: list[str]
    if ":" in value:
        parts = value.split(":", 1)
    elif "." in value:
        parts = value.split(".", 1)
    else:
        raise ValueError(f"Unsupported time format: {value}")
    hour = int(parts[0])
    minute = int(parts[1])
    if not (0 <= hour < 24 and 0 <= minute < 60):  # pragma: no cover - guard rail
        raise ValueError(f"Invalid time value: {value}")
    return time(hour=hour, minute=minute)


def sanitize_time(value: object) -> str:
    """Normalise a service timestamp such as ``"05:12 (EET)"`` to ``"05:12"``.

    Anything that does not parse as a clock time becomes an empty string.
    """
    if not isinstance(value, str):
        return ""
    value = value.strip()
    if " " in value:
        value = value.split(" ", 1)[0]
    if "+" in value:
        value = value.split("+", 1)[0]
    if "-" in value and value.count(":") == 1 and value.split("-", 1)[1].isdigit():
        value = value.split("-", 1)[0]
    try:
        return parse_hhmm(value).strftime("%H:%M")
    except ValueError:
        return ""


def shift_day(day: date, days: int) -> date:
    # date arithmetic has no wall-clock component, so DST shifts never apply
    return day + timedelta(days=days)


def day_label(day: date, today: date | None = None) -> str:
    if day == (today or date.today()):
        return "Today"
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"
