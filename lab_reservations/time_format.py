from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from .errors import FormatError

PICKER_FORMAT = "%Y-%m-%d %H:%M"
CANONICAL_FORMAT = "%Y-%m-%dT%H:%M:%S"
FIRST_PICKER_HOUR = 8
LAST_PICKER_HOUR = 22

_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}")


def _zone(tz: str | tzinfo) -> tzinfo:
    if isinstance(tz, tzinfo):
        return tz
    if tz.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(tz)


def _parse(text: str) -> datetime:
    if not _DATETIME_RE.match(text):
        raise ValueError(f"not a date-time: {text!r}")
    return datetime.fromisoformat(text)


def to_canonical(text: str | None, tz: str | tzinfo = "UTC") -> str:
    """Convert a picker value to the canonical wire timestamp.

    Naive input is read in ``tz``. The result is UTC, truncated to whole
    seconds, without an offset suffix (``2024-05-01T14:00:00``).
    """
    candidate = (text or "").strip()
    if not candidate:
        raise FormatError("Reservation time is required.")
    try:
        parsed = _parse(candidate)
    except ValueError as error:
        raise FormatError(f"Could not parse reservation time: {candidate!r}") from error

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_zone(tz))
    utc_value = parsed.astimezone(timezone.utc).replace(microsecond=0, tzinfo=None)
    return utc_value.strftime(CANONICAL_FORMAT)


def _as_zoned(timestamp: str | datetime, tz: str | tzinfo) -> datetime:
    value = timestamp if isinstance(timestamp, datetime) else _parse(timestamp.strip())
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(_zone(tz))


def to_display_string(timestamp: str | datetime, tz: str | tzinfo = "UTC") -> str:
    """Render a timestamp like ``Wed, May 1, 2024, 02:00 PM``.

    Cosmetic only. Unparsable input is returned unchanged.
    """
    try:
        value = _as_zoned(timestamp, tz)
    except ValueError:
        return str(timestamp)
    return f"{value:%a}, {value:%b} {value.day}, {value.year}, {value:%I:%M %p}"


def to_picker_string(timestamp: str | datetime, tz: str | tzinfo = "UTC") -> str:
    return _as_zoned(timestamp, tz).strftime(PICKER_FORMAT)


def picker_hours() -> list[str]:
    return [f"{hour:02d}:00" for hour in range(FIRST_PICKER_HOUR, LAST_PICKER_HOUR + 1)]


def today_iso(tz: str | tzinfo = "UTC", now: datetime | None = None) -> str:
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(_zone(tz)).date().isoformat()
