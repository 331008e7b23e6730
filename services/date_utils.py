from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple


@dataclass(frozen=True)
class NormalizedDate:
    """A UTC instant plus whether it came from the input or is a fallback."""

    value: datetime
    parsed: bool

    def isoformat(self) -> str:
        return self.value.isoformat()

    def day(self) -> str:
        return self.value.strftime("%Y-%m-%d")


_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

_SLASH_MDY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DAY_MON_YEAR = re.compile(r"^(\d{1,2})[\s-]+([A-Za-z]{3,9})\.?[\s-]+(\d{4})$")
_ISO_WITH_TIME = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.(\d{1,6}))?)?"
    r"\s*(Z|UTC|GMT|[+-]\d{2}:?\d{2})?$",
    re.IGNORECASE,
)
_SLASH_SHORT_YEAR_CLOCK = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{2}),?\s+(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([AaPp][Mm])$"
)


def _utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0, micro: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, micro, tzinfo=timezone.utc)


def _parse_slash_mdy(text: str) -> Optional[datetime]:
    m = _SLASH_MDY.match(text)
    if not m:
        return None
    month, day, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    return _utc(year, month, day)


def _parse_day_mon_year(text: str) -> Optional[datetime]:
    m = _DAY_MON_YEAR.match(text)
    if not m:
        return None
    month = _MONTHS.get(m.group(2).lower()[:4]) or _MONTHS.get(m.group(2).lower()[:3])
    if not month:
        return None
    return _utc(int(m.group(3)), month, int(m.group(1)))


def _parse_iso_with_time(text: str) -> Optional[datetime]:
    m = _ISO_WITH_TIME.match(text)
    if not m:
        return None
    year, month, day, hour, minute = (int(m.group(i)) for i in range(1, 6))
    second = int(m.group(6) or 0)
    micro = int((m.group(7) or "0").ljust(6, "0"))
    value = _utc(year, month, day, hour, minute, second, micro)
    offset = (m.group(8) or "").upper()
    if offset and offset not in ("Z", "UTC", "GMT"):
        sign = 1 if offset[0] == "+" else -1
        digits = offset[1:].replace(":", "")
        delta_minutes = sign * (int(digits[:2]) * 60 + int(digits[2:]))
        value = value - timedelta(minutes=delta_minutes)
    return value


def _parse_slash_short_year_clock(text: str) -> Optional[datetime]:
    m = _SLASH_SHORT_YEAR_CLOCK.match(text)
    if not m:
        return None
    month, day, yy = int(m.group(1)), int(m.group(2)), int(m.group(3))
    hour, minute, second = int(m.group(4)), int(m.group(5)), int(m.group(6) or 0)
    meridiem = m.group(7).upper()
    if hour > 12:
        return None
    if meridiem == "AM":
        hour = 0 if hour == 12 else hour
    else:
        hour = 12 if hour == 12 else hour + 12
    return _utc(2000 + yy, month, day, hour, minute, second)


def _parse_generic(text: str) -> Optional[datetime]:
    candidate = text.replace("Z", "+00:00") if text.endswith("Z") else text
    value = datetime.fromisoformat(candidate)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Explicit shapes first, generic parse last
_DETECTORS: List[Tuple[str, Callable[[str], Optional[datetime]]]] = [
    ("slash_mdy", _parse_slash_mdy),
    ("day_mon_year", _parse_day_mon_year),
    ("iso_with_time", _parse_iso_with_time),
    ("slash_short_year_clock", _parse_slash_short_year_clock),
    ("generic", _parse_generic),
]


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Return the UTC instant for a known date shape, or None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    for _name, detector in _DETECTORS:
        try:
            parsed = detector(text)
        except (ValueError, OverflowError):
            # Shape matched but the calendar values are impossible (e.g. 2/30/2023)
            parsed = None
        if parsed is not None:
            return parsed
    return None


def normalize_date(value: Optional[str], now: Optional[datetime] = None) -> NormalizedDate:
    """Normalize an export date string to a UTC instant.

    Falls back to the current instant when the input is empty or unparseable;
    the ``parsed`` flag tells callers which of the two they got.
    """
    parsed = parse_date(value)
    if parsed is not None:
        return NormalizedDate(parsed, True)
    fallback = now or datetime.now(timezone.utc)
    if fallback.tzinfo is None:
        fallback = fallback.replace(tzinfo=timezone.utc)
    return NormalizedDate(fallback.astimezone(timezone.utc), False)
