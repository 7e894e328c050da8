"""Duration text formats: ISO-8601 (``P1DT2H``) and compact units (``1d2h``).

Both ``timedelta`` and ``TableDuration`` go through the same intermediate
form, ``(negative, months, days, nanoseconds)``, so either text format decodes
into either type. Sub-microsecond precision is truncated when decoding into a
``timedelta``.
"""

from __future__ import annotations

import re
from datetime import timedelta
from decimal import Decimal

from dataapi.core.types import TableDuration

NANOS_PER_MICRO = 1_000
NANOS_PER_MILLI = 1_000_000
NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MINUTE = 60 * NANOS_PER_SECOND
NANOS_PER_HOUR = 60 * NANOS_PER_MINUTE
NANOS_PER_DAY = 24 * NANOS_PER_HOUR

_ISO_PATTERN = re.compile(
    r"^(?P<sign>[-+])?P"
    r"(?:(?P<years>\d+)Y)?"
    r"(?:(?P<months>\d+)M)?"
    r"(?:(?P<weeks>\d+)W)?"
    r"(?:(?P<days>\d+)D)?"
    r"(?:T"
    r"(?:(?P<hours>\d+)H)?"
    r"(?:(?P<minutes>\d+)M)?"
    r"(?:(?P<seconds>\d+(?:[.,]\d{1,9})?)S)?"
    r")?$",
    re.IGNORECASE,
)

_COMPACT_UNIT = re.compile(r"(\d+)(mo|ms|us|µs|ns|y|w|d|h|m|s)", re.IGNORECASE)

# unit -> (months, nanoseconds) contributed by one unit
_COMPACT_FACTORS: dict[str, tuple[int, int]] = {
    "y": (12, 0),
    "mo": (1, 0),
    "w": (0, 7 * NANOS_PER_DAY),
    "d": (0, NANOS_PER_DAY),
    "h": (0, NANOS_PER_HOUR),
    "m": (0, NANOS_PER_MINUTE),
    "s": (0, NANOS_PER_SECOND),
    "ms": (0, NANOS_PER_MILLI),
    "us": (0, NANOS_PER_MICRO),
    "µs": (0, NANOS_PER_MICRO),
    "ns": (0, 1),
}


def _split_time(nanos: int) -> tuple[int, int, int, int]:
    hours, rest = divmod(nanos, NANOS_PER_HOUR)
    minutes, rest = divmod(rest, NANOS_PER_MINUTE)
    seconds, fraction = divmod(rest, NANOS_PER_SECOND)
    return hours, minutes, seconds, fraction


def _iso_time_part(nanos: int) -> str:
    hours, minutes, seconds, fraction = _split_time(nanos)
    out = ""
    if hours:
        out += f"{hours}H"
    if minutes:
        out += f"{minutes}M"
    if seconds or fraction:
        out += str(seconds)
        if fraction:
            out += "." + f"{fraction:09d}".rstrip("0")
        out += "S"
    return out


def format_iso(negative: bool, months: int, days: int, nanos: int) -> str:
    """Render an ISO-8601 duration; zero renders as ``PT0S``."""
    years, months = divmod(months, 12)
    date_part = ""
    if years:
        date_part += f"{years}Y"
    if months:
        date_part += f"{months}M"
    if days:
        date_part += f"{days}D"
    time_part = _iso_time_part(nanos)
    if not date_part and not time_part:
        return "PT0S"
    text = "P" + date_part + ("T" + time_part if time_part else "")
    return "-" + text if negative else text


def format_compact(negative: bool, months: int, days: int, nanos: int) -> str:
    """Render the compact unit form (``1y2mo3d4h5m6s7ms8us9ns``)."""
    years, months = divmod(months, 12)
    hours, minutes, seconds, fraction = _split_time(nanos)
    millis, rest = divmod(fraction, NANOS_PER_MILLI)
    micros, nanos_left = divmod(rest, NANOS_PER_MICRO)
    parts = [
        (years, "y"), (months, "mo"), (days, "d"), (hours, "h"), (minutes, "m"),
        (seconds, "s"), (millis, "ms"), (micros, "us"), (nanos_left, "ns"),
    ]
    text = "".join(f"{value}{unit}" for value, unit in parts if value)
    if not text:
        return "0s"
    return "-" + text if negative else text


def parse_duration(text: str) -> tuple[bool, int, int, int]:
    """Parse either format into ``(negative, months, days, nanoseconds)``.

    Raises:
        ValueError: if ``text`` is neither a valid ISO nor compact duration
    """
    value = text.strip()
    body = value.lstrip("+-")
    if body[:1].upper() == "P":
        return _parse_iso(value)
    return _parse_compact(value)


def _parse_iso(text: str) -> tuple[bool, int, int, int]:
    match = _ISO_PATTERN.match(text)
    if not match or not any(
        match.group(g) for g in ("years", "months", "weeks", "days", "hours", "minutes", "seconds")
    ):
        raise ValueError(f"Invalid ISO-8601 duration: {text!r}")
    groups = {k: int(v) for k, v in match.groupdict().items() if v and k not in ("sign", "seconds")}
    months = groups.get("years", 0) * 12 + groups.get("months", 0)
    days = groups.get("weeks", 0) * 7 + groups.get("days", 0)
    nanos = groups.get("hours", 0) * NANOS_PER_HOUR + groups.get("minutes", 0) * NANOS_PER_MINUTE
    if match.group("seconds"):
        seconds = Decimal(match.group("seconds").replace(",", "."))
        nanos += int(seconds * NANOS_PER_SECOND)
    return match.group("sign") == "-", months, days, nanos


def _parse_compact(text: str) -> tuple[bool, int, int, int]:
    negative = text.startswith("-")
    body = text.lstrip("+-")
    months = days = nanos = 0
    position = 0
    for match in _COMPACT_UNIT.finditer(body):
        if match.start() != position:
            break
        amount, unit = int(match.group(1)), match.group(2).lower()
        if unit == "d":
            days += amount
        elif unit == "w":
            days += 7 * amount
        else:
            month_factor, nano_factor = _COMPACT_FACTORS[unit]
            months += amount * month_factor
            nanos += amount * nano_factor
        position = match.end()
    if not body or position != len(body):
        raise ValueError(f"Invalid duration: {text!r}")
    return negative, months, days, nanos


# -- timedelta / TableDuration bridges ---------------------------------------


def timedelta_parts(value: timedelta) -> tuple[bool, int, int, int]:
    """Days are folded into hours, so ``timedelta(days=1)`` renders ``PT24H``."""
    micros = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    return micros < 0, 0, 0, abs(micros) * NANOS_PER_MICRO


def to_timedelta(negative: bool, months: int, days: int, nanos: int) -> timedelta:
    if months:
        raise ValueError("Durations with months or years cannot be represented as timedelta")
    result = timedelta(days=days, microseconds=nanos // NANOS_PER_MICRO)
    return -result if negative else result


def table_duration_parts(value: TableDuration) -> tuple[bool, int, int, int]:
    return value.is_negative, abs(value.months), abs(value.days), abs(value.nanoseconds)


def to_table_duration(negative: bool, months: int, days: int, nanos: int) -> TableDuration:
    sign = -1 if negative else 1
    return TableDuration(months=sign * months, days=sign * days, nanoseconds=sign * nanos)
