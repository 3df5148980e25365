"""
Countdown to the event instant.

The instant is the wedding date combined with the wedding time, interpreted
in the wedding's own IANA timezone. Remaining time is clamped at zero once
the event has started.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.invites.constants import MILESTONE_AGES

_TIME_12H_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([AaPp])\.?[Mm]\.?$")
_TIME_24H_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


@dataclass(frozen=True)
class Countdown:
    days: int
    hours: int
    minutes: int
    seconds: int
    total_seconds: int
    is_past: bool
    event_at: str  # ISO-8601 with offset

    def to_dict(self) -> dict:
        return asdict(self)


def parse_event_time(value: str | None) -> time:
    """
    Parse "4:00 PM", "4 pm", "16:00" or "16:00:30". Blank values mean midnight.
    Raises ValueError for anything else.
    """
    s = (value or "").strip()
    if not s:
        return time(0, 0)

    m = _TIME_12H_RE.match(s)
    if m:
        hour = int(m.group(1))
        minute = int(m.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            raise ValueError(f"Invalid time: {value!r}")
        hour = hour % 12
        if m.group(3).lower() == "p":
            hour += 12
        return time(hour, minute)

    m = _TIME_24H_RE.match(s)
    if m:
        hour, minute, second = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
        if hour > 23 or minute > 59 or second > 59:
            raise ValueError(f"Invalid time: {value!r}")
        return time(hour, minute, second)

    raise ValueError(f"Invalid time: {value!r}")


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name!r}") from e


def event_instant(event_date: date | datetime, event_time: str | None, tz_name: str) -> datetime:
    d = event_date.date() if isinstance(event_date, datetime) else event_date
    return datetime.combine(d, parse_event_time(event_time), tzinfo=load_zone(tz_name))


def local_deadline(value: str | date | datetime | None, tz_name: str) -> datetime | None:
    """
    Normalize an RSVP deadline to naive wall-clock time in the event's zone.

    A bare date means the end of that day. A value with an offset is converted
    into the zone; a naive datetime is taken as already local.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime.combine(value, time(23, 59, 59))
    else:
        s = str(value).strip()
        if not s:
            return None
        if len(s) == 10:
            return datetime.combine(date.fromisoformat(s), time(23, 59, 59))
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone(load_zone(tz_name)).replace(tzinfo=None)
    return dt


def local_now(tz_name: str, now: datetime | None = None) -> datetime:
    """Naive wall-clock time in the zone; a naive `now` is read as UTC."""
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(load_zone(tz_name)).replace(tzinfo=None)


def compute_countdown(
    event_date: date | datetime,
    event_time: str | None,
    tz_name: str,
    *,
    now: datetime | None = None,
) -> Countdown:
    target = event_instant(event_date, event_time, tz_name)
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)

    remaining = int((target - current).total_seconds())
    is_past = remaining <= 0
    remaining = max(remaining, 0)

    days, rest = divmod(remaining, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return Countdown(
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        total_seconds=remaining,
        is_past=is_past,
        event_at=target.isoformat(),
    )


def is_milestone_age(age: str | int | None) -> bool:
    if age is None:
        return False
    try:
        return int(str(age).strip()) in MILESTONE_AGES
    except ValueError:
        return False
