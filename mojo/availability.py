"""Business-hours resolution over weekly opening periods.

Weekdays follow the convention of the place providers: 0 is Sunday and 6 is
Saturday. Times are minutes since local midnight. Everything here is a pure
function of its inputs; the caller supplies the local time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

MINUTES_PER_DAY = 24 * 60
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY
_END_OF_DAY = 23 * 60 + 59


@dataclass(frozen=True, slots=True)
class LocalTime:
    weekday: int
    minute: int

    @property
    def week_minute(self) -> int:
        return self.weekday * MINUTES_PER_DAY + self.minute


@dataclass(frozen=True, slots=True)
class OpeningPeriod:
    open_day: int
    open_minute: int
    close_day: int
    close_minute: int

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> OpeningPeriod:
        """Build a period from either provider or compact form.

        Provider form: ``{"open": {"day": 5, "time": "2200"}, "close": {...}}``.
        Compact form: ``{"day": 5, "open": "22:00", "close": "02:00"}``.
        A close earlier than the open on the same day is an overnight span.
        A missing close ends the period at 23:59 of the open day. A close of
        24:00 becomes 00:00 of the following day.
        """
        if isinstance(raw.get("open"), dict):
            open_day = int(raw["open"]["day"])
            open_minute = parse_time(raw["open"]["time"])
            close = raw.get("close")
            if not close:
                return cls(open_day, open_minute, open_day, _END_OF_DAY)
            close_day = int(close.get("day", open_day))
            close_minute = parse_time(close["time"])
        else:
            open_day = close_day = int(raw["day"])
            open_minute = parse_time(raw["open"])
            close_minute = parse_time(raw["close"]) if raw.get("close") else _END_OF_DAY

        if close_day == open_day and close_minute < open_minute:
            close_day = (open_day + 1) % 7
        if close_minute == MINUTES_PER_DAY:
            close_day, close_minute = close_day + 1, 0
        return cls(open_day % 7, open_minute, close_day % 7, close_minute)

    @property
    def opens_at(self) -> int:
        return self.open_day * MINUTES_PER_DAY + self.open_minute

    @property
    def closes_at(self) -> int:
        """Week minute of the close, past ``MINUTES_PER_WEEK`` when it wraps into next week."""
        closes = self.close_day * MINUTES_PER_DAY + self.close_minute
        if closes <= self.opens_at:
            closes += MINUTES_PER_WEEK
        return closes

    def contains(self, now: LocalTime) -> bool:
        point = now.week_minute
        return any(self.opens_at <= p < self.closes_at for p in (point, point + MINUTES_PER_WEEK))


@dataclass(frozen=True, slots=True)
class AvailabilityState:
    is_open: bool
    next_transition_day: int | None = None
    next_transition_time: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_open": self.is_open,
            "next_transition_day": self.next_transition_day,
            "next_transition_time": self.next_transition_time,
        }


def parse_time(value: str | int) -> int:
    """Parse ``"0930"``, ``"09:30"`` or ``930`` into minutes since midnight.

    ``"2400"`` is end of day and parses to ``MINUTES_PER_DAY``.
    """
    text = str(value).strip().replace(":", "").zfill(4)
    if len(text) != 4 or not text.isdigit():
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes = int(text[:2]), int(text[2:])
    if (hours, minutes) == (24, 0):
        return MINUTES_PER_DAY
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours * 60 + minutes


def format_time(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


def _instant(week_minute: int) -> tuple[int, str]:
    week_minute %= MINUTES_PER_WEEK
    return week_minute // MINUTES_PER_DAY, format_time(week_minute % MINUTES_PER_DAY)


def resolve_availability(periods: Iterable[OpeningPeriod], now: LocalTime) -> AvailabilityState:
    """Compute open/closed state and the next transition at ``now``.

    Overlapping periods resolve to the first match in (open day, open time)
    order.
    """
    ordered = sorted(periods, key=lambda p: (p.open_day, p.open_minute))
    if not ordered:
        return AvailabilityState(is_open=False)

    for period in ordered:
        if period.contains(now):
            day, time = _instant(period.closes_at)
            return AvailabilityState(is_open=True, next_transition_day=day, next_transition_time=time)

    upcoming = next((p for p in ordered if p.opens_at > now.week_minute), ordered[0])
    day, time = _instant(upcoming.opens_at)
    return AvailabilityState(is_open=False, next_transition_day=day, next_transition_time=time)


def local_time_in(tz_name: str, now_utc: datetime | None = None) -> LocalTime:
    """Convert an instant to provider weekday/minute in ``tz_name`` (UTC if unknown)."""
    instant = now_utc or datetime.now(timezone.utc)
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        zone = ZoneInfo("UTC")
    local = instant.astimezone(zone)
    return LocalTime(weekday=(local.weekday() + 1) % 7, minute=local.hour * 60 + local.minute)
