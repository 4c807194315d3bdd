"""Time-of-day arithmetic and candidate slot generation.

All times are zero-padded 24h ``HH:mm`` strings at minute granularity and all
dates are ``YYYY-MM-DD`` strings. The operating window never crosses
midnight, so no modulo-day arithmetic is needed.
"""

from __future__ import annotations

import math
import re
from datetime import date as date_type
from datetime import datetime
from enum import StrEnum
from typing import Iterator, NamedTuple

from .errors import ValidationError

DAY_OPEN = "09:00"
DAY_CLOSE = "23:00"
STEP_MINUTES = 30
LEAD_MINUTES = 30

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class Shift(StrEnum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


SHIFT_WINDOWS: dict[Shift, tuple[str, str]] = {
    Shift.MORNING: ("09:00", "12:00"),
    Shift.AFTERNOON: ("12:00", "18:00"),
    Shift.EVENING: ("18:00", "23:00"),
}


class Slot(NamedTuple):
    start: str
    end: str


def to_minutes(hhmm: str) -> int:
    match = _HHMM.match(hhmm) if isinstance(hhmm, str) else None
    if match is None:
        raise ValidationError(f"invalid time of day: {hhmm!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def to_hhmm(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def add_minutes(hhmm: str, minutes: int) -> str:
    return to_hhmm(to_minutes(hhmm) + minutes)


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """True iff ``[a_start, a_end)`` and ``[b_start, b_end)`` intersect."""
    return to_minutes(a_start) < to_minutes(b_end) and to_minutes(a_end) > to_minutes(b_start)


def parse_date(value: str) -> date_type:
    try:
        parsed = date_type.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"invalid date: {value!r}") from exc
    if parsed.isoformat() != value:
        raise ValidationError(f"invalid date: {value!r}")
    return parsed


def weekday_of(value: str) -> int:
    """Weekday number used by fixed bookings: 0 = Sunday ... 6 = Saturday."""
    return (parse_date(value).weekday() + 1) % 7


def shift_window(shift: Shift | None) -> tuple[str, str]:
    if shift is None:
        return DAY_OPEN, DAY_CLOSE
    return SHIFT_WINDOWS[Shift(shift)]


def shift_of(hhmm: str) -> Shift:
    minutes = to_minutes(hhmm)
    if minutes < to_minutes("12:00"):
        return Shift.MORNING
    if minutes < to_minutes("18:00"):
        return Shift.AFTERNOON
    return Shift.EVENING


def earliest_start_minutes(date: str, now: datetime) -> int | None:
    """Lead-time cutoff for ``date``, rounded up to the step; None when no cutoff applies."""
    if parse_date(date) != now.date():
        return None
    raw = now.hour * 60 + now.minute + LEAD_MINUTES
    if now.second or now.microsecond:
        raw += 1
    return math.ceil(raw / STEP_MINUTES) * STEP_MINUTES


class SlotSequence:
    """Restartable, lazily evaluated sequence of candidate slots."""

    def __init__(self, duration: int, date: str, now: datetime, shift: Shift | None = None) -> None:
        if duration <= 0:
            raise ValidationError("duration must be positive")
        open_at, close_at = shift_window(shift)
        self.duration = duration
        self.open = to_minutes(open_at)
        self.close = to_minutes(close_at)
        self.cutoff = earliest_start_minutes(date, now)

    def __iter__(self) -> Iterator[Slot]:
        first = self.open if self.cutoff is None else max(self.open, self.cutoff)
        # Keep starts on the step grid anchored at the window opening.
        offset = (first - self.open) % STEP_MINUTES
        if offset:
            first += STEP_MINUTES - offset
        start = first
        while start + self.duration <= self.close:
            yield Slot(to_hhmm(start), to_hhmm(start + self.duration))
            start += STEP_MINUTES


def generate_starts(duration: int, date: str, now: datetime, shift: Shift | None = None) -> SlotSequence:
    return SlotSequence(duration, date, now, shift)
