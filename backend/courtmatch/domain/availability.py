from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Iterable, Optional, Protocol, Sequence

from ..models import Category, CourtId, Duration, MatchStatus
from .errors import ValidationError
from .timeslots import Shift, Slot, add_minutes, generate_starts, overlaps, parse_date

COURT_ORDER: tuple[CourtId, ...] = tuple(CourtId)


class MatchLike(Protocol):
    id: str
    court_id: str
    start: str
    end: str
    category: Category
    status: MatchStatus
    players: Sequence[object]


class FixedLike(Protocol):
    court_id: str
    start: str
    duration: int
    note: Optional[str]


class SlotState(StrEnum):
    FIXED = "fixed"
    MATCH_OPEN = "match_open"
    MATCH_FULL = "match_full"
    FREE = "free"


@dataclass(frozen=True)
class MatchSummary:
    id: str
    category: Category
    status: MatchStatus
    players: tuple[object, ...]
    start: str
    end: str


@dataclass(frozen=True)
class FixedSummary:
    start: str
    end: str
    note: Optional[str] = None


@dataclass(frozen=True)
class GridItem:
    start: str
    end: str
    state: SlotState
    match: Optional[MatchSummary] = None
    fixed: Optional[FixedSummary] = None
    joinable: Optional[bool] = None


@dataclass(frozen=True, order=True)
class FreeSlot:
    start: str
    court_rank: int = field(repr=False)
    court_id: CourtId = field(compare=False)
    end: str = field(compare=False)


def validate_request(date: str, duration: int, court_ids: Iterable[str]) -> list[CourtId]:
    parse_date(date)
    try:
        Duration(duration)
    except ValueError as exc:
        raise ValidationError(f"duration must be one of {[d.value for d in Duration]}") from exc
    courts: list[CourtId] = []
    for court_id in court_ids:
        try:
            courts.append(CourtId(court_id))
        except ValueError as exc:
            raise ValidationError(f"unknown court: {court_id!r}") from exc
    return courts


def parse_category(value: Optional[str]) -> Optional[Category]:
    if value is None:
        return None
    try:
        return Category(value)
    except ValueError as exc:
        raise ValidationError(f"unknown category: {value!r}") from exc


def parse_shift(value: str) -> Shift:
    try:
        return Shift(value)
    except ValueError as exc:
        raise ValidationError(f"unknown shift: {value!r}") from exc


def fixed_end(fixed: FixedLike) -> str:
    return add_minutes(fixed.start, fixed.duration)


def _partition(courts: list[CourtId], matches: Iterable[MatchLike], fixed: Iterable[FixedLike]):
    matches_by_court: dict[str, list[MatchLike]] = {court: [] for court in courts}
    fixed_by_court: dict[str, list[FixedLike]] = {court: [] for court in courts}
    for match in matches:
        if match.status == MatchStatus.CANCELLED:
            continue
        if match.court_id in matches_by_court:
            matches_by_court[match.court_id].append(match)
    for booking in fixed:
        if booking.court_id in fixed_by_court:
            fixed_by_court[booking.court_id].append(booking)
    return matches_by_court, fixed_by_court


def _fixed_hit(slot: Slot, bookings: list[FixedLike]) -> FixedLike | None:
    for booking in bookings:
        if overlaps(slot.start, slot.end, booking.start, fixed_end(booking)):
            return booking
    return None


def _match_hit(slot: Slot, matches: list[MatchLike]) -> MatchLike | None:
    for match in matches:
        if overlaps(slot.start, slot.end, match.start, match.end):
            return match
    return None


def classify_slot(
    slot: Slot,
    matches: list[MatchLike],
    fixed: list[FixedLike],
    *,
    category: Category | None = None,
) -> GridItem:
    """Classify one slot; fixed bookings win over matches and are never joinable."""
    booking = _fixed_hit(slot, fixed)
    if booking is not None:
        return GridItem(
            start=slot.start,
            end=slot.end,
            state=SlotState.FIXED,
            fixed=FixedSummary(start=booking.start, end=fixed_end(booking), note=booking.note),
        )

    match = _match_hit(slot, matches)
    if match is not None:
        is_full = match.status == MatchStatus.FULL
        joinable = None
        if category is not None:
            joinable = not is_full and match.category == category
        return GridItem(
            start=slot.start,
            end=slot.end,
            state=SlotState.MATCH_FULL if is_full else SlotState.MATCH_OPEN,
            match=MatchSummary(
                id=match.id,
                category=match.category,
                status=match.status,
                players=tuple(match.players),
                start=match.start,
                end=match.end,
            ),
            joinable=joinable,
        )

    return GridItem(start=slot.start, end=slot.end, state=SlotState.FREE)


def build_day_grid(
    *,
    date: str,
    duration: int,
    court_ids: Iterable[str],
    matches: Iterable[MatchLike],
    fixed: Iterable[FixedLike],
    now: datetime,
    category: Category | None = None,
) -> dict[CourtId, list[GridItem]]:
    courts = validate_request(date, duration, court_ids)
    matches_by_court, fixed_by_court = _partition(courts, matches, fixed)
    slots = generate_starts(duration, date, now)
    grid: dict[CourtId, list[GridItem]] = {}
    for court in courts:
        grid[court] = [
            classify_slot(slot, matches_by_court[court], fixed_by_court[court], category=category)
            for slot in slots
        ]
    return grid


def compute_availability(
    *,
    date: str,
    duration: int,
    court_ids: Iterable[str],
    matches: Iterable[MatchLike],
    fixed: Iterable[FixedLike],
    now: datetime,
    shift: Shift | None = None,
) -> dict[CourtId, list[Slot]]:
    if shift is not None:
        shift = parse_shift(shift)
    courts = validate_request(date, duration, court_ids)
    matches_by_court, fixed_by_court = _partition(courts, matches, fixed)
    slots = generate_starts(duration, date, now, shift)
    result: dict[CourtId, list[Slot]] = {}
    for court in courts:
        result[court] = [
            slot
            for slot in slots
            if _fixed_hit(slot, fixed_by_court[court]) is None
            and _match_hit(slot, matches_by_court[court]) is None
        ]
    return result


def list_free_slots(
    *,
    date: str,
    duration: int,
    shift: Shift,
    court_ids: Iterable[str],
    matches: Iterable[MatchLike],
    fixed: Iterable[FixedLike],
    now: datetime,
) -> list[FreeSlot]:
    """Free slots within one shift, sorted by start then by court order."""
    shift = parse_shift(shift)
    per_court = compute_availability(
        date=date,
        duration=duration,
        court_ids=court_ids,
        matches=matches,
        fixed=fixed,
        now=now,
        shift=shift,
    )
    items = [
        FreeSlot(start=slot.start, court_rank=COURT_ORDER.index(court), court_id=court, end=slot.end)
        for court, slots in per_court.items()
        for slot in slots
    ]
    return sorted(items)
