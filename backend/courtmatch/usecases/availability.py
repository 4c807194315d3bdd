from datetime import datetime
from typing import Iterable, Optional

from ..domain import availability as engine
from ..domain.repositories import Repositories, TransactionRunner
from ..domain.timeslots import Shift, Slot
from ..models import Category, CourtId, FixedBooking, Match
from ..utils.time import local_now


async def fetch_day_matches(tx: TransactionRunner, date: str, court_id: Optional[str] = None) -> list[Match]:
    return await tx.read(lambda repos: repos.matches.list_for_day(date, court_id))


async def fetch_day_fixed(tx: TransactionRunner, date: str, court_id: Optional[str] = None) -> list[FixedBooking]:
    return await tx.read(lambda repos: repos.fixed.list_for_day(date, court_id))


async def _load_day(tx: TransactionRunner, date: str) -> tuple[list[Match], list[FixedBooking]]:
    async def work(repos: Repositories) -> tuple[list[Match], list[FixedBooking]]:
        matches = await repos.matches.list_for_day(date)
        fixed = await repos.fixed.list_for_day(date)
        return matches, fixed

    return await tx.read(work)


def _courts(court_ids: Optional[Iterable[str]]) -> list[str]:
    return list(court_ids) if court_ids else [court.value for court in CourtId]


async def compute_availability(
    tx: TransactionRunner,
    *,
    date: str,
    duration: int,
    court_ids: Optional[Iterable[str]] = None,
    category: Optional[str] = None,
    shift: Optional[Shift] = None,
    now: Optional[datetime] = None,
) -> dict[CourtId, list[Slot]]:
    courts = _courts(court_ids)
    engine.validate_request(date, duration, courts)
    engine.parse_category(category)
    if shift is not None:
        engine.parse_shift(shift)
    matches, fixed = await _load_day(tx, date)
    return engine.compute_availability(
        date=date,
        duration=duration,
        court_ids=courts,
        matches=matches,
        fixed=fixed,
        now=now or local_now(),
        shift=shift,
    )


async def build_day_grid(
    tx: TransactionRunner,
    *,
    date: str,
    duration: int,
    court_ids: Optional[Iterable[str]] = None,
    category: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict[CourtId, list[engine.GridItem]]:
    courts = _courts(court_ids)
    engine.validate_request(date, duration, courts)
    player_category: Optional[Category] = engine.parse_category(category)
    matches, fixed = await _load_day(tx, date)
    return engine.build_day_grid(
        date=date,
        duration=duration,
        court_ids=courts,
        matches=matches,
        fixed=fixed,
        now=now or local_now(),
        category=player_category,
    )


async def list_free_slots(
    tx: TransactionRunner,
    *,
    date: str,
    duration: int,
    shift: Shift,
    court_ids: Optional[Iterable[str]] = None,
    now: Optional[datetime] = None,
) -> list[engine.FreeSlot]:
    courts = _courts(court_ids)
    engine.validate_request(date, duration, courts)
    engine.parse_shift(shift)
    matches, fixed = await _load_day(tx, date)
    return engine.list_free_slots(
        date=date,
        duration=duration,
        shift=shift,
        court_ids=courts,
        matches=matches,
        fixed=fixed,
        now=now or local_now(),
    )
