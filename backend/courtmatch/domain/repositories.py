from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Protocol, TypeVar

from ..models import Category, Court, FixedBooking, Match, MatchStatus

T = TypeVar("T")


class CourtRepository(Protocol):
    async def get_for_update(self, court_id: str) -> Court | None: ...


class FixedBookingRepository(Protocol):
    async def list_for_day(self, date: str, court_id: str | None = None) -> list[FixedBooking]: ...


class MatchRepository(Protocol):
    async def get(self, match_id: str) -> Match | None: ...

    async def get_for_update(self, match_id: str) -> Match | None: ...

    async def list_for_day(self, date: str, court_id: str | None = None) -> list[Match]: ...

    async def list_by_status(self, status: MatchStatus, date: str | None = None) -> list[Match]: ...

    async def list_by_player(self, uid: str) -> list[Match]: ...

    async def create(
        self,
        *,
        match_id: str,
        date: str,
        court_id: str,
        start: str,
        end: str,
        duration: int,
        category: Category,
        creator_uid: str,
        creator_name: str,
        creator_photo_url: str | None,
        created_at: datetime,
        joined_at: int,
    ) -> Match: ...

    async def add_player(
        self,
        match: Match,
        *,
        uid: str,
        name: str,
        photo_url: str | None,
        joined_at: int,
        status: MatchStatus,
    ) -> Match: ...


@dataclass(frozen=True)
class Repositories:
    courts: CourtRepository
    fixed: FixedBookingRepository
    matches: MatchRepository


class TransactionRunner(Protocol):
    """Runs ``work`` inside one atomic store transaction, retrying transient faults."""

    async def run(self, work: Callable[[Repositories], Awaitable[T]]) -> T: ...

    async def read(self, work: Callable[[Repositories], Awaitable[T]]) -> T: ...
