"""In-memory store used by use-case tests.

Row locks taken through ``get_for_update`` are held until the surrounding
transaction ends, like ``SELECT ... FOR UPDATE`` in the real store. Every
repository call yields to the event loop so concurrent transactions interleave.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

from courtmatch.domain.repositories import Repositories
from courtmatch.domain.timeslots import weekday_of
from courtmatch.models import Category, Court, CourtId, FixedBooking, Match, MatchPlayer, MatchStatus

T = TypeVar("T")


class InMemoryStore:
    def __init__(self) -> None:
        self.courts: dict[str, Court] = {
            court.value: Court(id=court.value, name=f"Court {index}", active=True)
            for index, court in enumerate(CourtId, start=1)
        }
        self.fixed: list[FixedBooking] = []
        self.matches: dict[str, Match] = {}
        self.locks: dict[str, asyncio.Lock] = {}
        self.transactions = 0
        self.reads = 0

    def lock_for(self, key: str) -> asyncio.Lock:
        return self.locks.setdefault(key, asyncio.Lock())

    def add_fixed(
        self,
        court_id: str,
        start: str,
        duration: int,
        *,
        weekday: Optional[int] = None,
        date: Optional[str] = None,
        note: Optional[str] = None,
    ) -> FixedBooking:
        booking = FixedBooking(
            id=len(self.fixed) + 1,
            court_id=court_id,
            weekday=weekday,
            date=date,
            start=start,
            duration=duration,
            note=note,
        )
        self.fixed.append(booking)
        return booking


class _Tx:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.held: list[asyncio.Lock] = []

    async def lock(self, key: str) -> None:
        lock = self.store.lock_for(key)
        if lock in self.held:
            return
        await lock.acquire()
        self.held.append(lock)

    def release(self) -> None:
        while self.held:
            self.held.pop().release()


class FakeCourtRepo:
    def __init__(self, store: InMemoryStore, tx: Optional[_Tx]) -> None:
        self.store = store
        self.tx = tx

    async def get_for_update(self, court_id: str) -> Court | None:
        assert self.tx is not None, "locking read outside a transaction"
        await self.tx.lock(f"court:{court_id}")
        await asyncio.sleep(0)
        return self.store.courts.get(court_id)


class FakeFixedRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def list_for_day(self, date: str, court_id: str | None = None) -> list[FixedBooking]:
        await asyncio.sleep(0)
        weekday = weekday_of(date)
        return [
            f
            for f in self.store.fixed
            if (f.weekday == weekday or f.date == date) and (court_id is None or f.court_id == court_id)
        ]


class FakeMatchRepo:
    def __init__(self, store: InMemoryStore, tx: Optional[_Tx]) -> None:
        self.store = store
        self.tx = tx
        self.add_player_calls = 0

    async def get(self, match_id: str) -> Match | None:
        await asyncio.sleep(0)
        return self.store.matches.get(match_id)

    async def get_for_update(self, match_id: str) -> Match | None:
        assert self.tx is not None, "locking read outside a transaction"
        await self.tx.lock(f"match:{match_id}")
        await asyncio.sleep(0)
        return self.store.matches.get(match_id)

    async def list_for_day(self, date: str, court_id: str | None = None) -> list[Match]:
        await asyncio.sleep(0)
        rows = [
            m
            for m in self.store.matches.values()
            if m.date == date
            and (court_id is None or m.court_id == court_id)
            and m.status != MatchStatus.CANCELLED
        ]
        return sorted(rows, key=lambda m: m.start)

    async def list_by_status(self, status: MatchStatus, date: str | None = None) -> list[Match]:
        await asyncio.sleep(0)
        rows = [m for m in self.store.matches.values() if m.status == status and (date is None or m.date == date)]
        return sorted(rows, key=lambda m: (m.date, m.start))

    async def list_by_player(self, uid: str) -> list[Match]:
        await asyncio.sleep(0)
        rows = [m for m in self.store.matches.values() if any(p.uid == uid for p in m.players)]
        return sorted(rows, key=lambda m: (m.date, m.start))

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
    ) -> Match:
        await asyncio.sleep(0)
        match = Match(
            id=match_id,
            date=date,
            court_id=court_id,
            start=start,
            end=end,
            duration=duration,
            category=category,
            status=MatchStatus.FORMING,
            player_count=1,
            created_by=creator_uid,
            created_at=created_at,
            players=[
                MatchPlayer(
                    position=0,
                    uid=creator_uid,
                    name=creator_name,
                    photo_url=creator_photo_url,
                    joined_at=joined_at,
                )
            ],
        )
        self.store.matches[match_id] = match
        return match

    async def add_player(
        self,
        match: Match,
        *,
        uid: str,
        name: str,
        photo_url: str | None,
        joined_at: int,
        status: MatchStatus,
    ) -> Match:
        await asyncio.sleep(0)
        self.add_player_calls += 1
        match.players.append(
            MatchPlayer(position=len(match.players), uid=uid, name=name, photo_url=photo_url, joined_at=joined_at)
        )
        match.player_count = len(match.players)
        match.status = status
        return match


class FakeTransactionRunner:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def _repos(self, tx: Optional[_Tx]) -> Repositories:
        return Repositories(
            courts=FakeCourtRepo(self.store, tx),
            fixed=FakeFixedRepo(self.store),
            matches=FakeMatchRepo(self.store, tx),
        )

    async def run(self, work: Callable[[Repositories], Awaitable[T]]) -> T:
        self.store.transactions += 1
        tx = _Tx(self.store)
        try:
            return await work(self._repos(tx))
        finally:
            tx.release()

    async def read(self, work: Callable[[Repositories], Awaitable[T]]) -> T:
        self.store.reads += 1
        return await work(self._repos(None))
