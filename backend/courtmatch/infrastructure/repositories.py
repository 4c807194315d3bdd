from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import CourtRepository, FixedBookingRepository, MatchRepository, Repositories
from ..domain.timeslots import weekday_of
from ..models import Category, Court, FixedBooking, Match, MatchPlayer, MatchStatus


class SqlAlchemyCourtRepository(CourtRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_for_update(self, court_id: str) -> Court | None:
        result = await self.session.scalar(select(Court).where(Court.id == court_id).with_for_update())
        return result if isinstance(result, Court) else None


class SqlAlchemyFixedBookingRepository(FixedBookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_day(self, date: str, court_id: str | None = None) -> list[FixedBooking]:
        # Weekday-recurring and date-exact bookings both apply to the same day.
        stmt = (
            select(FixedBooking)
            .where(or_(FixedBooking.weekday == weekday_of(date), FixedBooking.date == date))
            .order_by(FixedBooking.start)
        )
        if court_id is not None:
            stmt = stmt.where(FixedBooking.court_id == court_id)
        return list(await self.session.scalars(stmt))


class SqlAlchemyMatchRepository(MatchRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, match_id: str) -> Match | None:
        result = await self.session.scalar(select(Match).where(Match.id == match_id))
        return result if isinstance(result, Match) else None

    async def get_for_update(self, match_id: str) -> Match | None:
        result = await self.session.scalar(select(Match).where(Match.id == match_id).with_for_update())
        return result if isinstance(result, Match) else None

    async def list_for_day(self, date: str, court_id: str | None = None) -> list[Match]:
        stmt = (
            select(Match)
            .where(Match.date == date, Match.status != MatchStatus.CANCELLED)
            .order_by(Match.start)
        )
        if court_id is not None:
            stmt = stmt.where(Match.court_id == court_id)
        return list(await self.session.scalars(stmt))

    async def list_by_status(self, status: MatchStatus, date: str | None = None) -> list[Match]:
        stmt = select(Match).where(Match.status == status).order_by(Match.date, Match.start)
        if date is not None:
            stmt = stmt.where(Match.date == date)
        return list(await self.session.scalars(stmt))

    async def list_by_player(self, uid: str) -> list[Match]:
        stmt = (
            select(Match)
            .join(MatchPlayer, MatchPlayer.match_id == Match.id)
            .where(MatchPlayer.uid == uid)
            .order_by(Match.date, Match.start)
        )
        return list(await self.session.scalars(stmt))

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
        self.session.add(match)
        await self.session.flush()
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
        match.players.append(
            MatchPlayer(
                position=len(match.players),
                uid=uid,
                name=name,
                photo_url=photo_url,
                joined_at=joined_at,
            )
        )
        match.player_count = len(match.players)
        match.status = status
        self.session.add(match)
        await self.session.flush()
        return match


def build_repositories(session: AsyncSession) -> Repositories:
    return Repositories(
        courts=SqlAlchemyCourtRepository(session),
        fixed=SqlAlchemyFixedBookingRepository(session),
        matches=SqlAlchemyMatchRepository(session),
    )
