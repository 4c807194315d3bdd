from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .domain.availability import FreeSlot, GridItem, SlotState
from .domain.timeslots import Shift, Slot, shift_of
from .models import Category, CourtId, Duration, Match, MatchPlayer, MatchStatus

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class PlayerRead(BaseModel):
    uid: str
    name: str
    photo_url: Optional[str] = None
    joined_at: int

    @classmethod
    def from_db(cls, *, player: MatchPlayer) -> "PlayerRead":
        return cls(uid=player.uid, name=player.name, photo_url=player.photo_url, joined_at=player.joined_at)


class MatchCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: str = Field(pattern=DATE_PATTERN)
    court_id: CourtId
    start: str = Field(pattern=TIME_PATTERN)
    duration: Duration
    category: Category


class MatchRead(BaseModel):
    match_id: str
    date: str
    court_id: CourtId
    start: str
    end: str
    duration: int
    category: Category
    status: MatchStatus
    shift: Shift
    players: list[PlayerRead]
    created_by: str
    created_at: datetime

    @field_serializer("created_at")
    def _ser_datetime(self, dt: datetime) -> str:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.isoformat()

    @classmethod
    def from_db(cls, *, match: Match) -> "MatchRead":
        return cls(
            match_id=match.id,
            date=match.date,
            court_id=CourtId(match.court_id),
            start=match.start,
            end=match.end,
            duration=match.duration,
            shift=shift_of(match.start),
            category=match.category,
            status=match.status,
            players=[PlayerRead.from_db(player=p) for p in match.players],
            created_by=match.created_by,
            created_at=match.created_at,
        )


class JoinRead(BaseModel):
    match_id: str
    status: MatchStatus
    joined: bool
    player_count: int


class SlotRead(BaseModel):
    start: str
    end: str

    @classmethod
    def from_slot(cls, slot: Slot) -> "SlotRead":
        return cls(start=slot.start, end=slot.end)


class AvailabilityRead(BaseModel):
    date: str
    duration: int
    courts: dict[CourtId, list[SlotRead]]


class MatchSummaryRead(BaseModel):
    match_id: str
    category: Category
    status: MatchStatus
    players: list[PlayerRead]
    start: str
    end: str


class FixedSummaryRead(BaseModel):
    start: str
    end: str
    note: Optional[str] = None


class GridItemRead(BaseModel):
    start: str
    end: str
    state: SlotState
    match: Optional[MatchSummaryRead] = None
    fixed: Optional[FixedSummaryRead] = None
    joinable: Optional[bool] = None

    @classmethod
    def from_item(cls, item: GridItem) -> "GridItemRead":
        data: dict[str, Any] = {"start": item.start, "end": item.end, "state": item.state, "joinable": item.joinable}
        if item.match is not None:
            data["match"] = MatchSummaryRead(
                match_id=item.match.id,
                category=item.match.category,
                status=item.match.status,
                players=[PlayerRead.from_db(player=p) for p in item.match.players],  # type: ignore[arg-type]
                start=item.match.start,
                end=item.match.end,
            )
        if item.fixed is not None:
            data["fixed"] = FixedSummaryRead(start=item.fixed.start, end=item.fixed.end, note=item.fixed.note)
        return cls(**data)


class DayGridRead(BaseModel):
    date: str
    duration: int
    courts: dict[CourtId, list[GridItemRead]]


class FreeSlotRead(BaseModel):
    court_id: CourtId
    start: str
    end: str

    @classmethod
    def from_free_slot(cls, slot: FreeSlot) -> "FreeSlotRead":
        return cls(court_id=slot.court_id, start=slot.start, end=slot.end)
