from __future__ import annotations

from datetime import datetime
from enum import IntEnum, StrEnum
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, DateTime, Integer, SmallInteger, String

MATCH_CAPACITY = 4


class Base(DeclarativeBase):
    pass


class CourtId(StrEnum):
    COURT_1 = "court_1"
    COURT_2 = "court_2"
    COURT_3 = "court_3"


class Duration(IntEnum):
    NINETY = 90
    ONE_TWENTY = 120


class Category(StrEnum):
    SIXTH = "6ta"
    FIFTH = "5ta"
    FOURTH = "4ta"


class MatchStatus(StrEnum):
    FORMING = "forming"
    FULL = "full"
    CANCELLED = "cancelled"


def _str_enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class Court(Base):
    __tablename__ = "courts"

    id: Mapped[str] = mapped_column(String(16), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class FixedBooking(Base):
    __tablename__ = "fixed_bookings"
    __table_args__ = (
        CheckConstraint("weekday IS NULL OR (weekday >= 0 AND weekday <= 6)", name="chk_fixed_weekday"),
        CheckConstraint("weekday IS NOT NULL OR booking_date IS NOT NULL", name="chk_fixed_when"),
        CheckConstraint("duration IN (90, 120)", name="chk_fixed_duration"),
        Index("idx_fixed_court_weekday", "court_id", "weekday"),
        Index("idx_fixed_court_date", "court_id", "booking_date"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    court_id: Mapped[str] = mapped_column(ForeignKey("courts.id"), nullable=False)
    weekday: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)
    date: Mapped[Optional[str]] = mapped_column("booking_date", String(10), nullable=True)
    start: Mapped[str] = mapped_column("start_time", String(5), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    category: Mapped[Optional[Category]] = mapped_column(_str_enum(Category), nullable=True)


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="chk_matches_time"),
        CheckConstraint("duration IN (90, 120)", name="chk_matches_duration"),
        CheckConstraint(f"player_count <= {MATCH_CAPACITY}", name="chk_matches_capacity"),
        Index("idx_matches_date_court", "match_date", "court_id"),
        Index("idx_matches_status_date", "status", "match_date", "start_time"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    date: Mapped[str] = mapped_column("match_date", String(10), nullable=False)
    court_id: Mapped[str] = mapped_column(ForeignKey("courts.id"), nullable=False)
    start: Mapped[str] = mapped_column("start_time", String(5), nullable=False)
    end: Mapped[str] = mapped_column("end_time", String(5), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[Category] = mapped_column(_str_enum(Category), nullable=False)
    status: Mapped[MatchStatus] = mapped_column(
        _str_enum(MatchStatus),
        nullable=False,
        default=MatchStatus.FORMING,
    )
    # Bumped on every join so the versioned UPDATE always fires.
    player_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    players: Mapped[list["MatchPlayer"]] = relationship(
        back_populates="match",
        order_by="MatchPlayer.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}


class MatchPlayer(Base):
    __tablename__ = "match_players"
    __table_args__ = (
        UniqueConstraint("match_id", "uid", name="uq_match_players_uid"),
        Index("idx_match_players_uid", "uid"),
    )

    match_id: Mapped[str] = mapped_column(ForeignKey("matches.id"), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    uid: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    photo_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    joined_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    match: Mapped["Match"] = relationship(back_populates="players")
