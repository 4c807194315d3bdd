from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..domain.availability import parse_category, validate_request
from ..domain.errors import ConflictKind, ValidationError, conflict_error
from ..domain.repositories import Repositories, TransactionRunner
from ..domain.services import MatchSnapshot, PlayerIdentity, check_slot_free, decide_join
from ..domain.timeslots import DAY_CLOSE, DAY_OPEN, add_minutes, parse_date, to_minutes
from ..models import Category, Match, MatchStatus
from ..utils.time import to_utc_naive, unix_seconds, utc_now_naive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateOutcome:
    match: Optional[Match] = None
    conflict: Optional[ConflictKind] = None


@dataclass(frozen=True)
class JoinOutcome:
    match: Optional[Match] = None
    status: Optional[MatchStatus] = None
    status_from: Optional[MatchStatus] = None
    joined: bool = False
    conflict: Optional[ConflictKind] = None


@dataclass(frozen=True)
class JoinResult:
    match: Match
    status: MatchStatus
    joined: bool
    status_from: Optional[MatchStatus] = None


def new_match_id() -> str:
    """Unique id that doubles as the shareable join code."""
    return secrets.token_urlsafe(9)


def _validate_create(date: str, court_id: str, start: str, duration: int, category: str) -> tuple[str, Category, str]:
    (court,) = validate_request(date, duration, [court_id])
    end = add_minutes(start, duration)
    if to_minutes(start) < to_minutes(DAY_OPEN) or to_minutes(end) > to_minutes(DAY_CLOSE):
        raise ValidationError(f"window {start}-{end} is outside operating hours {DAY_OPEN}-{DAY_CLOSE}")
    return court, parse_category(category), end


async def create_match(
    tx: TransactionRunner,
    *,
    date: str,
    court_id: str,
    start: str,
    duration: int,
    category: str,
    creator: PlayerIdentity,
    now: datetime | None = None,
) -> Match:
    court, match_category, end = _validate_create(date, court_id, start, duration, category)
    created_at = to_utc_naive(now) if now is not None else utc_now_naive()
    joined_at = unix_seconds(created_at)
    # Fixed across retries so an attempt whose commit landed is recognised.
    match_id = new_match_id()

    async def work(repos: Repositories) -> CreateOutcome:
        existing = await repos.matches.get(match_id)
        if existing is not None and existing.created_by == creator.uid:
            return CreateOutcome(match=existing)

        # Locking the court row serializes creates on the same court; the reads
        # below then see every match committed before this transaction.
        court_row = await repos.courts.get_for_update(court)
        if court_row is None or not court_row.active:
            raise ValidationError(f"court {court} is not available for booking")

        matches = await repos.matches.list_for_day(date, court)
        fixed = await repos.fixed.list_for_day(date, court)
        conflict = check_slot_free(start, end, matches=matches, fixed=fixed)
        if conflict is not None:
            return CreateOutcome(conflict=conflict)

        match = await repos.matches.create(
            match_id=match_id,
            date=date,
            court_id=court,
            start=start,
            end=end,
            duration=duration,
            category=match_category,
            creator_uid=creator.uid,
            creator_name=creator.name,
            creator_photo_url=creator.photo_url,
            created_at=created_at,
            joined_at=joined_at,
        )
        return CreateOutcome(match=match)

    outcome = await tx.run(work)
    if outcome.conflict is not None:
        logger.info("create rejected on %s %s %s-%s: %s", court, date, start, end, outcome.conflict)
        raise conflict_error(outcome.conflict)
    assert outcome.match is not None
    return outcome.match


async def join_match(
    tx: TransactionRunner,
    *,
    match_id: str,
    user: PlayerIdentity,
    now: datetime | None = None,
) -> JoinResult:
    code = (match_id or "").strip()
    if not code:
        raise conflict_error(ConflictKind.MATCH_NOT_FOUND)
    category = parse_category(user.category)
    joined_at = unix_seconds(to_utc_naive(now) if now is not None else utc_now_naive())
    # Status seen by the attempt that appended the player; survives retries.
    appended_from: list[MatchStatus] = []

    async def work(repos: Repositories) -> JoinOutcome:
        match = await repos.matches.get_for_update(code)
        snapshot = None
        if match is not None:
            snapshot = MatchSnapshot(
                category=match.category,
                status=match.status,
                player_uids=tuple(player.uid for player in match.players),
            )
        decision = decide_join(snapshot, uid=user.uid, category=category)
        if decision.conflict is not None:
            return JoinOutcome(conflict=decision.conflict)
        assert match is not None and snapshot is not None and decision.next_status is not None
        if decision.already_joined:
            if appended_from:
                # An earlier attempt committed the append before failing.
                return JoinOutcome(
                    match=match, status=decision.next_status, status_from=appended_from[0], joined=True
                )
            return JoinOutcome(match=match, status=decision.next_status)

        await repos.matches.add_player(
            match,
            uid=user.uid,
            name=user.name,
            photo_url=user.photo_url,
            joined_at=joined_at,
            status=decision.next_status,
        )
        appended_from[:] = [snapshot.status]
        return JoinOutcome(match=match, status=decision.next_status, status_from=snapshot.status, joined=True)

    outcome = await tx.run(work)
    if outcome.conflict is not None:
        logger.info("join rejected on match %s for %s: %s", code, user.uid, outcome.conflict)
        raise conflict_error(outcome.conflict)
    assert outcome.match is not None and outcome.status is not None
    return JoinResult(
        match=outcome.match, status=outcome.status, joined=outcome.joined, status_from=outcome.status_from
    )


async def get_match_by_code(tx: TransactionRunner, code: str) -> Match | None:
    code = (code or "").strip()
    if not code:
        return None
    return await tx.read(lambda repos: repos.matches.get(code))


async def list_open_matches(tx: TransactionRunner, *, date: str | None = None) -> list[Match]:
    if date is not None:
        parse_date(date)
    return await tx.read(lambda repos: repos.matches.list_by_status(MatchStatus.FORMING, date))


async def list_player_matches(tx: TransactionRunner, *, uid: str) -> list[Match]:
    return await tx.read(lambda repos: repos.matches.list_by_player(uid))
