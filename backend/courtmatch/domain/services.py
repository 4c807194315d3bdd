from dataclasses import dataclass
from typing import Iterable, Optional

from ..models import MATCH_CAPACITY, Category, MatchStatus
from .availability import FixedLike, MatchLike, fixed_end
from .errors import ConflictKind
from .timeslots import overlaps


@dataclass(frozen=True)
class PlayerIdentity:
    """Caller identity supplied by the auth layer; the engine never stores it on its own."""

    uid: str
    name: str
    category: Category
    photo_url: Optional[str] = None


@dataclass(frozen=True)
class MatchSnapshot:
    category: Category
    status: MatchStatus
    player_uids: tuple[str, ...]


@dataclass(frozen=True)
class JoinDecision:
    conflict: Optional[ConflictKind] = None
    already_joined: bool = False
    next_status: Optional[MatchStatus] = None


def check_slot_free(
    start: str,
    end: str,
    *,
    matches: Iterable[MatchLike],
    fixed: Iterable[FixedLike],
) -> Optional[ConflictKind]:
    """
    Pure conflict check for a candidate window on one court.
    Cancelled matches never block. Returns the conflict kind, or None when free.
    """
    for match in matches:
        if match.status == MatchStatus.CANCELLED:
            continue
        if overlaps(start, end, match.start, match.end):
            return ConflictKind.SLOT_OCCUPIED_BY_MATCH
    for booking in fixed:
        if overlaps(start, end, booking.start, fixed_end(booking)):
            return ConflictKind.SLOT_OCCUPIED_BY_FIXED
    return None


def decide_join(snapshot: Optional[MatchSnapshot], *, uid: str, category: Category) -> JoinDecision:
    """
    Pure join decision. Re-joining is a no-op that reports the current status,
    even on a full match. Otherwise category and capacity must allow one more player.
    """
    if snapshot is None or snapshot.status == MatchStatus.CANCELLED:
        return JoinDecision(conflict=ConflictKind.MATCH_NOT_FOUND)
    if uid in snapshot.player_uids:
        return JoinDecision(already_joined=True, next_status=snapshot.status)
    if snapshot.category != category:
        return JoinDecision(conflict=ConflictKind.CATEGORY_MISMATCH)
    if snapshot.status == MatchStatus.FULL or len(snapshot.player_uids) >= MATCH_CAPACITY:
        return JoinDecision(conflict=ConflictKind.MATCH_FULL)

    count = len(snapshot.player_uids) + 1
    next_status = MatchStatus.FULL if count >= MATCH_CAPACITY else snapshot.status
    return JoinDecision(next_status=next_status)
