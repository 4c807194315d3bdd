"""Error taxonomy for the matchmaking engine.

Three families are kept apart so callers can react differently:

* ``ValidationError``: malformed input, rejected before the store is touched.
* ``DomainConflict``: the authoritative reason a write did not happen
  (someone else took the slot or the spot). Never retried.
* ``InfrastructureError``: the store could not complete the transaction.
  Retried internally; raised only once the retry budget is spent.
"""

from __future__ import annotations

from enum import StrEnum


class ValidationError(ValueError):
    pass


class ConflictKind(StrEnum):
    SLOT_OCCUPIED_BY_MATCH = "slot_occupied_by_match"
    SLOT_OCCUPIED_BY_FIXED = "slot_occupied_by_fixed"
    CATEGORY_MISMATCH = "category_mismatch"
    MATCH_FULL = "match_full"
    MATCH_NOT_FOUND = "match_not_found"


class DomainConflict(Exception):
    kind: ConflictKind

    @property
    def code(self) -> str:
        return self.kind.value


class SlotOccupiedByMatch(DomainConflict):
    kind = ConflictKind.SLOT_OCCUPIED_BY_MATCH


class SlotOccupiedByFixed(DomainConflict):
    kind = ConflictKind.SLOT_OCCUPIED_BY_FIXED


class CategoryMismatch(DomainConflict):
    kind = ConflictKind.CATEGORY_MISMATCH


class MatchFull(DomainConflict):
    kind = ConflictKind.MATCH_FULL


class MatchNotFound(DomainConflict):
    kind = ConflictKind.MATCH_NOT_FOUND


_CONFLICTS: dict[ConflictKind, type[DomainConflict]] = {
    cls.kind: cls
    for cls in (SlotOccupiedByMatch, SlotOccupiedByFixed, CategoryMismatch, MatchFull, MatchNotFound)
}

_MESSAGES: dict[ConflictKind, str] = {
    ConflictKind.SLOT_OCCUPIED_BY_MATCH: "time slot already taken by another match on this court",
    ConflictKind.SLOT_OCCUPIED_BY_FIXED: "time slot blocked by a fixed booking on this court",
    ConflictKind.CATEGORY_MISMATCH: "player category differs from the match category",
    ConflictKind.MATCH_FULL: "match is already full",
    ConflictKind.MATCH_NOT_FOUND: "match not found",
}


def conflict_error(kind: ConflictKind) -> DomainConflict:
    return _CONFLICTS[kind](_MESSAGES[kind])


class InfrastructureError(Exception):
    pass


class TransactionRetryExhausted(InfrastructureError):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"transaction failed after {attempts} attempts, try again")
        self.attempts = attempts
