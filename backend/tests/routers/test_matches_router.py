from datetime import datetime
from typing import Any, cast

import pytest
from courtmatch.domain.errors import (
    CategoryMismatch,
    MatchFull,
    MatchNotFound,
    SlotOccupiedByFixed,
    SlotOccupiedByMatch,
    TransactionRetryExhausted,
    ValidationError,
)
from courtmatch.domain.repositories import TransactionRunner
from courtmatch.domain.services import PlayerIdentity
from courtmatch.domain.timeslots import Shift
from courtmatch.models import Category, CourtId, Duration, Match, MatchPlayer, MatchStatus
from courtmatch.routers import matches as router
from courtmatch.schemas import MatchCreate
from courtmatch.usecases.matches import JoinResult
from fastapi import HTTPException

TX = cast(TransactionRunner, object())
PLAYER = PlayerIdentity(uid="u-1", name="Ana", category=Category.FIFTH)


def _match(status: MatchStatus = MatchStatus.FORMING, players: int = 1) -> Match:
    return Match(
        id="AbCdEfGhIjKl",
        date="2030-05-06",
        court_id="court_1",
        start="18:00",
        end="19:30",
        duration=90,
        category=Category.FIFTH,
        status=status,
        player_count=players,
        created_by="u-0",
        created_at=datetime(2030, 5, 1, 15, 0),
        players=[MatchPlayer(position=i, uid=f"u-{i}", name=f"P{i}", joined_at=1_900_000_000) for i in range(players)],
    )


def _payload() -> MatchCreate:
    return MatchCreate(
        date="2030-05-06", court_id=CourtId.COURT_1, start="18:00", duration=Duration.NINETY, category=Category.FIFTH
    )


@pytest.mark.asyncio
async def test_create_match_emits_audit(monkeypatch: pytest.MonkeyPatch) -> None:
    match = _match()
    seen: dict[str, Any] = {}

    async def fake_create(tx: object, **kwargs: Any) -> Match:
        seen.update(kwargs)
        return match

    calls: list[dict[str, Any]] = []

    monkeypatch.setattr(router.match_usecase, "create_match", fake_create)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    result = await router.create_match(payload=_payload(), tx=TX, player=PLAYER)

    assert result.match_id == match.id
    assert result.end == "19:30"
    assert result.shift == Shift.EVENING
    assert seen["court_id"] == "court_1"
    assert seen["duration"] == 90
    assert seen["category"] == "5ta"
    assert seen["creator"] is PLAYER
    assert len(calls) == 1
    assert calls[0]["action"] == "match.created"
    assert calls[0]["status_to"] == MatchStatus.FORMING
    assert calls[0]["match"] is match


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (SlotOccupiedByMatch(), 409, "slot_occupied_by_match"),
        (SlotOccupiedByFixed(), 409, "slot_occupied_by_fixed"),
        (ValidationError("start must be HH:MM"), 422, "validation_error"),
        (TransactionRetryExhausted(3), 503, "try_again"),
    ],
)
async def test_create_match_maps_errors(
    monkeypatch: pytest.MonkeyPatch, error: Exception, status_code: int, code: str
) -> None:
    async def fake_create(*args: object, **kwargs: object) -> Match:
        raise error

    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(router.match_usecase, "create_match", fake_create)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    with pytest.raises(HTTPException) as excinfo:
        await router.create_match(payload=_payload(), tx=TX, player=PLAYER)
    assert excinfo.value.status_code == status_code
    assert excinfo.value.detail["code"] == code  # type: ignore[index]
    assert calls == []
    if status_code == 503:
        assert excinfo.value.headers == {"Retry-After": "1"}


@pytest.mark.asyncio
async def test_create_match_audit_failure_returns_500(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_create(*args: object, **kwargs: object) -> Match:
        return _match()

    def fake_emit(**kwargs: Any) -> None:
        raise RuntimeError("fail log")

    monkeypatch.setattr(router.match_usecase, "create_match", fake_create)
    monkeypatch.setattr(router, "emit_audit_log", fake_emit)

    with pytest.raises(HTTPException) as excinfo:
        await router.create_match(payload=_payload(), tx=TX, player=PLAYER)
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_join_match_reports_status_and_audits(monkeypatch: pytest.MonkeyPatch) -> None:
    match = _match(MatchStatus.FULL, players=4)

    async def fake_join(tx: object, *, match_id: str, user: PlayerIdentity) -> JoinResult:
        assert match_id == match.id
        return JoinResult(match=match, status=MatchStatus.FULL, joined=True, status_from=MatchStatus.FORMING)

    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(router.match_usecase, "join_match", fake_join)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    result = await router.join_match(match_id=match.id, tx=TX, player=PLAYER)

    assert result.status == MatchStatus.FULL
    assert result.joined is True
    assert result.player_count == 4
    assert [c["action"] for c in calls] == ["match.joined"]
    assert calls[0]["status_from"] == MatchStatus.FORMING
    assert calls[0]["status_to"] == MatchStatus.FULL


@pytest.mark.asyncio
async def test_rejoin_skips_audit(monkeypatch: pytest.MonkeyPatch) -> None:
    match = _match(players=2)

    async def fake_join(*args: object, **kwargs: object) -> JoinResult:
        return JoinResult(match=match, status=MatchStatus.FORMING, joined=False)

    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(router.match_usecase, "join_match", fake_join)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    result = await router.join_match(match_id=match.id, tx=TX, player=PLAYER)
    assert result.joined is False
    assert result.player_count == 2
    assert calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (MatchNotFound(), 404, "match_not_found"),
        (MatchFull(), 409, "match_full"),
        (CategoryMismatch(), 409, "category_mismatch"),
        (TransactionRetryExhausted(3), 503, "try_again"),
    ],
)
async def test_join_match_maps_errors(
    monkeypatch: pytest.MonkeyPatch, error: Exception, status_code: int, code: str
) -> None:
    async def fake_join(*args: object, **kwargs: object) -> JoinResult:
        raise error

    monkeypatch.setattr(router.match_usecase, "join_match", fake_join)

    with pytest.raises(HTTPException) as excinfo:
        await router.join_match(match_id="whatever", tx=TX, player=PLAYER)
    assert excinfo.value.status_code == status_code
    assert excinfo.value.detail["code"] == code  # type: ignore[index]


@pytest.mark.asyncio
async def test_get_match_by_code_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_get(tx: object, code: str) -> None:
        return None

    monkeypatch.setattr(router.match_usecase, "get_match_by_code", fake_get)

    with pytest.raises(HTTPException) as excinfo:
        await router.get_match_by_code(code="missing", tx=TX)
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_list_open_matches_invalid_date_returns_422(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_list(tx: object, *, date: str | None = None) -> list[Match]:
        raise ValidationError("not a calendar date")

    monkeypatch.setattr(router.match_usecase, "list_open_matches", fake_list)

    with pytest.raises(HTTPException) as excinfo:
        await router.list_open_matches(date="2030-02-31", tx=TX)
    assert excinfo.value.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("status_from", [MatchStatus.FORMING, MatchStatus.FULL])
async def test_join_audit_uses_status_seen_in_transaction(
    monkeypatch: pytest.MonkeyPatch, status_from: MatchStatus
) -> None:
    match = _match(MatchStatus.FULL, players=4)

    async def fake_join(*args: object, **kwargs: object) -> JoinResult:
        return JoinResult(match=match, status=MatchStatus.FULL, joined=True, status_from=status_from)

    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(router.match_usecase, "join_match", fake_join)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    await router.join_match(match_id=match.id, tx=TX, player=PLAYER)
    assert calls[0]["status_from"] == status_from
