from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from ..deps import get_current_player, get_transaction_runner
from ..domain.errors import DomainConflict, InfrastructureError, MatchNotFound, ValidationError
from ..domain.repositories import TransactionRunner
from ..domain.services import PlayerIdentity
from ..schemas import DATE_PATTERN, JoinRead, MatchCreate, MatchRead
from ..usecases import matches as match_usecase
from ..utils.audit_log import emit_audit_log

router = APIRouter(prefix="", tags=["matches"])


def _validation_http(exc: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"code": "validation_error", "message": str(exc)},
    )


def _conflict_http(exc: DomainConflict) -> HTTPException:
    code = status.HTTP_404_NOT_FOUND if isinstance(exc, MatchNotFound) else status.HTTP_409_CONFLICT
    return HTTPException(status_code=code, detail={"code": exc.code, "message": str(exc)})


def _unavailable_http(exc: InfrastructureError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"code": "try_again", "message": str(exc)},
        headers={"Retry-After": "1"},
    )


@router.post("/matches", response_model=MatchRead, status_code=status.HTTP_201_CREATED)
async def create_match(
    payload: MatchCreate,
    tx: TransactionRunner = Depends(get_transaction_runner),
    player: PlayerIdentity = Depends(get_current_player),
) -> MatchRead:
    try:
        match = await match_usecase.create_match(
            tx,
            date=payload.date,
            court_id=payload.court_id.value,
            start=payload.start,
            duration=int(payload.duration),
            category=payload.category.value,
            creator=player,
        )
    except ValidationError as exc:
        raise _validation_http(exc)
    except DomainConflict as exc:
        raise _conflict_http(exc)
    except InfrastructureError as exc:
        raise _unavailable_http(exc)

    try:
        emit_audit_log(action="match.created", match=match, uid=player.uid, status_from=None, status_to=match.status)
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")

    return MatchRead.from_db(match=match)


@router.post("/matches/{match_id}/join", response_model=JoinRead)
async def join_match(
    match_id: str = Path(..., min_length=1, max_length=32),
    tx: TransactionRunner = Depends(get_transaction_runner),
    player: PlayerIdentity = Depends(get_current_player),
) -> JoinRead:
    try:
        result = await match_usecase.join_match(tx, match_id=match_id, user=player)
    except ValidationError as exc:
        raise _validation_http(exc)
    except DomainConflict as exc:
        raise _conflict_http(exc)
    except InfrastructureError as exc:
        raise _unavailable_http(exc)

    match = result.match
    if result.joined:
        try:
            emit_audit_log(
                action="match.joined",
                match=match,
                uid=player.uid,
                status_from=result.status_from,
                status_to=result.status,
            )
        except RuntimeError:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")

    return JoinRead(
        match_id=match.id,
        status=result.status,
        joined=result.joined,
        player_count=len(match.players),
    )


@router.get("/matches", response_model=List[MatchRead])
async def list_open_matches(
    date: Optional[str] = Query(default=None, pattern=DATE_PATTERN),
    tx: TransactionRunner = Depends(get_transaction_runner),
) -> list[MatchRead]:
    try:
        rows = await match_usecase.list_open_matches(tx, date=date)
    except ValidationError as exc:
        raise _validation_http(exc)
    return [MatchRead.from_db(match=match) for match in rows]


@router.get("/matches/{code}", response_model=MatchRead)
async def get_match_by_code(
    code: str = Path(..., min_length=1, max_length=32),
    tx: TransactionRunner = Depends(get_transaction_runner),
) -> MatchRead:
    match = await match_usecase.get_match_by_code(tx, code)
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "match_not_found", "message": "match not found"},
        )
    return MatchRead.from_db(match=match)


@router.get("/me/matches", response_model=List[MatchRead])
async def list_my_matches(
    tx: TransactionRunner = Depends(get_transaction_runner),
    player: PlayerIdentity = Depends(get_current_player),
) -> list[MatchRead]:
    rows = await match_usecase.list_player_matches(tx, uid=player.uid)
    return [MatchRead.from_db(match=match) for match in rows]
