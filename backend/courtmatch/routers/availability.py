from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_transaction_runner
from ..domain.errors import ValidationError
from ..domain.repositories import TransactionRunner
from ..domain.timeslots import Shift
from ..models import Category, CourtId
from ..schemas import DATE_PATTERN, AvailabilityRead, DayGridRead, FreeSlotRead, GridItemRead, SlotRead
from ..usecases import availability as availability_usecase

router = APIRouter(prefix="/availability", tags=["availability"])


def _court_values(court_id: Optional[List[CourtId]]) -> Optional[list[str]]:
    return [court.value for court in court_id] if court_id else None


@router.get("", response_model=AvailabilityRead)
async def compute_availability(
    date: str = Query(..., pattern=DATE_PATTERN, description="YYYY-MM-DD"),
    duration: int = Query(..., description="minutes, 90 or 120"),
    court_id: Optional[List[CourtId]] = Query(default=None),
    category: Optional[Category] = Query(default=None),
    shift: Optional[Shift] = Query(default=None),
    tx: TransactionRunner = Depends(get_transaction_runner),
) -> AvailabilityRead:
    try:
        per_court = await availability_usecase.compute_availability(
            tx,
            date=date,
            duration=int(duration),
            court_ids=_court_values(court_id),
            category=category.value if category else None,
            shift=shift,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return AvailabilityRead(
        date=date,
        duration=int(duration),
        courts={court: [SlotRead.from_slot(slot) for slot in slots] for court, slots in per_court.items()},
    )


@router.get("/grid", response_model=DayGridRead)
async def build_day_grid(
    date: str = Query(..., pattern=DATE_PATTERN, description="YYYY-MM-DD"),
    duration: int = Query(..., description="minutes, 90 or 120"),
    court_id: Optional[List[CourtId]] = Query(default=None),
    category: Optional[Category] = Query(default=None),
    tx: TransactionRunner = Depends(get_transaction_runner),
) -> DayGridRead:
    try:
        grid = await availability_usecase.build_day_grid(
            tx,
            date=date,
            duration=int(duration),
            court_ids=_court_values(court_id),
            category=category.value if category else None,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return DayGridRead(
        date=date,
        duration=int(duration),
        courts={court: [GridItemRead.from_item(item) for item in items] for court, items in grid.items()},
    )


@router.get("/free-slots", response_model=List[FreeSlotRead])
async def list_free_slots(
    date: str = Query(..., pattern=DATE_PATTERN, description="YYYY-MM-DD"),
    duration: int = Query(..., description="minutes, 90 or 120"),
    shift: Shift = Query(...),
    court_id: Optional[List[CourtId]] = Query(default=None),
    tx: TransactionRunner = Depends(get_transaction_runner),
) -> list[FreeSlotRead]:
    try:
        slots = await availability_usecase.list_free_slots(
            tx,
            date=date,
            duration=int(duration),
            shift=shift,
            court_ids=_court_values(court_id),
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return [FreeSlotRead.from_free_slot(slot) for slot in slots]
