from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.core.errors import database_unavailable
from backend.database import get_db
from backend.models.user import User
from backend.scheduling.availability import available_slots_for_lookahead

router = APIRouter(tags=['providers'])


class LookaheadSlotResponse(BaseModel):
    provider_id: int
    start_time: datetime
    end_time: datetime


class LookaheadAvailabilityResponse(BaseModel):
    available_slots: list[LookaheadSlotResponse]
    total_count: int


@router.get('/{provider_id}/available-slots', response_model=LookaheadAvailabilityResponse)
def lookahead_available_slots(
    provider_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Open slots for the next few days, as configured by SLOT_LOOKAHEAD_DAYS."""
    del current_user

    try:
        slots = [
            LookaheadSlotResponse(provider_id=provider_id, start_time=window.start_time, end_time=window.end_time)
            for window in available_slots_for_lookahead(db, provider_id)
        ]

        return LookaheadAvailabilityResponse(available_slots=slots, total_count=len(slots))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
