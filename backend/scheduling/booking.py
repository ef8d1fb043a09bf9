"""Booking: allocate a grid slot to a new appointment in one transaction.

The pre-commit conflict check only avoids a pointless insert. The partial
unique index on ``provider_slots(provider_id, start_time) WHERE is_booked``
is what guarantees a single winner when bookings race.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.core import config
from backend.core.errors import Conflict, InvalidInput, InvalidState, NotFound, StorageUnavailable
from backend.models.appointment import BOOKED_STATUS, Appointment
from backend.models.patient import Patient
from backend.models.slot import ProviderSlot
from backend.scheduling.queries import get_provider
from backend.scheduling.slot_template import SlotTemplate, default_template, parse_slot_datetime

logger = logging.getLogger(__name__)


def normalize_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    normalized = reason.strip()
    return normalized or None


def find_conflicting_slot(
    db: Session,
    provider_id: int,
    start_time: datetime,
    allow_rebooking: bool = True,
) -> ProviderSlot | None:
    query = db.query(ProviderSlot).filter(
        ProviderSlot.provider_id == provider_id,
        ProviderSlot.start_time == start_time,
    )
    if allow_rebooking:
        query = query.filter(ProviderSlot.is_booked.is_(True))
    return query.first()


def book_appointment(
    db: Session,
    *,
    provider_id: int,
    patient_id: int,
    start_time: datetime | str | None = None,
    slot_date: str | None = None,
    slot_time: str | None = None,
    reason: str | None = None,
    now: datetime | None = None,
    template: SlotTemplate | None = None,
    allow_rebooking: bool | None = None,
) -> Appointment:
    template = template or default_template()
    if allow_rebooking is None:
        allow_rebooking = config.ALLOW_REBOOKING_CANCELLED_SLOTS

    get_provider(db, provider_id)

    start = parse_slot_datetime(start_time, slot_date=slot_date, slot_time=slot_time)

    now = now or datetime.now()
    if start <= now:
        raise InvalidState('past_slot', 'Appointments must be booked in the future.')

    if not template.is_on_grid(start):
        raise InvalidInput(
            'off_grid_slot',
            f'Appointments must start on a {template.interval_minutes}-minute boundary between '
            f'{template.daily_start_hour:02d}:00 and {template.daily_end_hour:02d}:00.',
        )

    if db.query(Patient.id).filter(Patient.id == patient_id).first() is None:
        raise NotFound('patient_not_found', 'Patient not found.')

    if find_conflicting_slot(db, provider_id, start, allow_rebooking) is not None:
        raise Conflict('slot_taken', 'This time slot is already booked.')

    window = template.window_for(start)
    try:
        slot = ProviderSlot(
            provider_id=provider_id,
            start_time=window.start_time,
            end_time=window.end_time,
            is_booked=True,
        )
        db.add(slot)
        db.flush()

        appointment = Appointment(
            provider_id=provider_id,
            patient_id=patient_id,
            slot_id=slot.id,
            status=BOOKED_STATUS,
            reason=normalize_reason(reason),
        )
        db.add(appointment)
        # created_at comes from the column default when commit flushes this insert.
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        # Either another booking won the race, or something else is wrong.
        if find_conflicting_slot(db, provider_id, start, allow_rebooking) is not None:
            logger.info('Booking race lost for provider %s at %s', provider_id, start.isoformat())
            raise Conflict('slot_taken', 'This time slot is already booked.') from exc
        logger.exception('Booking insert failed for provider %s at %s', provider_id, start.isoformat())
        raise StorageUnavailable('booking_failed', 'The appointment could not be booked.') from exc

    db.refresh(appointment)
    logger.info(
        'Booked appointment %s for patient %s with provider %s at %s',
        appointment.id,
        patient_id,
        provider_id,
        start.isoformat(),
    )
    return appointment
