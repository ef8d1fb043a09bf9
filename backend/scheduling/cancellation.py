import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from backend.core.errors import InvalidState, NotFound
from backend.models.appointment import BOOKED_STATUS, CANCELLED_STATUS, Appointment
from backend.models.slot import ProviderSlot

logger = logging.getLogger(__name__)


def cancel_appointment(
    db: Session,
    *,
    appointment_id: int,
    patient_id: int,
    now: datetime | None = None,
) -> Appointment:
    """Cancel a patient's own upcoming appointment and release its slot.

    The status flip and the slot release commit together. The status update
    is conditional on the appointment still being booked, so two concurrent
    cancellations cannot both succeed.
    """
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.patient_id == patient_id,
    ).first()
    if appointment is None:
        raise NotFound('appointment_not_found', 'Appointment not found.')

    now = now or datetime.now()
    if appointment.slot.start_time <= now:
        raise InvalidState('past_appointment', 'Past appointments cannot be cancelled.')

    if appointment.status == CANCELLED_STATUS:
        raise InvalidState('already_cancelled', 'Appointment is already cancelled.')

    result = db.execute(
        update(Appointment)
        .where(Appointment.id == appointment.id, Appointment.status == BOOKED_STATUS)
        .values(status=CANCELLED_STATUS)
    )
    if result.rowcount != 1:
        db.rollback()
        raise InvalidState('already_cancelled', 'Appointment is already cancelled.')

    db.execute(
        update(ProviderSlot)
        .where(ProviderSlot.id == appointment.slot_id)
        .values(is_booked=False)
    )
    db.commit()
    db.refresh(appointment)
    db.refresh(appointment.slot)

    logger.info('Cancelled appointment %s for patient %s', appointment.id, patient_id)
    return appointment
