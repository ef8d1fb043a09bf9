from sqlalchemy.orm import Session, joinedload

from backend.core.errors import NotFound
from backend.models.appointment import CANCELLED_STATUS, Appointment
from backend.models.patient import Patient
from backend.models.provider import Provider
from backend.models.user import PROVIDER_ROLE, User


def _appointments_with_details(db: Session):
    return db.query(Appointment).options(
        joinedload(Appointment.slot),
        joinedload(Appointment.provider).joinedload(Provider.user),
    )


def list_for_patient(db: Session, patient_id: int) -> list[Appointment]:
    """A patient's appointments, newest booking first."""
    return _appointments_with_details(db).filter(
        Appointment.patient_id == patient_id,
    ).order_by(Appointment.created_at.desc(), Appointment.id.desc()).all()


def list_for_provider(db: Session, provider_id: int, include_cancelled: bool = True) -> list[Appointment]:
    query = _appointments_with_details(db).options(
        joinedload(Appointment.patient).joinedload(Patient.user),
    ).filter(Appointment.provider_id == provider_id)
    if not include_cancelled:
        query = query.filter(Appointment.status != CANCELLED_STATUS)
    return query.order_by(Appointment.created_at.desc(), Appointment.id.desc()).all()


def list_providers(db: Session) -> list[Provider]:
    return db.query(Provider).join(User, Provider.user_id == User.id).filter(
        User.role == PROVIDER_ROLE,
    ).order_by(User.created_at.desc(), Provider.id.desc()).all()


def get_provider(db: Session, provider_id: int) -> Provider:
    """Resolve a bookable provider: the record must exist and its account must hold the provider role."""
    provider = db.query(Provider).join(User, Provider.user_id == User.id).filter(
        Provider.id == provider_id,
        User.role == PROVIDER_ROLE,
    ).first()
    if provider is None:
        raise NotFound('provider_not_found', 'Provider not found.')
    return provider
