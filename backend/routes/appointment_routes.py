from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_patient, get_current_provider, get_current_user
from backend.core import config
from backend.core.errors import database_unavailable
from backend.database import get_db
from backend.models.appointment import Appointment
from backend.models.patient import Patient
from backend.models.provider import Provider
from backend.models.user import User
from backend.scheduling.availability import open_slots_for_day
from backend.scheduling.booking import book_appointment
from backend.scheduling.cancellation import cancel_appointment
from backend.scheduling.queries import get_provider, list_for_patient, list_for_provider, list_providers
from backend.scheduling.slot_template import SlotWindow

router = APIRouter(tags=['appointments'])


class BookAppointmentRequest(BaseModel):
    provider_id: int
    start_time: str | None = None
    slot_date: str | None = None
    slot_time: str | None = None
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_APPOINTMENT_REASON_LENGTH:
            raise ValueError(f'Reason must be {config.MAX_APPOINTMENT_REASON_LENGTH} characters or fewer.')

        return normalized

    @model_validator(mode='after')
    def require_slot_start(self) -> 'BookAppointmentRequest':
        if not (self.start_time and self.start_time.strip()) and not (self.slot_date and self.slot_time):
            raise ValueError('Either start_time or both slot_date and slot_time are required.')
        return self


class ProviderSummaryResponse(BaseModel):
    id: int
    name: str
    speciality: str
    experience: str | None = None
    appointment_fee: float
    description: str | None = None


class AppointmentResponse(BaseModel):
    id: int
    provider: ProviderSummaryResponse
    slot_id: int
    date: date
    time: str
    start_time: datetime
    end_time: datetime
    status: str
    reason: str | None = None
    created_at: datetime


class ProviderAppointmentResponse(AppointmentResponse):
    patient_id: int
    patient_name: str


class BookingResponse(BaseModel):
    message: str
    appointment: AppointmentResponse


class CancellationResponse(BaseModel):
    message: str
    appointment: AppointmentResponse


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    total: int


class ProviderAppointmentListResponse(BaseModel):
    appointments: list[ProviderAppointmentResponse]
    total: int


class AvailableSlotResponse(BaseModel):
    start_time: datetime
    end_time: datetime
    time: str


class ProviderAvailabilityResponse(BaseModel):
    provider: ProviderSummaryResponse
    date: date
    available_slots: list[AvailableSlotResponse]


class ProviderListResponse(BaseModel):
    providers: list[ProviderSummaryResponse]
    total: int


def format_slot_time(value: datetime) -> str:
    return value.strftime('%I:%M %p')


def build_provider_summary(provider: Provider) -> ProviderSummaryResponse:
    return ProviderSummaryResponse(
        id=provider.id,
        name=provider.name,
        speciality=provider.speciality,
        experience=provider.experience,
        appointment_fee=float(provider.appointment_fee),
        description=provider.description,
    )


def build_appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        provider=build_provider_summary(appointment.provider),
        slot_id=appointment.slot_id,
        date=appointment.slot.start_time.date(),
        time=format_slot_time(appointment.slot.start_time),
        start_time=appointment.slot.start_time,
        end_time=appointment.slot.end_time,
        status=appointment.status,
        reason=appointment.reason,
        created_at=appointment.created_at,
    )


def build_provider_appointment_response(appointment: Appointment) -> ProviderAppointmentResponse:
    base = build_appointment_response(appointment)
    patient_user = appointment.patient.user if appointment.patient else None
    return ProviderAppointmentResponse(
        **base.model_dump(),
        patient_id=appointment.patient_id,
        patient_name=patient_user.name if patient_user else '',
    )


def build_available_slot(window: SlotWindow) -> AvailableSlotResponse:
    return AvailableSlotResponse(
        start_time=window.start_time,
        end_time=window.end_time,
        time=format_slot_time(window.start_time),
    )


@router.post('/book', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def book(
    data: BookAppointmentRequest,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        appointment = book_appointment(
            db,
            provider_id=data.provider_id,
            patient_id=patient.id,
            start_time=data.start_time,
            slot_date=data.slot_date,
            slot_time=data.slot_time,
            reason=data.reason,
        )

        return BookingResponse(
            message='Appointment booked successfully',
            appointment=build_appointment_response(appointment),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/my-appointments', response_model=AppointmentListResponse)
def my_appointments(
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        appointments = [build_appointment_response(appointment) for appointment in list_for_patient(db, patient.id)]

        return AppointmentListResponse(appointments=appointments, total=len(appointments))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{appointment_id}/cancel', response_model=CancellationResponse)
def cancel(
    appointment_id: int,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        appointment = cancel_appointment(db, appointment_id=appointment_id, patient_id=patient.id)

        return CancellationResponse(
            message='Appointment cancelled successfully',
            appointment=build_appointment_response(appointment),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/available-slots/{provider_id}', response_model=ProviderAvailabilityResponse)
def provider_available_slots(
    provider_id: int,
    date: date = Query(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user

    try:
        provider = get_provider(db, provider_id)
        windows = open_slots_for_day(db, provider.id, date)

        return ProviderAvailabilityResponse(
            provider=build_provider_summary(provider),
            date=date,
            available_slots=[build_available_slot(window) for window in windows],
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/provider-appointments', response_model=ProviderAppointmentListResponse)
def provider_appointments(
    include_cancelled: bool = Query(default=True),
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        appointments = [
            build_provider_appointment_response(appointment)
            for appointment in list_for_provider(db, provider.id, include_cancelled=include_cancelled)
        ]

        return ProviderAppointmentListResponse(appointments=appointments, total=len(appointments))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/providers', response_model=ProviderListResponse)
def providers(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user

    try:
        summaries = [build_provider_summary(provider) for provider in list_providers(db)]

        return ProviderListResponse(providers=summaries, total=len(summaries))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
