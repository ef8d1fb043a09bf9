import asyncio
import json
from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from backend.core.errors import Conflict, InvalidState, NotFound, StorageUnavailable, scheduling_error_handler
from backend.models.user import PATIENT_ROLE
from backend.routes.appointment_routes import (
    BookAppointmentRequest,
    book,
    cancel,
    format_slot_time,
    my_appointments,
    provider_appointments,
    provider_available_slots,
    providers,
)
from backend.routes.provider_routes import lookahead_available_slots
from backend.scheduling import availability


def _tomorrow_at(hour: int, minute: int) -> datetime:
    return (datetime.now() + timedelta(days=1)).replace(hour=hour, minute=minute, second=0, microsecond=0)


def test_book_request_normalizes_reason() -> None:
    request = BookAppointmentRequest(provider_id=1, start_time='2026-01-05T10:30:00', reason='  Check-up  ')

    assert request.reason == 'Check-up'
    assert BookAppointmentRequest(provider_id=1, start_time='2026-01-05T10:30:00', reason='   ').reason is None


def test_book_request_rejects_overlong_reason() -> None:
    with pytest.raises(ValidationError):
        BookAppointmentRequest(provider_id=1, start_time='2026-01-05T10:30:00', reason='x' * 601)


@pytest.mark.parametrize(
    'payload',
    [
        {'provider_id': 1},
        {'provider_id': 1, 'slot_date': '2026-01-05'},
        {'provider_id': 1, 'start_time': '   '},
        {'start_time': '2026-01-05T10:30:00'},
    ],
)
def test_book_request_requires_provider_and_slot_start(payload: dict) -> None:
    with pytest.raises(ValidationError):
        BookAppointmentRequest(**payload)


def test_book_route_returns_enriched_appointment(db, provider, patient) -> None:
    start_time = _tomorrow_at(10, 30)

    response = book(
        BookAppointmentRequest(
            provider_id=provider.id,
            slot_date=start_time.date().isoformat(),
            slot_time='10:30 am',
            reason='Regular check-up',
        ),
        patient=patient,
        db=db,
    )

    assert response.message == 'Appointment booked successfully'
    assert response.appointment.status == 'booked'
    assert response.appointment.start_time == start_time
    assert response.appointment.time == '10:30 AM'
    assert response.appointment.provider.name == 'Dr. John Smith'
    assert response.appointment.provider.appointment_fee == 75.0


def test_book_route_propagates_conflict(db, provider, make_patient) -> None:
    start_time = _tomorrow_at(11, 0).isoformat()
    book(BookAppointmentRequest(provider_id=provider.id, start_time=start_time), patient=make_patient('a@example.com'), db=db)

    with pytest.raises(Conflict):
        book(BookAppointmentRequest(provider_id=provider.id, start_time=start_time), patient=make_patient('b@example.com'), db=db)


def test_my_appointments_and_cancel_routes(db, provider, patient) -> None:
    booked = book(
        BookAppointmentRequest(provider_id=provider.id, start_time=_tomorrow_at(12, 0).isoformat()),
        patient=patient,
        db=db,
    )

    listing = my_appointments(patient=patient, db=db)
    assert listing.total == 1
    assert listing.appointments[0].id == booked.appointment.id

    cancelled = cancel(appointment_id=booked.appointment.id, patient=patient, db=db)
    assert cancelled.message == 'Appointment cancelled successfully'
    assert cancelled.appointment.status == 'cancelled'

    with pytest.raises(InvalidState):
        cancel(appointment_id=booked.appointment.id, patient=patient, db=db)


def test_available_slots_route_hides_booked_time(db, provider, patient) -> None:
    start_time = _tomorrow_at(10, 30)
    book(BookAppointmentRequest(provider_id=provider.id, start_time=start_time.isoformat()), patient=patient, db=db)

    response = provider_available_slots(provider_id=provider.id, date=start_time.date(), current_user=None, db=db)

    starts = [slot.start_time for slot in response.available_slots]
    assert start_time not in starts
    assert _tomorrow_at(10, 0) in starts
    assert response.provider.id == provider.id


def test_lookahead_route_hides_booked_time(db, provider, patient) -> None:
    start_time = _tomorrow_at(14, 0)
    book(BookAppointmentRequest(provider_id=provider.id, start_time=start_time.isoformat()), patient=patient, db=db)

    response = lookahead_available_slots(provider_id=provider.id, current_user=None, db=db)

    assert response.total_count == len(response.available_slots)
    assert start_time not in [slot.start_time for slot in response.available_slots]
    assert all(slot.provider_id == provider.id for slot in response.available_slots)


def test_provider_appointments_route_lists_patients(db, provider, patient) -> None:
    book(BookAppointmentRequest(provider_id=provider.id, start_time=_tomorrow_at(15, 0).isoformat()), patient=patient, db=db)

    response = provider_appointments(include_cancelled=True, provider=provider, db=db)

    assert response.total == 1
    assert response.appointments[0].patient_name == 'Jane Doe'
    assert response.appointments[0].patient_id == patient.id


def test_providers_route_lists_directory(db, provider) -> None:
    response = providers(current_user=None, db=db)

    assert response.total == 1
    assert response.providers[0].speciality == 'General Medicine'


def test_format_slot_time_uses_twelve_hour_clock() -> None:
    assert format_slot_time(datetime(2025, 8, 31, 18, 0)) == '06:00 PM'


def test_scheduling_error_handler_renders_stable_error_body() -> None:
    response = asyncio.run(scheduling_error_handler(None, Conflict('slot_taken', 'This time slot is already booked.')))

    assert response.status_code == 409
    assert json.loads(response.body) == {
        'error': 'slot_taken',
        'kind': 'conflict',
        'message': 'This time slot is already booked.',
    }


def test_book_route_reports_storage_outage_as_unavailable(db, provider, patient, monkeypatch) -> None:
    def failing_commit():
        raise OperationalError('COMMIT', {}, Exception('disk I/O error'))

    monkeypatch.setattr(db, 'commit', failing_commit)

    with pytest.raises(StorageUnavailable) as exception_info:
        book(
            BookAppointmentRequest(provider_id=provider.id, start_time=_tomorrow_at(16, 0).isoformat()),
            patient=patient,
            db=db,
        )

    assert exception_info.value.reason == 'database_unavailable'
    assert exception_info.value.status_code == 503

    response = asyncio.run(scheduling_error_handler(None, exception_info.value))
    assert response.status_code == 503
    assert json.loads(response.body)['kind'] == 'storage_unavailable'


def test_available_slots_route_resolves_provider_once(db, provider, monkeypatch) -> None:
    def unexpected_lookup(*args, **kwargs):
        raise AssertionError('provider already resolved by the route')

    monkeypatch.setattr(availability, 'get_provider', unexpected_lookup)

    response = provider_available_slots(provider_id=provider.id, date=_tomorrow_at(10, 0).date(), current_user=None, db=db)

    assert response.provider.id == provider.id
    assert response.available_slots


def test_available_slots_routes_hide_records_without_provider_role(db, make_provider) -> None:
    impostor = make_provider('impostor@example.com', role=PATIENT_ROLE)

    with pytest.raises(NotFound):
        provider_available_slots(provider_id=impostor.id, date=_tomorrow_at(10, 0).date(), current_user=None, db=db)

    with pytest.raises(NotFound):
        lookahead_available_slots(provider_id=impostor.id, current_user=None, db=db)
