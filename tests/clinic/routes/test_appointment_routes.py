from datetime import date, time, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from clinic.models.appointment import AppointmentStatus
from clinic.models.schedule import DayOfWeek
from clinic.routes.appointment_routes import (
    BookAppointmentRequest,
    CompleteAppointmentRequest,
    book_appointment,
    cancel_appointment,
    complete_appointment,
    get_appointment,
    list_my_appointments,
)
from clinic.scheduling.stores import SqlAvailabilityStore


def _upcoming_monday() -> date:
    today = date.today()
    return today + timedelta(days=7 - today.weekday())


@pytest.fixture(autouse=True)
def skip_index_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('clinic.routes.appointment_routes.ensure_database_ready', lambda: None)


@pytest.fixture
def monday_hours(db_session, doctor):
    return SqlAvailabilityStore(db_session).add_template(
        doctor.id, DayOfWeek.MONDAY, time(9, 0), time(17, 0), 30, is_active=True
    )


def _request(doctor_id: int, start_time: time = time(9, 0), **overrides) -> BookAppointmentRequest:
    return BookAppointmentRequest(
        doctor_id=doctor_id,
        appointment_date=overrides.pop('appointment_date', _upcoming_monday()),
        start_time=start_time,
        **overrides,
    )


def test_book_appointment_request_normalizes_fields() -> None:
    request = _request(1, start_time=time(9, 0, 42), reason='  Sore throat  ')

    assert request.start_time == time(9, 0)
    assert request.reason == 'Sore throat'
    assert _request(1, reason='   ').reason is None


def test_book_appointment_request_rejects_long_reason() -> None:
    with pytest.raises(ValidationError):
        _request(1, reason='x' * 501)


def test_complete_appointment_request_rejects_long_notes() -> None:
    with pytest.raises(ValidationError):
        CompleteAppointmentRequest(notes='x' * 1001)


def test_book_appointment_returns_created_visit(db_session, monday_hours, doctor, patient, caller_for) -> None:
    response = book_appointment(_request(doctor.id, reason='Checkup'), caller=caller_for(patient), db=db_session)

    assert response.doctor_name == 'Dr. Gregory House'
    assert response.patient_name == 'Pat Smith'
    assert response.start_time == time(9, 0)
    assert response.end_time == time(9, 30)
    assert response.status == AppointmentStatus.SCHEDULED


def test_book_appointment_conflict_is_409(db_session, monday_hours, doctor, patient, other_patient, caller_for) -> None:
    book_appointment(_request(doctor.id), caller=caller_for(patient), db=db_session)

    with pytest.raises(HTTPException) as exception_info:
        book_appointment(_request(doctor.id, start_time=time(9, 15)), caller=caller_for(other_patient), db=db_session)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'Time slot 09:15 - 09:45 is already booked. Conflicts with 09:00 - 09:30.'


def test_book_appointment_after_last_slot_is_400(db_session, monday_hours, doctor, patient, caller_for) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_appointment(_request(doctor.id, start_time=time(16, 45)), caller=caller_for(patient), db=db_session)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == "Doctor's working hours are 09:00 to 17:00."


def test_book_appointment_by_doctor_is_403(db_session, monday_hours, doctor, caller_for) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_appointment(_request(doctor.id), caller=caller_for(doctor), db=db_session)

    assert exception_info.value.status_code == 403


def test_list_my_appointments_for_doctor(db_session, monday_hours, doctor, patient, caller_for) -> None:
    booked = book_appointment(_request(doctor.id), caller=caller_for(patient), db=db_session)

    listed = list_my_appointments(caller=caller_for(doctor), db=db_session)

    assert [appointment.id for appointment in listed] == [booked.id]


def test_get_appointment_missing_is_404(db_session, patient, caller_for) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_appointment(appointment_id=999, caller=caller_for(patient), db=db_session)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Appointment not found with id: 999'


def test_cancel_appointment_by_stranger_is_403(
    db_session, monday_hours, doctor, patient, other_patient, caller_for
) -> None:
    booked = book_appointment(_request(doctor.id), caller=caller_for(patient), db=db_session)

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment_id=booked.id, caller=caller_for(other_patient), db=db_session)

    assert exception_info.value.status_code == 403


def test_cancel_appointment_frees_the_window(db_session, monday_hours, doctor, patient, other_patient, caller_for) -> None:
    booked = book_appointment(_request(doctor.id), caller=caller_for(patient), db=db_session)

    cancelled = cancel_appointment(appointment_id=booked.id, caller=caller_for(patient), db=db_session)
    rebooked = book_appointment(_request(doctor.id), caller=caller_for(other_patient), db=db_session)

    assert cancelled.status == AppointmentStatus.CANCELLED
    assert rebooked.start_time == time(9, 0)


def test_complete_appointment_records_notes(db_session, monday_hours, doctor, patient, caller_for) -> None:
    booked = book_appointment(_request(doctor.id), caller=caller_for(patient), db=db_session)

    completed = complete_appointment(
        appointment_id=booked.id,
        data=CompleteAppointmentRequest(notes='Follow up in two weeks.'),
        caller=caller_for(doctor),
        db=db_session,
    )

    assert completed.status == AppointmentStatus.COMPLETED
    assert completed.notes == 'Follow up in two weeks.'
