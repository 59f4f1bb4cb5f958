from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import MultipleResultsFound, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic.auth.dependencies import get_current_caller
from clinic.core import config
from clinic.database import get_db
from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.routes.errors import (
    DUPLICATE_SCHEDULE_DETAIL,
    database_unavailable,
    ensure_database_ready,
    scheduling_http_error,
)
from clinic.routes.schedule_routes import build_engine
from clinic.scheduling.errors import SchedulingError
from clinic.scheduling.ports import CallerIdentity
from clinic.scheduling.stores import SqlBookingStore, SqlUserDirectory
from clinic.services.booking import BookingWorkflow

router = APIRouter(tags=['appointments'])


def _normalize_text(value: str | None, max_length: int, label: str) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > max_length:
        raise ValueError(f'{label} must be {max_length} characters or fewer.')

    return normalized


class BookAppointmentRequest(BaseModel):
    doctor_id: int
    appointment_date: date
    start_time: time
    reason: str | None = None

    @field_validator('start_time')
    @classmethod
    def validate_start_time(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_text(value, config.MAX_REASON_LENGTH, 'Reason')


class CompleteAppointmentRequest(BaseModel):
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_text(value, config.MAX_NOTES_LENGTH, 'Notes')


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    patient_name: str
    doctor_name: str
    appointment_date: date
    start_time: time
    end_time: time
    status: AppointmentStatus
    reason: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        patient_name=appointment.patient.display_name if appointment.patient else 'Unknown',
        doctor_name=appointment.doctor.display_name if appointment.doctor else 'Unknown',
        appointment_date=appointment.appointment_date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=appointment.status,
        reason=appointment.reason,
        notes=appointment.notes,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )


def build_workflow(db: Session) -> BookingWorkflow:
    return BookingWorkflow(
        engine=build_engine(db),
        bookings=SqlBookingStore(db),
        users=SqlUserDirectory(db),
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    caller: CallerIdentity = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = build_workflow(db).book_appointment(
            caller,
            doctor_id=data.doctor_id,
            appointment_date=data.appointment_date,
            start_time=data.start_time,
            reason=data.reason,
        )
        return to_response(appointment)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except MultipleResultsFound as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_SCHEDULE_DETAIL) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('', response_model=list[AppointmentResponse])
def list_my_appointments(
    caller: CallerIdentity = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return [to_response(appointment) for appointment in build_workflow(db).list_my_appointments(caller)]
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    caller: CallerIdentity = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return to_response(build_workflow(db).get_appointment(caller, appointment_id))
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/{appointment_id}', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    caller: CallerIdentity = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return to_response(build_workflow(db).cancel_appointment(caller, appointment_id))
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    data: CompleteAppointmentRequest,
    caller: CallerIdentity = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return to_response(build_workflow(db).complete_appointment(caller, appointment_id, notes=data.notes))
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
