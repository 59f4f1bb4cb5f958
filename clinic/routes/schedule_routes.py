from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.exc import MultipleResultsFound, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic.auth.dependencies import get_current_caller, require_role
from clinic.core import config
from clinic.database import get_db
from clinic.models.schedule import DayOfWeek
from clinic.models.user import Role
from clinic.routes.errors import (
    DUPLICATE_SCHEDULE_DETAIL,
    database_unavailable,
    ensure_database_ready,
    scheduling_http_error,
)
from clinic.scheduling.engine import SchedulingEngine
from clinic.scheduling.errors import SchedulingError
from clinic.scheduling.ports import CallerIdentity
from clinic.scheduling.stores import SqlAvailabilityStore, SqlBookingStore

router = APIRouter(tags=['schedule'])


class CreateScheduleRequest(BaseModel):
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    slot_duration_minutes: int = Field(ge=config.MIN_SLOT_DURATION_MINUTES)
    is_active: bool = True

    @model_validator(mode='after')
    def validate_time_range(self) -> 'CreateScheduleRequest':
        if self.end_time <= self.start_time:
            raise ValueError('End time must be after start time.')
        return self


class ScheduleResponse(BaseModel):
    id: int
    doctor_id: int
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    slot_duration_minutes: int
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class AvailableSlotResponse(BaseModel):
    start_time: time
    end_time: time
    is_available: bool

    class Config:
        from_attributes = True


def build_engine(db: Session) -> SchedulingEngine:
    return SchedulingEngine(availability=SqlAvailabilityStore(db), bookings=SqlBookingStore(db))


@router.post('/schedule', response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
def create_schedule(
    data: CreateScheduleRequest,
    caller: CallerIdentity = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    require_role(caller, Role.DOCTOR, 'manage schedules')
    ensure_database_ready()

    try:
        return build_engine(db).create_template(
            doctor_id=caller.user_id,
            day_of_week=data.day_of_week,
            start_time=data.start_time,
            end_time=data.end_time,
            slot_duration_minutes=data.slot_duration_minutes,
            is_active=data.is_active,
        )
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/schedule', response_model=list[ScheduleResponse])
def list_my_schedules(
    caller: CallerIdentity = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    require_role(caller, Role.DOCTOR, 'manage schedules')
    ensure_database_ready()

    try:
        return build_engine(db).list_templates(caller.user_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/schedule/{schedule_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    schedule_id: int,
    caller: CallerIdentity = Depends(get_current_caller),
    db: Session = Depends(get_db),
):
    require_role(caller, Role.DOCTOR, 'manage schedules')
    ensure_database_ready()

    try:
        build_engine(db).delete_template(schedule_id, caller.user_id)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/{doctor_id}/schedule', response_model=list[ScheduleResponse])
def list_doctor_schedules(doctor_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return build_engine(db).list_templates(doctor_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{doctor_id}/available-slots', response_model=list[AvailableSlotResponse])
def list_available_slots(
    doctor_id: int,
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return build_engine(db).generate_slots(doctor_id, slot_date)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except MultipleResultsFound as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_SCHEDULE_DETAIL) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
