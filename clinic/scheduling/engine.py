import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, List

from clinic.core import config
from clinic.models.appointment import AppointmentStatus
from clinic.models.schedule import DayOfWeek
from clinic.scheduling.errors import (
    DoctorUnavailable,
    InvalidInput,
    NotFound,
    PermissionDenied,
    ScheduleConflict,
)
from clinic.scheduling.ports import AvailabilityStore, BookingStore

logger = logging.getLogger(__name__)

NON_BLOCKING_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})


@dataclass(frozen=True)
class Slot:
    start_time: time
    end_time: time
    is_available: bool


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open overlap test: [a, b) and [b, c) do not overlap."""
    return start_a < end_b and start_b < end_a


def is_blocking(appointment: Any) -> bool:
    return appointment.status not in NON_BLOCKING_STATUSES


def find_overlapping(start_time: time, end_time: time, appointments: Iterable[Any]):
    for appointment in appointments:
        if not is_blocking(appointment):
            continue
        if intervals_overlap(start_time, end_time, appointment.start_time, appointment.end_time):
            return appointment
    return None


@dataclass
class SchedulingEngine:
    availability: AvailabilityStore
    bookings: BookingStore

    def _active_template(self, doctor_id: int, on_date: date):
        day_of_week = DayOfWeek.from_date(on_date)
        template = self.availability.find_active_template(doctor_id, day_of_week)
        if template is None:
            raise DoctorUnavailable(f'Doctor does not work on {day_of_week.value}.')
        return template

    def validate_availability(self, doctor_id: int, on_date: date, start_time: time) -> None:
        template = self._active_template(doctor_id, on_date)

        # The latest start leaves room for one template slot, not one appointment.
        latest_start = datetime.combine(on_date, template.end_time) - timedelta(
            minutes=template.slot_duration_minutes
        )
        requested = datetime.combine(on_date, start_time)

        if start_time < template.start_time or requested > latest_start:
            raise DoctorUnavailable(
                f"Doctor's working hours are {template.start_time:%H:%M} to {template.end_time:%H:%M}."
            )

    def detect_conflict(self, doctor_id: int, on_date: date, start_time: time, end_time: time) -> None:
        existing = self.bookings.list_appointments(doctor_id, on_date)
        overlapping = find_overlapping(start_time, end_time, existing)

        if overlapping is not None:
            logger.debug(
                'Conflict for doctor %s on %s: %s-%s overlaps appointment %s',
                doctor_id, on_date, start_time, end_time, getattr(overlapping, 'id', None),
            )
            raise ScheduleConflict(
                f'Time slot {start_time:%H:%M} - {end_time:%H:%M} is already booked.',
                start_time=overlapping.start_time,
                end_time=overlapping.end_time,
            )

    def generate_slots(self, doctor_id: int, on_date: date) -> List[Slot]:
        template = self._active_template(doctor_id, on_date)
        booked = [
            appointment
            for appointment in self.bookings.list_appointments(doctor_id, on_date)
            if is_blocking(appointment)
        ]

        step = timedelta(minutes=template.slot_duration_minutes)
        day_end = datetime.combine(on_date, template.end_time)
        current = datetime.combine(on_date, template.start_time)
        slots: List[Slot] = []

        while current + step <= day_end:
            slot_start = current.time()
            slot_end = (current + step).time()
            slots.append(
                Slot(
                    start_time=slot_start,
                    end_time=slot_end,
                    is_available=find_overlapping(slot_start, slot_end, booked) is None,
                )
            )
            current += step

        return slots

    def create_template(
        self,
        doctor_id: int,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        slot_duration_minutes: int,
        is_active: bool = True,
    ):
        if end_time <= start_time:
            raise InvalidInput('End time must be after start time.')
        if slot_duration_minutes < config.MIN_SLOT_DURATION_MINUTES:
            raise InvalidInput(
                f'Slot duration must be at least {config.MIN_SLOT_DURATION_MINUTES} minutes.'
            )

        template = self.availability.add_template(
            doctor_id=doctor_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            slot_duration_minutes=slot_duration_minutes,
            is_active=is_active,
        )
        logger.info('Doctor %s added %s schedule %s-%s', doctor_id, day_of_week.value, start_time, end_time)
        return template

    def delete_template(self, template_id: int, requester_doctor_id: int) -> None:
        template = self.availability.get_template(template_id)
        if template is None:
            raise NotFound(f'Schedule not found with id: {template_id}')
        if template.doctor_id != requester_doctor_id:
            raise PermissionDenied("You don't have permission to delete this schedule.")

        self.availability.delete_template(template)
        logger.info('Doctor %s deleted schedule %s', requester_doctor_id, template_id)

    def list_templates(self, doctor_id: int) -> list:
        return list(self.availability.list_templates(doctor_id))
