"""Booking workflow: the thin layer between the HTTP routes and the engine.

Booking is check-then-act. ``validate_availability`` and ``detect_conflict``
read the current bookings, then a new row is written; two concurrent requests
for overlapping windows can both pass the checks before either commits. The
engine takes no locks. Production deployments need the database to close this
gap, either with serializable transactions or with an exclusion/unique
constraint on (doctor_id, appointment_date, interval).
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional

from clinic.core import config
from clinic.models.appointment import AppointmentStatus
from clinic.models.user import Role
from clinic.scheduling.engine import SchedulingEngine
from clinic.scheduling.errors import InvalidInput, NotFound, PermissionDenied
from clinic.scheduling.ports import BookingStore, CallerIdentity, UserDirectory

logger = logging.getLogger(__name__)


def appointment_end_time(start_time: time) -> time:
    start = datetime.combine(date.min, start_time)
    end = start + timedelta(minutes=config.APPOINTMENT_DURATION_MINUTES)
    if end.date() != start.date():
        raise InvalidInput('Appointments cannot run past midnight.')
    return end.time()


@dataclass
class BookingWorkflow:
    engine: SchedulingEngine
    bookings: BookingStore
    users: UserDirectory
    today: Callable[[], date] = field(default=date.today)

    def _require_access(self, caller: CallerIdentity, appointment_id: int, action: str):
        appointment = self.bookings.get_appointment(appointment_id)
        if appointment is None:
            raise NotFound(f'Appointment not found with id: {appointment_id}')
        if caller.user_id not in (appointment.patient_id, appointment.doctor_id):
            raise PermissionDenied(f"You don't have permission to {action} this appointment.")
        return appointment

    def book_appointment(
        self,
        caller: CallerIdentity,
        doctor_id: int,
        appointment_date: date,
        start_time: time,
        reason: Optional[str] = None,
    ):
        if not caller.is_patient:
            raise PermissionDenied('Only patients can book appointments.')

        patient = self.users.get_user(caller.user_id)
        if patient is None or patient.role != Role.PATIENT:
            raise NotFound(f'Patient not found with id: {caller.user_id}')

        doctor = self.users.get_user(doctor_id)
        if doctor is None or doctor.role != Role.DOCTOR:
            raise NotFound(f'Doctor not found with id: {doctor_id}')

        if appointment_date <= self.today():
            raise InvalidInput('Appointment date must be in the future.')

        end_time = appointment_end_time(start_time)

        self.engine.validate_availability(doctor_id, appointment_date, start_time)
        self.engine.detect_conflict(doctor_id, appointment_date, start_time, end_time)

        appointment = self.bookings.add_appointment(
            patient_id=patient.id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
        )
        logger.info(
            'Booked appointment %s: patient %s with doctor %s on %s at %s',
            appointment.id, patient.id, doctor_id, appointment_date, start_time,
        )
        return appointment

    def list_my_appointments(self, caller: CallerIdentity) -> List:
        if caller.is_patient:
            return list(self.bookings.list_for_patient(caller.user_id))
        if caller.is_doctor:
            return list(self.bookings.list_for_doctor(caller.user_id))
        raise PermissionDenied('Only patients and doctors have appointments.')

    def get_appointment(self, caller: CallerIdentity, appointment_id: int):
        return self._require_access(caller, appointment_id, 'view')

    def cancel_appointment(self, caller: CallerIdentity, appointment_id: int):
        appointment = self._require_access(caller, appointment_id, 'cancel')
        if appointment.status != AppointmentStatus.SCHEDULED:
            raise InvalidInput(f'Only scheduled appointments can be cancelled (status is {appointment.status.value}).')

        appointment.status = AppointmentStatus.CANCELLED
        appointment = self.bookings.save(appointment)
        logger.info('Appointment %s cancelled by user %s', appointment_id, caller.user_id)
        return appointment

    def complete_appointment(self, caller: CallerIdentity, appointment_id: int, notes: Optional[str] = None):
        """Close out a visit once its medical record has been filed."""
        appointment = self.bookings.get_appointment(appointment_id)
        if appointment is None:
            raise NotFound(f'Appointment not found with id: {appointment_id}')
        if appointment.doctor_id != caller.user_id:
            raise PermissionDenied('Only the treating doctor can complete this appointment.')
        if appointment.status != AppointmentStatus.SCHEDULED:
            raise InvalidInput(f'Only scheduled appointments can be completed (status is {appointment.status.value}).')

        appointment.status = AppointmentStatus.COMPLETED
        if notes is not None:
            appointment.notes = notes
        appointment = self.bookings.save(appointment)
        logger.info('Appointment %s completed by doctor %s', appointment_id, caller.user_id)
        return appointment
