from dataclasses import dataclass
from datetime import date, time
from typing import Any, List, Optional

from clinic.models.schedule import DayOfWeek
from clinic.models.user import Role


@dataclass(frozen=True)
class CallerIdentity:
    user_id: int
    email: str
    role: Role

    @property
    def is_doctor(self) -> bool:
        return self.role == Role.DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == Role.PATIENT


class AvailabilityStore:
    """Reads and writes weekly availability templates.

    Templates are any objects exposing ``id``, ``doctor_id``, ``day_of_week``,
    ``start_time``, ``end_time``, ``slot_duration_minutes`` and ``is_active``.
    """

    def find_active_template(self, doctor_id: int, day_of_week: DayOfWeek) -> Optional[Any]:
        ...

    def get_template(self, template_id: int) -> Optional[Any]:
        ...

    def list_templates(self, doctor_id: int) -> List[Any]:
        ...

    def add_template(
        self,
        doctor_id: int,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        slot_duration_minutes: int,
        is_active: bool,
    ) -> Any:
        ...

    def delete_template(self, template: Any) -> None:
        ...


class BookingStore:
    """Reads and persists appointments.

    The engine only calls ``list_appointments``; the booking workflow uses the
    rest. Appointments expose ``start_time``, ``end_time`` and ``status``.
    """

    def list_appointments(self, doctor_id: int, appointment_date: date) -> List[Any]:
        ...

    def get_appointment(self, appointment_id: int) -> Optional[Any]:
        ...

    def list_for_patient(self, patient_id: int) -> List[Any]:
        ...

    def list_for_doctor(self, doctor_id: int) -> List[Any]:
        ...

    def add_appointment(
        self,
        patient_id: int,
        doctor_id: int,
        appointment_date: date,
        start_time: time,
        end_time: time,
        reason: Optional[str],
    ) -> Any:
        ...

    def save(self, appointment: Any) -> Any:
        ...


class UserDirectory:
    """Looks up identity records (doctors and patients) by id."""

    def get_user(self, user_id: int) -> Optional[Any]:
        ...
