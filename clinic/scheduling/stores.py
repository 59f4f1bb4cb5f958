from datetime import date, time
from typing import List, Optional

from sqlalchemy.orm import Session

from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.schedule import DayOfWeek, DoctorSchedule
from clinic.models.user import User
from clinic.scheduling.ports import AvailabilityStore, BookingStore, UserDirectory


class SqlAvailabilityStore(AvailabilityStore):
    def __init__(self, db: Session):
        self.db = db

    def find_active_template(self, doctor_id: int, day_of_week: DayOfWeek) -> Optional[DoctorSchedule]:
        # Raises MultipleResultsFound when a doctor holds two active rows for one weekday.
        return self.db.query(DoctorSchedule).filter(
            DoctorSchedule.doctor_id == doctor_id,
            DoctorSchedule.day_of_week == day_of_week,
            DoctorSchedule.is_active.is_(True),
        ).one_or_none()

    def get_template(self, template_id: int) -> Optional[DoctorSchedule]:
        return self.db.query(DoctorSchedule).filter(DoctorSchedule.id == template_id).first()

    def list_templates(self, doctor_id: int) -> List[DoctorSchedule]:
        return self.db.query(DoctorSchedule).filter(DoctorSchedule.doctor_id == doctor_id).all()

    def add_template(
        self,
        doctor_id: int,
        day_of_week: DayOfWeek,
        start_time: time,
        end_time: time,
        slot_duration_minutes: int,
        is_active: bool,
    ) -> DoctorSchedule:
        template = DoctorSchedule(
            doctor_id=doctor_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            slot_duration_minutes=slot_duration_minutes,
            is_active=is_active,
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        return template

    def delete_template(self, template: DoctorSchedule) -> None:
        self.db.delete(template)
        self.db.commit()


class SqlBookingStore(BookingStore):
    def __init__(self, db: Session):
        self.db = db

    def list_appointments(self, doctor_id: int, appointment_date: date) -> List[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
        ).all()

    def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def list_for_patient(self, patient_id: int) -> List[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.patient_id == patient_id,
        ).order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc()).all()

    def list_for_doctor(self, doctor_id: int) -> List[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
        ).order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc()).all()

    def add_appointment(
        self,
        patient_id: int,
        doctor_id: int,
        appointment_date: date,
        start_time: time,
        end_time: time,
        reason: Optional[str],
    ) -> Appointment:
        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus.SCHEDULED,
            reason=reason,
        )
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def save(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment


class SqlUserDirectory(UserDirectory):
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()
