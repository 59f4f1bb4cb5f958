"""User model definitions."""

import enum

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from clinic.database import Base


class Role(str, enum.Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class User(Base):
    """Identity record shared by every role; role-specific data hangs off it."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False, default="")
    role = Column(Enum(Role, native_enum=False, length=20), nullable=False)
    first_name = Column(String(50))
    last_name = Column(String(50))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor_profile = relationship("DoctorProfile", uselist=False, back_populates="user")
    patient_profile = relationship("PatientProfile", uselist=False, back_populates="user")

    @property
    def profile(self):
        if self.role == Role.DOCTOR:
            return self.doctor_profile
        if self.role == Role.PATIENT:
            return self.patient_profile
        return None

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        if self.role == Role.DOCTOR:
            return f"Dr. {name or 'Unknown'}"
        return name or "Unknown"


class DoctorProfile(Base):
    __tablename__ = "doctor_profiles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    specialization = Column(String(100))
    license_number = Column(String(50), unique=True)
    phone = Column(String(20))
    bio = Column(String(1000))

    user = relationship("User", back_populates="doctor_profile")


class PatientProfile(Base):
    __tablename__ = "patient_profiles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    date_of_birth = Column(Date)
    phone = Column(String(20))
    blood_type = Column(String(5))
    allergies = Column(String(500))

    user = relationship("User", back_populates="patient_profile")
