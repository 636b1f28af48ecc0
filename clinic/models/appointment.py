import enum
from datetime import timedelta

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator

from clinic.database import Base

APPOINTMENT_DURATION = timedelta(hours=1)


class AppointmentStatus(enum.IntEnum):
    CANCELLED = 0
    PENDING = 1
    COMPLETED = 2


class StatusType(TypeDecorator):
    """Stores AppointmentStatus as a small integer and refuses anything else."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        # Raises ValueError for integers outside the enumeration
        return int(AppointmentStatus(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return AppointmentStatus(value)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    appointment_time = Column(DateTime, nullable=False, index=True)
    status = Column(StatusType, nullable=False, default=AppointmentStatus.PENDING)
    reason = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    doctor = relationship("Doctor", back_populates="appointments")
    patient = relationship("Patient", back_populates="appointments")
    prescription = relationship("Prescription", back_populates="appointment", uselist=False)

    @property
    def end_time(self):
        return self.appointment_time + APPOINTMENT_DURATION

    @property
    def appointment_date(self):
        return self.appointment_time.date()

    @property
    def time_of_day(self):
        return self.appointment_time.time()

    @property
    def slot(self) -> str:
        return f"{self.appointment_time:%H:%M}-{self.end_time:%H:%M}"

    @property
    def doctor_name(self):
        return self.doctor.name

    @property
    def patient_name(self):
        return self.patient.name

    @property
    def patient_email(self):
        return self.patient.email

    @property
    def patient_phone(self):
        return self.patient.phone

    @property
    def patient_address(self):
        return self.patient.address
