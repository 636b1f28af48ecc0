"""
Repository for clinic entities backed by a SQLAlchemy session.

Lookups return ``None`` or an empty list when nothing matches. Database
errors are logged, the session is rolled back and the ``SQLAlchemyError`` is
re-raised for the service layer to turn into an internal failure.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.prescription import Prescription
from clinic.models.user import Admin, Doctor, Patient

logger = logging.getLogger(__name__)


class ClinicRepository:
    """
    Keyed lookups and writes for doctors, patients, admins, appointments and prescriptions

    Attributes:
        db: SQLAlchemy session for the current request
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Credential store
    # ------------------------------------------------------------------

    def find_admin_by_username(self, username: str) -> Optional[Admin]:
        return self.db.query(Admin).filter(Admin.username == username).first()

    def find_doctor_by_id(self, doctor_id: int, for_update: bool = False) -> Optional[Doctor]:
        query = self.db.query(Doctor).filter(Doctor.id == doctor_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def find_doctor_by_email(self, email: str) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.email == email).first()

    def find_patient_by_email(self, email: str) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.email == email).first()

    def find_patient_by_email_or_phone(self, email: str, phone: str) -> Optional[Patient]:
        return self.db.query(Patient).filter(or_(Patient.email == email, Patient.phone == phone)).first()

    def list_doctors(self) -> List[Doctor]:
        return self.db.query(Doctor).order_by(Doctor.id).all()

    def search_doctors(self, name: Optional[str] = None, specialty: Optional[str] = None) -> List[Doctor]:
        query = self.db.query(Doctor)
        if name:
            query = query.filter(Doctor.name.ilike(f"%{name}%"))
        if specialty:
            query = query.filter(func.lower(Doctor.specialty) == specialty.lower())
        return query.order_by(Doctor.id).all()

    def save_admin(self, admin: Admin) -> Admin:
        return self._save(admin)

    def save_doctor(self, doctor: Doctor) -> Doctor:
        return self._save(doctor)

    def save_patient(self, patient: Patient) -> Patient:
        return self._save(patient)

    def delete_doctor(self, doctor_id: int) -> bool:
        """Delete a doctor together with their appointments and those appointments' prescriptions."""
        try:
            doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).first()
            if doctor is None:
                return False
            removed = self._delete_appointments_by_doctor(doctor_id)
            # The bulk delete bypassed the loaded collection
            self.db.expire(doctor, ["appointments"])
            self.db.delete(doctor)
            self.db.commit()
            logger.info(f"Doctor {doctor_id} deleted with {removed} appointment(s)")
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting doctor {doctor_id}: {str(e)}")
            raise

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------

    def find_appointment_by_id(self, appointment_id: int, for_update: bool = False) -> Optional[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
        if for_update:
            # Re-read the row even if it is already in the identity map
            query = query.with_for_update().populate_existing()
        return query.first()

    def find_appointments_by_doctor_and_time_range(
        self, doctor_id: int, start: datetime, end: datetime
    ) -> List[Appointment]:
        """Appointments of ``doctor_id`` with ``start <= appointment_time <= end``."""
        return (
            self.db.query(Appointment)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_time >= start,
                Appointment.appointment_time <= end,
            )
            .order_by(Appointment.appointment_time)
            .all()
        )

    def find_appointments_by_doctor_and_patient_name(
        self, doctor_id: int, patient_name: str, start: datetime, end: datetime
    ) -> List[Appointment]:
        return (
            self.db.query(Appointment)
            .join(Patient, Appointment.patient_id == Patient.id)
            .filter(
                Appointment.doctor_id == doctor_id,
                Patient.name.ilike(f"%{patient_name}%"),
                Appointment.appointment_time >= start,
                Appointment.appointment_time <= end,
            )
            .order_by(Appointment.appointment_time)
            .all()
        )

    def find_appointments_by_patient(
        self,
        patient_id: int,
        status: Optional[AppointmentStatus] = None,
        doctor_name: Optional[str] = None,
    ) -> List[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.patient_id == patient_id)
        if status is not None:
            query = query.filter(Appointment.status == status)
        if doctor_name:
            query = query.join(Doctor, Appointment.doctor_id == Doctor.id).filter(
                Doctor.name.ilike(f"%{doctor_name}%")
            )
        return query.order_by(Appointment.appointment_time).all()

    def save_appointment(self, appointment: Appointment) -> Appointment:
        return self._save(appointment)

    def update_appointment_status(self, appointment_id: int, status: AppointmentStatus) -> bool:
        """Single-statement status write. Returns False when no row matched."""
        try:
            updated = (
                self.db.query(Appointment)
                .filter(Appointment.id == appointment_id)
                .update({Appointment.status: AppointmentStatus(status)}, synchronize_session="fetch")
            )
            self.db.commit()
            return updated > 0
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating status of appointment {appointment_id}: {str(e)}")
            raise

    def delete_appointments_by_doctor(self, doctor_id: int) -> int:
        try:
            removed = self._delete_appointments_by_doctor(doctor_id)
            self.db.commit()
            return removed
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting appointments of doctor {doctor_id}: {str(e)}")
            raise

    def _delete_appointments_by_doctor(self, doctor_id: int) -> int:
        appointment_ids = [
            row.id for row in self.db.query(Appointment.id).filter(Appointment.doctor_id == doctor_id).all()
        ]
        if not appointment_ids:
            return 0
        self.db.query(Prescription).filter(Prescription.appointment_id.in_(appointment_ids)).delete(
            synchronize_session=False
        )
        return self.db.query(Appointment).filter(Appointment.id.in_(appointment_ids)).delete(
            synchronize_session=False
        )

    # ------------------------------------------------------------------
    # Prescriptions
    # ------------------------------------------------------------------

    def find_prescription_by_id(self, prescription_id: int) -> Optional[Prescription]:
        return self.db.query(Prescription).filter(Prescription.id == prescription_id).first()

    def find_prescription_by_appointment(self, appointment_id: int) -> Optional[Prescription]:
        return self.db.query(Prescription).filter(Prescription.appointment_id == appointment_id).first()

    def save_prescription(self, prescription: Prescription) -> Prescription:
        return self._save(prescription)

    # ------------------------------------------------------------------

    def commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Commit failed: {str(e)}")
            raise

    def rollback(self):
        self.db.rollback()

    def _save(self, entity):
        try:
            self.db.add(entity)
            self.db.commit()
            self.db.refresh(entity)
            return entity
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving {type(entity).__name__}: {str(e)}")
            raise
