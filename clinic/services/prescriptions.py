import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from clinic.core.outcomes import Outcome, Result
from clinic.models.appointment import AppointmentStatus
from clinic.models.prescription import Prescription
from clinic.repository import ClinicRepository
from clinic.services.booking import BookingCoordinator

logger = logging.getLogger(__name__)


class PrescriptionService:
    def __init__(self, repository: ClinicRepository, booking: BookingCoordinator):
        self.repository = repository
        self.booking = booking

    def record(self, appointment_id: int, medication: str, dosage: str, doctor_notes, doctor_token: str) -> Result:
        """
        Record the prescription of an appointment and mark the appointment COMPLETED.

        The status change goes first; if it is refused or fails, nothing is
        written. If the insert then fails the previous status is put back,
        unless another prescription for the appointment won the unique
        constraint, in which case the result is DUPLICATE.
        """
        identifier = self.booking.token_authority.verify(doctor_token)
        if identifier is None:
            return Result(Outcome.INVALID_TOKEN)

        try:
            if self.repository.find_prescription_by_appointment(appointment_id) is not None:
                return Result(Outcome.DUPLICATE)
            appointment = self.repository.find_appointment_by_id(appointment_id)
            previous_status = appointment.status if appointment is not None else None
        except SQLAlchemyError:
            logger.exception(f"Prescription lookup failed for appointment {appointment_id}")
            return Result(Outcome.INTERNAL_FAILURE)

        outcome = self.booking.change_status(appointment_id, AppointmentStatus.COMPLETED, identifier)
        if not outcome.ok:
            return Result(outcome)

        try:
            appointment = self.repository.find_appointment_by_id(appointment_id)
            prescription = Prescription(
                appointment_id=appointment.id,
                doctor_id=appointment.doctor_id,
                patient_id=appointment.patient_id,
                medication=medication,
                dosage=dosage,
                doctor_notes=doctor_notes,
            )
            self.repository.save_prescription(prescription)
        except IntegrityError:
            if self.repository.find_prescription_by_appointment(appointment_id) is not None:
                logger.info(f"Concurrent prescription already recorded for appointment {appointment_id}")
                return Result(Outcome.DUPLICATE)
            logger.exception(f"Could not save prescription for appointment {appointment_id}")
            self._restore_status(appointment_id, previous_status)
            return Result(Outcome.INTERNAL_FAILURE)
        except SQLAlchemyError:
            logger.exception(f"Could not save prescription for appointment {appointment_id}")
            self._restore_status(appointment_id, previous_status)
            return Result(Outcome.INTERNAL_FAILURE)

        logger.info(f"Prescription {prescription.id} recorded for appointment {appointment_id}")
        return Result(Outcome.SUCCESS, prescription)

    def _restore_status(self, appointment_id: int, previous_status):
        if previous_status is None or previous_status == AppointmentStatus.COMPLETED:
            return
        try:
            with self.booking.locks.hold(("appointment", appointment_id)):
                self.repository.update_appointment_status(appointment_id, previous_status)
        except SQLAlchemyError:
            logger.exception(f"Could not restore status of appointment {appointment_id} to {previous_status.name}")
            return
        logger.warning(f"Appointment {appointment_id} status restored to {previous_status.name}")

    def for_appointment(self, appointment_id: int) -> Result:
        prescription = self.repository.find_prescription_by_appointment(appointment_id)
        if prescription is None:
            return Result(Outcome.PRESCRIPTION_NOT_FOUND)
        return Result(Outcome.SUCCESS, prescription)

    def by_id(self, prescription_id: int) -> Result:
        prescription = self.repository.find_prescription_by_id(prescription_id)
        if prescription is None:
            return Result(Outcome.PRESCRIPTION_NOT_FOUND)
        return Result(Outcome.SUCCESS, prescription)
