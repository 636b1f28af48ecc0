"""
Appointment booking and the appointment status state machine.

Every operation returns a ``Result``/``Outcome``. Check-then-write sequences run
under per-doctor / per-appointment locks so concurrent requests for the same
doctor and time cannot both pass the conflict check.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from clinic.core.locks import KeyedLocks
from clinic.core.outcomes import Outcome, Result
from clinic.core.security import TokenAuthority
from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.repository import ClinicRepository

logger = logging.getLogger(__name__)

# Two bookings for one doctor closer than this are the same slot
CONFLICT_WINDOW = timedelta(minutes=1)

# Patient-facing filters over the status enumeration
CONDITION_STATUS = {
    "past": AppointmentStatus.COMPLETED,
    "future": AppointmentStatus.PENDING,
}


def to_wall_clock(value: datetime) -> datetime:
    """Appointment times are naive clinic-local datetimes."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class BookingCoordinator:
    def __init__(
        self,
        repository: ClinicRepository,
        token_authority: TokenAuthority,
        locks: KeyedLocks,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.token_authority = token_authority
        self.locks = locks
        self.clock = clock

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def book(
        self,
        doctor_id: int,
        appointment_time: datetime,
        reason: Optional[str],
        patient_token: str,
    ) -> Result:
        """Create a PENDING appointment for the patient the token belongs to."""
        identifier = self.token_authority.verify(patient_token)
        if identifier is None:
            return Result(Outcome.INVALID_TOKEN)

        appointment_time = to_wall_clock(appointment_time)
        try:
            patient = self.repository.find_patient_by_email(identifier)
            if patient is None:
                return Result(Outcome.PATIENT_NOT_FOUND)

            doctor = self.repository.find_doctor_by_id(doctor_id)
            if doctor is None:
                return Result(Outcome.DOCTOR_NOT_FOUND)

            if appointment_time <= self.clock():
                return Result(Outcome.INVALID_TIME)

            with self.locks.hold(("doctor", doctor.id)):
                self.repository.find_doctor_by_id(doctor.id, for_update=True)
                if self._has_conflict(doctor.id, appointment_time):
                    self.repository.rollback()
                    logger.info(f"Slot conflict for doctor {doctor.id} at {appointment_time.isoformat()}")
                    return Result(Outcome.SLOT_CONFLICT)

                appointment = Appointment(
                    doctor=doctor,
                    patient=patient,
                    appointment_time=appointment_time,
                    status=AppointmentStatus.PENDING,
                    reason=reason,
                )
                self.repository.save_appointment(appointment)
        except SQLAlchemyError:
            logger.exception(f"Booking failed for doctor {doctor_id}")
            self.repository.rollback()
            return Result(Outcome.INTERNAL_FAILURE)

        logger.info(
            f"Appointment {appointment.id} booked: doctor={doctor.id} patient={patient.id} "
            f"time={appointment_time.isoformat()}"
        )
        return Result(Outcome.SUCCESS, appointment)

    def reschedule(
        self,
        appointment_id: int,
        new_time: datetime,
        new_status,
        new_reason: Optional[str],
        token: str,
    ) -> Result:
        """Overwrite time, status and reason. Only the appointment's doctor or patient may do this."""
        identifier = self.token_authority.verify(token)
        if identifier is None:
            return Result(Outcome.INVALID_TOKEN)

        try:
            status = AppointmentStatus(new_status)
        except ValueError:
            return Result(Outcome.INVALID_STATUS)

        new_time = to_wall_clock(new_time)
        try:
            appointment = self.repository.find_appointment_by_id(appointment_id)
            if appointment is None:
                return Result(Outcome.NOT_FOUND)
            if not self.is_owner(appointment, identifier):
                logger.warning(f"Reschedule of appointment {appointment_id} refused for {identifier}")
                return Result(Outcome.FORBIDDEN)

            with self.locks.hold(("doctor", appointment.doctor_id), ("appointment", appointment_id)):
                appointment = self.repository.find_appointment_by_id(appointment_id, for_update=True)
                if appointment is None:
                    return Result(Outcome.NOT_FOUND)

                # Only a moved time has to lie in the future
                moving = new_time != appointment.appointment_time
                if moving and new_time <= self.clock():
                    self.repository.rollback()
                    return Result(Outcome.INVALID_TIME)
                # A moved or revived appointment must not land on an occupied slot
                reviving = appointment.status == AppointmentStatus.CANCELLED
                if (
                    status != AppointmentStatus.CANCELLED
                    and (moving or reviving)
                    and self._has_conflict(appointment.doctor_id, new_time, exclude_id=appointment_id)
                ):
                    self.repository.rollback()
                    return Result(Outcome.SLOT_CONFLICT)

                appointment.appointment_time = new_time
                appointment.status = status
                appointment.reason = new_reason
                self.repository.commit()
        except SQLAlchemyError:
            logger.exception(f"Reschedule failed for appointment {appointment_id}")
            self.repository.rollback()
            return Result(Outcome.INTERNAL_FAILURE)

        logger.info(f"Appointment {appointment_id} updated: time={new_time.isoformat()} status={status.name}")
        return Result(Outcome.SUCCESS, appointment)

    def cancel(self, appointment_id: int, token: str) -> Outcome:
        """Force CANCELLED regardless of the current status."""
        identifier = self.token_authority.verify(token)
        if identifier is None:
            return Outcome.INVALID_TOKEN
        return self.change_status(appointment_id, AppointmentStatus.CANCELLED, identifier)

    def change_status(self, appointment_id: int, new_status, caller_identifier: str) -> Outcome:
        try:
            status = AppointmentStatus(new_status)
        except ValueError:
            return Outcome.INVALID_STATUS

        try:
            appointment = self.repository.find_appointment_by_id(appointment_id)
            if appointment is None:
                return Outcome.NOT_FOUND
            if not caller_identifier or not self.is_owner(appointment, caller_identifier):
                logger.warning(f"Status change of appointment {appointment_id} refused for {caller_identifier}")
                return Outcome.FORBIDDEN

            if status == AppointmentStatus.CANCELLED:
                with self.locks.hold(("appointment", appointment_id)):
                    if not self.repository.update_appointment_status(appointment_id, status):
                        return Outcome.NOT_FOUND
            else:
                # Leaving CANCELLED re-occupies the slot
                with self.locks.hold(("doctor", appointment.doctor_id), ("appointment", appointment_id)):
                    appointment = self.repository.find_appointment_by_id(appointment_id, for_update=True)
                    if appointment is None:
                        return Outcome.NOT_FOUND
                    if appointment.status == AppointmentStatus.CANCELLED and self._has_conflict(
                        appointment.doctor_id, appointment.appointment_time, exclude_id=appointment_id
                    ):
                        self.repository.rollback()
                        logger.info(f"Appointment {appointment_id} cannot leave CANCELLED: slot taken")
                        return Outcome.SLOT_CONFLICT
                    if not self.repository.update_appointment_status(appointment_id, status):
                        return Outcome.NOT_FOUND
        except SQLAlchemyError:
            logger.exception(f"Status change failed for appointment {appointment_id}")
            self.repository.rollback()
            return Outcome.INTERNAL_FAILURE

        logger.info(f"Appointment {appointment_id} status set to {status.name}")
        return Outcome.SUCCESS

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def doctor_day_schedule(
        self, doctor_id: int, day: date, patient_name: Optional[str] = None
    ) -> List[Appointment]:
        start_of_day = datetime.combine(day, time.min)
        end_of_day = datetime.combine(day, time.max)
        if patient_name:
            return self.repository.find_appointments_by_doctor_and_patient_name(
                doctor_id, patient_name, start_of_day, end_of_day
            )
        return self.repository.find_appointments_by_doctor_and_time_range(doctor_id, start_of_day, end_of_day)

    def patient_appointments(
        self,
        patient_id: int,
        condition: Optional[str] = None,
        doctor_name: Optional[str] = None,
    ) -> List[Appointment]:
        status = None
        if condition:
            try:
                status = CONDITION_STATUS[condition.lower()]
            except KeyError:
                raise ValueError(f"Unknown condition {condition!r}, expected 'past' or 'future'") from None
        return self.repository.find_appointments_by_patient(patient_id, status=status, doctor_name=doctor_name)

    # ------------------------------------------------------------------

    @staticmethod
    def is_owner(appointment: Appointment, identifier: str) -> bool:
        return identifier in (appointment.doctor.email, appointment.patient.email)

    def _has_conflict(self, doctor_id: int, when: datetime, exclude_id: Optional[int] = None) -> bool:
        nearby = self.repository.find_appointments_by_doctor_and_time_range(
            doctor_id, when - CONFLICT_WINDOW, when + CONFLICT_WINDOW
        )
        return any(
            existing.id != exclude_id and existing.status != AppointmentStatus.CANCELLED for existing in nearby
        )
