"""Logins, patient registration and admin management of doctors."""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from clinic import config
from clinic.core.identity import IdentityRef, Role, resolve_any
from clinic.core.outcomes import Outcome, Result
from clinic.core.security import TokenAuthority, get_password_hash, verify_password
from clinic.models.user import Doctor, Patient
from clinic.repository import ClinicRepository
from clinic.services.availability import is_morning_slot, normalize_slots

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(
        self,
        repository: ClinicRepository,
        token_authority: TokenAuthority,
        bcrypt_rounds: int = config.BCRYPT_ROUNDS,
    ):
        self.repository = repository
        self.token_authority = token_authority
        self.bcrypt_rounds = bcrypt_rounds

    # ------------------------------------------------------------------
    # Logins
    # ------------------------------------------------------------------

    def login(self, role: Role, identifier: str, password: str) -> Result:
        """Exchange credentials for a token. Admins log in by username, others by email."""
        role = Role(role)
        if role is Role.ADMIN:
            account = self.repository.find_admin_by_username(identifier)
        elif role is Role.DOCTOR:
            account = self.repository.find_doctor_by_email(identifier)
        else:
            account = self.repository.find_patient_by_email(identifier)

        if account is None or not verify_password(password, account.hashed_password):
            logger.warning(f"Failed {role.value} login for {identifier}")
            return Result(Outcome.INVALID_CREDENTIALS)

        return Result(Outcome.SUCCESS, self.token_authority.issue(identifier))

    def whoami(self, token: str) -> Optional[IdentityRef]:
        identifier = self.token_authority.verify(token)
        if identifier is None:
            return None
        return resolve_any(self.repository, identifier)

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    def register_patient(self, name: str, email: str, phone: str, address: str, password: str) -> Result:
        if self.repository.find_patient_by_email_or_phone(email, phone) is not None:
            return Result(Outcome.DUPLICATE)

        patient = Patient(
            name=name,
            email=email,
            phone=phone,
            address=address,
            hashed_password=get_password_hash(password, rounds=self.bcrypt_rounds),
        )
        try:
            self.repository.save_patient(patient)
        except SQLAlchemyError:
            # Also reached when a concurrent registration wins the unique constraint
            logger.exception(f"Could not register patient {email}")
            return Result(Outcome.INTERNAL_FAILURE)

        logger.info(f"Patient {patient.id} registered")
        return Result(Outcome.SUCCESS, patient)

    def current_patient(self, token: str) -> Optional[Patient]:
        identifier = self.token_authority.verify(token)
        if identifier is None:
            return None
        return self.repository.find_patient_by_email(identifier)

    # ------------------------------------------------------------------
    # Doctors
    # ------------------------------------------------------------------

    def add_doctor(
        self,
        name: str,
        email: str,
        password: str,
        specialty: str,
        phone: Optional[str] = None,
        available_times: Iterable[str] = (),
    ) -> Result:
        if self.repository.find_doctor_by_email(email) is not None:
            return Result(Outcome.DUPLICATE)

        doctor = Doctor(
            name=name,
            email=email,
            specialty=specialty,
            phone=phone,
            available_times=normalize_slots(available_times),
            hashed_password=get_password_hash(password, rounds=self.bcrypt_rounds),
        )
        try:
            self.repository.save_doctor(doctor)
        except SQLAlchemyError:
            logger.exception(f"Could not save doctor {email}")
            return Result(Outcome.INTERNAL_FAILURE)

        logger.info(f"Doctor {doctor.id} added")
        return Result(Outcome.SUCCESS, doctor)

    def update_doctor(self, doctor_id: int, **changes) -> Result:
        doctor = self.repository.find_doctor_by_id(doctor_id)
        if doctor is None:
            return Result(Outcome.DOCTOR_NOT_FOUND)

        new_email = changes.get("email")
        if new_email and new_email != doctor.email:
            if self.repository.find_doctor_by_email(new_email) is not None:
                return Result(Outcome.DUPLICATE)

        password = changes.pop("password", None)
        if password:
            doctor.hashed_password = get_password_hash(password, rounds=self.bcrypt_rounds)
        if changes.get("available_times") is not None:
            changes["available_times"] = normalize_slots(changes["available_times"])

        for key, value in changes.items():
            if value is not None:
                setattr(doctor, key, value)

        try:
            self.repository.save_doctor(doctor)
        except SQLAlchemyError:
            logger.exception(f"Could not update doctor {doctor_id}")
            return Result(Outcome.INTERNAL_FAILURE)
        return Result(Outcome.SUCCESS, doctor)

    def delete_doctor(self, doctor_id: int) -> Outcome:
        try:
            if not self.repository.delete_doctor(doctor_id):
                return Outcome.DOCTOR_NOT_FOUND
        except SQLAlchemyError:
            return Outcome.INTERNAL_FAILURE
        return Outcome.SUCCESS

    def filter_doctors(
        self,
        name: Optional[str] = None,
        specialty: Optional[str] = None,
        period: Optional[str] = None,
    ) -> List[Doctor]:
        """
        Doctors matching every given criterion.

        ``name`` is a case-insensitive partial match, ``specialty`` a
        case-insensitive exact match and ``period`` ("AM" or "PM") keeps doctors
        with at least one slot starting before / from noon.
        """
        name = name.strip() if name and name.strip() else None
        specialty = specialty.strip() if specialty and specialty.strip() else None
        doctors = self.repository.search_doctors(name=name, specialty=specialty)

        if not period or not period.strip():
            return doctors
        morning = period.strip().upper() == "AM"
        if not morning and period.strip().upper() != "PM":
            raise ValueError(f"Unknown period {period!r}, expected 'AM' or 'PM'")
        return [
            doctor
            for doctor in doctors
            if any(is_morning_slot(slot) == morning for slot in (doctor.available_times or []))
        ]
