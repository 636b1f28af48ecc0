"""Caller identities resolved from a token identifier."""

import enum
from dataclasses import dataclass
from typing import Optional, Union

from clinic.repository import ClinicRepository


class Role(str, enum.Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"


@dataclass(frozen=True)
class AdminRef:
    id: int
    username: str

    role = Role.ADMIN

    @property
    def identifier(self) -> str:
        return self.username


@dataclass(frozen=True)
class DoctorRef:
    id: int
    email: str

    role = Role.DOCTOR

    @property
    def identifier(self) -> str:
        return self.email


@dataclass(frozen=True)
class PatientRef:
    id: int
    email: str

    role = Role.PATIENT

    @property
    def identifier(self) -> str:
        return self.email


IdentityRef = Union[AdminRef, DoctorRef, PatientRef]


def lookup(repository: ClinicRepository, identifier: str, role: Role) -> Optional[IdentityRef]:
    """Resolve an identifier against the one repository matching ``role``."""
    if role is Role.ADMIN:
        admin = repository.find_admin_by_username(identifier)
        return AdminRef(admin.id, admin.username) if admin else None
    if role is Role.DOCTOR:
        doctor = repository.find_doctor_by_email(identifier)
        return DoctorRef(doctor.id, doctor.email) if doctor else None
    if role is Role.PATIENT:
        patient = repository.find_patient_by_email(identifier)
        return PatientRef(patient.id, patient.email) if patient else None
    raise ValueError(f"Unknown role: {role!r}")


def resolve_any(repository: ClinicRepository, identifier: str) -> Optional[IdentityRef]:
    """Probe patient, doctor then admin. Only for callers that genuinely don't know the role."""
    for role in (Role.PATIENT, Role.DOCTOR, Role.ADMIN):
        ref = lookup(repository, identifier, role)
        if ref is not None:
            return ref
    return None
