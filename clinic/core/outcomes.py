"""Discrete results returned by the scheduling services.

Services never raise for expected domain conditions. They return an ``Outcome``
(or a ``Result`` carrying one) and the HTTP layer maps it to a response.
"""

import enum
from dataclasses import dataclass
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    INVALID = "invalid"
    INTERNAL_FAILURE = "internal_failure"


_STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INVALID: 400,
    ErrorKind.INTERNAL_FAILURE: 500,
}


class Outcome(str, enum.Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    DOCTOR_NOT_FOUND = "doctor_not_found"
    PATIENT_NOT_FOUND = "patient_not_found"
    PRESCRIPTION_NOT_FOUND = "prescription_not_found"
    SLOT_CONFLICT = "slot_conflict"
    DUPLICATE = "duplicate"
    INVALID_TOKEN = "invalid_token"
    INVALID_CREDENTIALS = "invalid_credentials"
    FORBIDDEN = "forbidden"
    ROLE_MISMATCH = "role_mismatch"
    INVALID_TIME = "invalid_time"
    INVALID_STATUS = "invalid_status"
    INTERNAL_FAILURE = "internal_failure"

    @property
    def ok(self) -> bool:
        return self is Outcome.SUCCESS

    @property
    def kind(self) -> Optional[ErrorKind]:
        return _KINDS.get(self)

    @property
    def status_code(self) -> int:
        if self.ok:
            return 200
        return _STATUS_CODES[self.kind]

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_KINDS = {
    Outcome.NOT_FOUND: ErrorKind.NOT_FOUND,
    Outcome.DOCTOR_NOT_FOUND: ErrorKind.NOT_FOUND,
    Outcome.PATIENT_NOT_FOUND: ErrorKind.NOT_FOUND,
    Outcome.PRESCRIPTION_NOT_FOUND: ErrorKind.NOT_FOUND,
    Outcome.SLOT_CONFLICT: ErrorKind.CONFLICT,
    Outcome.DUPLICATE: ErrorKind.CONFLICT,
    Outcome.INVALID_TOKEN: ErrorKind.UNAUTHORIZED,
    Outcome.INVALID_CREDENTIALS: ErrorKind.UNAUTHORIZED,
    Outcome.FORBIDDEN: ErrorKind.FORBIDDEN,
    Outcome.ROLE_MISMATCH: ErrorKind.FORBIDDEN,
    Outcome.INVALID_TIME: ErrorKind.INVALID,
    Outcome.INVALID_STATUS: ErrorKind.INVALID,
    Outcome.INTERNAL_FAILURE: ErrorKind.INTERNAL_FAILURE,
}

_MESSAGES = {
    Outcome.SUCCESS: "OK",
    Outcome.NOT_FOUND: "Appointment not found",
    Outcome.DOCTOR_NOT_FOUND: "Doctor not found",
    Outcome.PATIENT_NOT_FOUND: "Patient not found",
    Outcome.PRESCRIPTION_NOT_FOUND: "No prescription found for this appointment",
    Outcome.SLOT_CONFLICT: "Time slot is not available",
    Outcome.DUPLICATE: "Record already exists",
    Outcome.INVALID_TOKEN: "Invalid or expired token",
    Outcome.INVALID_CREDENTIALS: "Incorrect identifier or password",
    Outcome.FORBIDDEN: "Not authorized to modify this appointment",
    Outcome.ROLE_MISMATCH: "Token is not valid for this role",
    Outcome.INVALID_TIME: "Appointment time must be in the future",
    Outcome.INVALID_STATUS: "Unknown appointment status",
    Outcome.INTERNAL_FAILURE: "Internal server error",
}


@dataclass
class Result:
    outcome: Outcome
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome.ok
