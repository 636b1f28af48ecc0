import pytest

from clinic.core.identity import AdminRef, DoctorRef, PatientRef, Role, lookup, resolve_any


def test_lookup_is_role_aware(repository, doctor, patient, admin):
    assert lookup(repository, doctor.email, Role.DOCTOR) == DoctorRef(doctor.id, doctor.email)
    assert lookup(repository, patient.email, Role.PATIENT) == PatientRef(patient.id, patient.email)
    assert lookup(repository, admin.username, Role.ADMIN) == AdminRef(admin.id, admin.username)

    assert lookup(repository, doctor.email, Role.PATIENT) is None
    assert lookup(repository, patient.email, Role.ADMIN) is None


def test_lookup_unknown_role(repository):
    with pytest.raises(ValueError):
        lookup(repository, "someone", "nurse")


def test_refs_expose_role_and_identifier(repository, doctor, admin):
    ref = lookup(repository, admin.username, Role.ADMIN)
    assert ref.role is Role.ADMIN
    assert ref.identifier == "root"

    ref = lookup(repository, doctor.email, Role.DOCTOR)
    assert ref.role is Role.DOCTOR
    assert ref.identifier == "alice@clinic.example.com"


def test_resolve_any(repository, doctor, patient, admin):
    assert isinstance(resolve_any(repository, patient.email), PatientRef)
    assert isinstance(resolve_any(repository, doctor.email), DoctorRef)
    assert isinstance(resolve_any(repository, admin.username), AdminRef)
    assert resolve_any(repository, "nobody@example.com") is None
