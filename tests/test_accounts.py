import pytest

from clinic.core.identity import DoctorRef, PatientRef, Role
from clinic.core.outcomes import Outcome
from clinic.services.accounts import AccountService


@pytest.fixture
def accounts(repository, token_authority):
    return AccountService(repository, token_authority, bcrypt_rounds=4)


def test_login_issues_token_for_each_role(accounts, token_authority, doctor, patient, admin):
    for role, identifier, password in [
        (Role.ADMIN, "root", "adminpass"),
        (Role.DOCTOR, "alice@clinic.example.com", "doctorpass"),
        (Role.PATIENT, "paula@example.com", "patientpass"),
    ]:
        result = accounts.login(role, identifier, password)
        assert result.ok
        assert token_authority.verify(result.value) == identifier


def test_login_with_wrong_password(accounts, patient):
    assert accounts.login(Role.PATIENT, patient.email, "nope").outcome is Outcome.INVALID_CREDENTIALS


def test_login_against_wrong_role(accounts, patient):
    assert accounts.login(Role.DOCTOR, patient.email, "patientpass").outcome is Outcome.INVALID_CREDENTIALS


def test_whoami(accounts, token_authority, doctor, patient):
    assert accounts.whoami(token_authority.issue(doctor.email)) == DoctorRef(doctor.id, doctor.email)
    assert accounts.whoami(token_authority.issue(patient.email)) == PatientRef(patient.id, patient.email)
    assert accounts.whoami("garbage") is None


def test_register_patient(accounts, token_authority):
    result = accounts.register_patient("New Patient", "new@example.com", "0733333333", "3 Low Road", "secret1")

    assert result.ok
    assert result.value.id is not None
    assert result.value.hashed_password != "secret1"
    assert accounts.current_patient(token_authority.issue("new@example.com")).id == result.value.id


@pytest.mark.parametrize(
    "email, phone",
    [("paula@example.com", "0799999999"), ("fresh@example.com", "0711111111")],
)
def test_register_patient_duplicate_email_or_phone(accounts, patient, email, phone):
    result = accounts.register_patient("Someone Else", email, phone, "Nowhere", "secret1")
    assert result.outcome is Outcome.DUPLICATE


def test_add_doctor_normalizes_slots(accounts):
    result = accounts.add_doctor(
        "Carla Diaz", "carla@clinic.example.com", "secret1", "Pediatrics",
        available_times=["15:00-16:00", "08:00-09:00", "15:00-16:00"],
    )
    assert result.ok
    assert result.value.available_times == ["08:00-09:00", "15:00-16:00"]


def test_add_doctor_duplicate_email(accounts, doctor):
    assert accounts.add_doctor("Alice Twin", doctor.email, "secret1", "Cardiology").outcome is Outcome.DUPLICATE


def test_update_doctor(accounts, doctor):
    result = accounts.update_doctor(doctor.id, specialty="Neurology", password="changed1")
    assert result.ok
    assert result.value.specialty == "Neurology"
    assert accounts.login(Role.DOCTOR, doctor.email, "changed1").ok


def test_update_unknown_doctor(accounts):
    assert accounts.update_doctor(999, name="Nobody").outcome is Outcome.DOCTOR_NOT_FOUND


def test_update_doctor_to_taken_email(accounts, doctor, other_doctor):
    assert accounts.update_doctor(doctor.id, email=other_doctor.email).outcome is Outcome.DUPLICATE


def test_delete_unknown_doctor(accounts):
    assert accounts.delete_doctor(999) is Outcome.DOCTOR_NOT_FOUND


def test_filter_doctors(accounts, doctor, other_doctor):
    assert [d.id for d in accounts.filter_doctors(name="ali")] == [doctor.id]
    assert [d.id for d in accounts.filter_doctors(specialty="dermatology")] == [other_doctor.id]
    assert [d.id for d in accounts.filter_doctors(specialty="derm")] == []
    assert [d.id for d in accounts.filter_doctors(period="am")] == [doctor.id]
    assert [d.id for d in accounts.filter_doctors(period="PM")] == [other_doctor.id]
    assert [d.id for d in accounts.filter_doctors(name="  ")] == [doctor.id, other_doctor.id]


def test_filter_doctors_unknown_period(accounts):
    with pytest.raises(ValueError):
        accounts.filter_doctors(period="evening")
