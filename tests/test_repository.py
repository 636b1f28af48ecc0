from datetime import datetime

from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.prescription import Prescription


def _appointment(repository, doctor, patient, when, status=AppointmentStatus.PENDING):
    return repository.save_appointment(Appointment(doctor=doctor, patient=patient, appointment_time=when, status=status))


def test_lookups_return_none_when_missing(repository):
    assert repository.find_doctor_by_id(1) is None
    assert repository.find_doctor_by_email("nobody@clinic.example.com") is None
    assert repository.find_patient_by_email("nobody@example.com") is None
    assert repository.find_admin_by_username("nobody") is None
    assert repository.find_appointment_by_id(1) is None
    assert repository.find_prescription_by_id(1) is None
    assert repository.find_appointments_by_patient(1) == []


def test_find_patient_by_email_or_phone(repository, patient):
    assert repository.find_patient_by_email_or_phone(patient.email, "0000000000").id == patient.id
    assert repository.find_patient_by_email_or_phone("x@example.com", patient.phone).id == patient.id
    assert repository.find_patient_by_email_or_phone("x@example.com", "0000000000") is None


def test_time_range_is_inclusive_and_ordered(repository, doctor, patient):
    late = _appointment(repository, doctor, patient, datetime(2025, 6, 1, 11, 0))
    early = _appointment(repository, doctor, patient, datetime(2025, 6, 1, 9, 0))
    _appointment(repository, doctor, patient, datetime(2025, 6, 1, 12, 0))

    found = repository.find_appointments_by_doctor_and_time_range(
        doctor.id, datetime(2025, 6, 1, 9, 0), datetime(2025, 6, 1, 11, 0)
    )

    assert [a.id for a in found] == [early.id, late.id]


def test_update_appointment_status(repository, doctor, patient):
    appointment = _appointment(repository, doctor, patient, datetime(2025, 6, 1, 9, 0))

    assert repository.update_appointment_status(appointment.id, AppointmentStatus.CANCELLED)
    assert repository.find_appointment_by_id(appointment.id).status is AppointmentStatus.CANCELLED
    assert not repository.update_appointment_status(999, AppointmentStatus.CANCELLED)


def test_delete_appointments_by_doctor(repository, doctor, other_doctor, patient):
    mine = _appointment(repository, doctor, patient, datetime(2025, 6, 1, 9, 0))
    theirs = _appointment(repository, other_doctor, patient, datetime(2025, 6, 1, 14, 0))
    mine_id, theirs_id = mine.id, theirs.id

    assert repository.delete_appointments_by_doctor(doctor.id) == 1

    repository.db.expire_all()
    assert repository.find_appointment_by_id(mine_id) is None
    assert repository.find_appointment_by_id(theirs_id) is not None


def test_delete_doctor_cascades(repository, doctor, patient):
    appointment = _appointment(repository, doctor, patient, datetime(2025, 6, 1, 9, 0), AppointmentStatus.COMPLETED)
    prescription = repository.save_prescription(
        Prescription(
            appointment_id=appointment.id,
            doctor_id=doctor.id,
            patient_id=patient.id,
            medication="Amoxicillin",
            dosage="500mg",
        )
    )
    doctor_id, appointment_id, prescription_id = doctor.id, appointment.id, prescription.id
    # Load the collection so the bulk delete has something stale to bypass
    assert len(doctor.appointments) == 1

    assert repository.delete_doctor(doctor_id)

    repository.db.expire_all()
    assert repository.find_doctor_by_id(doctor_id) is None
    assert repository.find_appointment_by_id(appointment_id) is None
    assert repository.find_prescription_by_id(prescription_id) is None
    assert repository.find_patient_by_email(patient.email) is not None


def test_delete_unknown_doctor(repository):
    assert repository.delete_doctor(999) is False
