import re
from datetime import date, datetime, time
from typing import Iterable, List, Tuple

from clinic.models.appointment import APPOINTMENT_DURATION, AppointmentStatus
from clinic.repository import ClinicRepository

SLOT_PATTERN = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d-(?:[01]\d|2[0-3]):[0-5]\d$")


def parse_slot(slot: str) -> Tuple[time, time]:
    """Parse a zero-padded "HH:MM-HH:MM" window. Raises ValueError when malformed."""
    if not isinstance(slot, str) or not SLOT_PATTERN.match(slot):
        raise ValueError(f"Invalid time slot {slot!r}, expected HH:MM-HH:MM")
    start_str, end_str = slot.split("-")
    start = datetime.strptime(start_str, "%H:%M").time()
    end = datetime.strptime(end_str, "%H:%M").time()
    if start >= end:
        raise ValueError(f"Invalid time slot {slot!r}, start must be before end")
    return start, end


def slot_label(start: datetime) -> str:
    """The slot string an appointment starting at ``start`` occupies."""
    return f"{start:%H:%M}-{start + APPOINTMENT_DURATION:%H:%M}"


def is_morning_slot(slot: str) -> bool:
    start, _ = parse_slot(slot)
    return start < time(12, 0)


def normalize_slots(slots: Iterable[str]) -> List[str]:
    """Validate, de-duplicate and order a doctor's slot set."""
    unique = set()
    for slot in slots:
        parse_slot(slot)
        unique.add(slot)
    return sorted(unique)


class AvailabilityEngine:
    def __init__(self, repository: ClinicRepository):
        self.repository = repository

    def availability(self, doctor_id: int, day: date) -> List[str]:
        """
        Free slots of a doctor on ``day``, in chronological order.

        An unknown doctor yields an empty list. A slot is occupied when a
        non-cancelled appointment that day starts exactly at the slot's start
        (string equality of the slot label, not range overlap).

        Read-only: a ``SQLAlchemyError`` propagates to the application's
        database error handler and becomes a 500. An empty list always means
        "no free slots", never "lookup failed".
        """
        doctor = self.repository.find_doctor_by_id(doctor_id)
        if doctor is None:
            return []

        start_of_day = datetime.combine(day, time.min)
        end_of_day = datetime.combine(day, time.max)
        booked = self.repository.find_appointments_by_doctor_and_time_range(doctor_id, start_of_day, end_of_day)

        occupied = {
            slot_label(appointment.appointment_time)
            for appointment in booked
            if appointment.status != AppointmentStatus.CANCELLED
        }
        return sorted({slot for slot in (doctor.available_times or []) if slot not in occupied})
