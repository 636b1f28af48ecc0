from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from clinic.core.identity import Role
from clinic.core.outcomes import Outcome
from clinic.core.security import TokenAuthority
from clinic.dependencies import (
    get_booking,
    get_repository,
    get_token,
    get_token_authority,
    raise_for_outcome,
    require_role,
)
from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.repository import ClinicRepository
from clinic.services.booking import BookingCoordinator
from clinic.services.documents import appointment_qr_png

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


class AppointmentCreate(BaseModel):
    doctor_id: int
    appointment_time: datetime
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentUpdate(BaseModel):
    appointment_time: datetime
    status: AppointmentStatus
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    doctor_name: str
    patient_id: int
    patient_name: str
    patient_email: str
    patient_phone: str
    patient_address: str
    appointment_time: datetime
    end_time: datetime
    slot: str
    status: AppointmentStatus
    reason: Optional[str] = None


def get_owned_appointment(
    appointment_id: int,
    token: str = Depends(get_token),
    token_authority: TokenAuthority = Depends(get_token_authority),
    repository: ClinicRepository = Depends(get_repository),
) -> Appointment:
    identifier = token_authority.verify(token)
    if identifier is None:
        raise_for_outcome(Outcome.INVALID_TOKEN)

    appointment = repository.find_appointment_by_id(appointment_id)
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found"
        )

    # Verify the caller is either the doctor or the patient
    if not BookingCoordinator.is_owner(appointment, identifier):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this appointment"
        )
    return appointment


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    appointment: AppointmentCreate,
    token: str = Depends(require_role(Role.PATIENT)),
    booking: BookingCoordinator = Depends(get_booking),
):
    result = booking.book(appointment.doctor_id, appointment.appointment_time, appointment.reason, token)
    raise_for_outcome(result.outcome)
    return result.value


@router.get("/doctor/{day}", response_model=List[AppointmentResponse])
def get_doctor_day(
    day: date,
    patient_name: Optional[str] = None,
    token: str = Depends(require_role(Role.DOCTOR)),
    token_authority: TokenAuthority = Depends(get_token_authority),
    repository: ClinicRepository = Depends(get_repository),
    booking: BookingCoordinator = Depends(get_booking),
):
    doctor = repository.find_doctor_by_email(token_authority.verify(token))
    if doctor is None:
        raise_for_outcome(Outcome.INVALID_TOKEN)
    return booking.doctor_day_schedule(doctor.id, day, patient_name=patient_name)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(appointment: Appointment = Depends(get_owned_appointment)):
    return appointment


@router.put("/{appointment_id}", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    update: AppointmentUpdate,
    token: str = Depends(require_role(Role.PATIENT, Role.DOCTOR)),
    booking: BookingCoordinator = Depends(get_booking),
):
    result = booking.reschedule(appointment_id, update.appointment_time, update.status, update.reason, token)
    raise_for_outcome(result.outcome)
    return result.value


@router.delete("/{appointment_id}")
def cancel_appointment(
    appointment_id: int,
    token: str = Depends(require_role(Role.PATIENT, Role.DOCTOR)),
    booking: BookingCoordinator = Depends(get_booking),
):
    raise_for_outcome(booking.cancel(appointment_id, token))
    return {"message": "Appointment cancelled successfully"}


@router.get("/{appointment_id}/qr-code")
def get_appointment_qr_code(appointment: Appointment = Depends(get_owned_appointment)):
    return Response(content=appointment_qr_png(appointment), media_type="image/png")
