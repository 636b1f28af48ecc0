from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict

from clinic.core.identity import Role
from clinic.core.outcomes import Outcome
from clinic.dependencies import get_accounts, get_booking, raise_for_outcome, require_role
from clinic.models.user import Patient
from clinic.routers.appointments import AppointmentResponse
from clinic.services.accounts import AccountService
from clinic.services.booking import BookingCoordinator

router = APIRouter(prefix="/api/patients", tags=["patients"])


class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: str
    address: str
    created_at: Optional[datetime] = None


def get_current_patient(
    token: str = Depends(require_role(Role.PATIENT)),
    accounts: AccountService = Depends(get_accounts),
) -> Patient:
    patient = accounts.current_patient(token)
    if patient is None:
        raise_for_outcome(Outcome.INVALID_TOKEN)
    return patient


@router.get("/me", response_model=PatientResponse)
def get_me(current_patient: Patient = Depends(get_current_patient)):
    return current_patient


@router.get("/appointments/filter", response_model=List[AppointmentResponse])
def filter_my_appointments(
    condition: Optional[str] = None,
    doctor_name: Optional[str] = None,
    current_patient: Patient = Depends(get_current_patient),
    booking: BookingCoordinator = Depends(get_booking),
):
    try:
        return booking.patient_appointments(current_patient.id, condition=condition, doctor_name=doctor_name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{patient_id}/appointments", response_model=List[AppointmentResponse])
def get_patient_appointments(
    patient_id: int,
    current_patient: Patient = Depends(get_current_patient),
    booking: BookingCoordinator = Depends(get_booking),
):
    # Verify the current user is the patient
    if current_patient.id != patient_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view these appointments"
        )
    return booking.patient_appointments(patient_id)
