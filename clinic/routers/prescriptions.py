from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from clinic.core.identity import Role
from clinic.dependencies import get_prescriptions, raise_for_outcome, require_role
from clinic.services.documents import prescription_pdf
from clinic.services.prescriptions import PrescriptionService

router = APIRouter(prefix="/api/prescriptions", tags=["prescriptions"])


class PrescriptionCreate(BaseModel):
    appointment_id: int
    medication: str = Field(..., min_length=3, max_length=100)
    dosage: str = Field(..., min_length=1, max_length=100)
    doctor_notes: Optional[str] = Field(None, max_length=200)


class PrescriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: int
    doctor_id: int
    patient_id: int
    medication: str
    dosage: str
    doctor_notes: Optional[str] = None
    created_at: Optional[datetime] = None


@router.post("", response_model=PrescriptionResponse, status_code=status.HTTP_201_CREATED)
def create_prescription(
    prescription: PrescriptionCreate,
    token: str = Depends(require_role(Role.DOCTOR)),
    prescriptions: PrescriptionService = Depends(get_prescriptions),
):
    result = prescriptions.record(
        prescription.appointment_id,
        prescription.medication,
        prescription.dosage,
        prescription.doctor_notes,
        token,
    )
    raise_for_outcome(result.outcome)
    return result.value


@router.get("/appointment/{appointment_id}", response_model=PrescriptionResponse)
def get_prescription_by_appointment(
    appointment_id: int,
    _token: str = Depends(require_role(Role.DOCTOR)),
    prescriptions: PrescriptionService = Depends(get_prescriptions),
):
    result = prescriptions.for_appointment(appointment_id)
    raise_for_outcome(result.outcome)
    return result.value


@router.get("/{prescription_id}/pdf")
def get_prescription_pdf(
    prescription_id: int,
    _token: str = Depends(require_role(Role.DOCTOR)),
    prescriptions: PrescriptionService = Depends(get_prescriptions),
):
    result = prescriptions.by_id(prescription_id)
    raise_for_outcome(result.outcome)
    return Response(
        content=prescription_pdf(result.value),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="prescription_{prescription_id}.pdf"'},
    )
