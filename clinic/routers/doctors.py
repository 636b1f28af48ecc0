from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from clinic.core.identity import Role
from clinic.dependencies import get_accounts, get_availability, get_repository, raise_for_outcome, require_role
from clinic.repository import ClinicRepository
from clinic.services.accounts import AccountService
from clinic.services.availability import AvailabilityEngine, normalize_slots

router = APIRouter(prefix="/api/doctors", tags=["doctors"])


class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    specialty: str
    phone: Optional[str] = None
    available_times: List[str]


class DoctorCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    specialty: str = Field(..., min_length=3, max_length=50)
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
    available_times: List[str] = []

    @field_validator("available_times")
    @classmethod
    def check_slots(cls, value):
        return normalize_slots(value)


class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    specialty: Optional[str] = Field(None, min_length=3, max_length=50)
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
    available_times: Optional[List[str]] = None

    @field_validator("available_times")
    @classmethod
    def check_slots(cls, value):
        return None if value is None else normalize_slots(value)


@router.get("", response_model=List[DoctorResponse])
def list_doctors(repository: ClinicRepository = Depends(get_repository)):
    return repository.list_doctors()


@router.get("/filter", response_model=List[DoctorResponse])
def filter_doctors(
    name: Optional[str] = None,
    specialty: Optional[str] = None,
    period: Optional[str] = Query(None, description="AM or PM"),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        return accounts.filter_doctors(name=name, specialty=specialty, period=period)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.get("/{doctor_id}", response_model=DoctorResponse)
def get_doctor(doctor_id: int, repository: ClinicRepository = Depends(get_repository)):
    doctor = repository.find_doctor_by_id(doctor_id)
    if not doctor:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Doctor not found",
        )
    return doctor


@router.get("/{doctor_id}/availability", response_model=List[str])
def doctor_availability(
    doctor_id: int,
    day: date = Query(..., alias="date"),
    engine: AvailabilityEngine = Depends(get_availability),
):
    """
    Returns the doctor's free slots ("HH:MM-HH:MM") on a date, earliest first.
    Unknown doctors get an empty list.
    """
    return engine.availability(doctor_id, day)


@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
def add_doctor(
    doctor_data: DoctorCreate,
    _token: str = Depends(require_role(Role.ADMIN)),
    accounts: AccountService = Depends(get_accounts),
):
    result = accounts.add_doctor(**doctor_data.model_dump())
    if result.outcome.status_code == status.HTTP_409_CONFLICT:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Doctor with this email already exists",
        )
    raise_for_outcome(result.outcome)
    return result.value


@router.put("/{doctor_id}", response_model=DoctorResponse)
def update_doctor(
    doctor_id: int,
    doctor_data: DoctorUpdate,
    _token: str = Depends(require_role(Role.ADMIN)),
    accounts: AccountService = Depends(get_accounts),
):
    result = accounts.update_doctor(doctor_id, **doctor_data.model_dump(exclude_unset=True))
    raise_for_outcome(result.outcome)
    return result.value


@router.delete("/{doctor_id}")
def delete_doctor(
    doctor_id: int,
    _token: str = Depends(require_role(Role.ADMIN)),
    accounts: AccountService = Depends(get_accounts),
):
    raise_for_outcome(accounts.delete_doctor(doctor_id))
    return {"message": "Doctor deleted successfully"}
