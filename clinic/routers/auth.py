from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field

from clinic.core.identity import Role
from clinic.dependencies import get_accounts, get_token, raise_for_outcome
from clinic.services.accounts import AccountService

router = APIRouter(prefix="/api/auth", tags=["authentication"])


class Login(BaseModel):
    # Username for admins, email for doctors and patients
    identifier: str
    password: str


class PatientCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., pattern=r"^[0-9]{10}$")
    address: str = Field(..., max_length=255)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role


class Identity(BaseModel):
    role: Role
    id: int
    identifier: str


def _login(accounts: AccountService, role: Role, credentials: Login) -> Token:
    result = accounts.login(role, credentials.identifier, credentials.password)
    raise_for_outcome(result.outcome)
    return Token(access_token=result.value, role=role)


@router.post("/admin/login", response_model=Token)
def admin_login(credentials: Login, accounts: AccountService = Depends(get_accounts)):
    return _login(accounts, Role.ADMIN, credentials)


@router.post("/doctor/login", response_model=Token)
def doctor_login(credentials: Login, accounts: AccountService = Depends(get_accounts)):
    return _login(accounts, Role.DOCTOR, credentials)


@router.post("/patient/login", response_model=Token)
def patient_login(credentials: Login, accounts: AccountService = Depends(get_accounts)):
    return _login(accounts, Role.PATIENT, credentials)


@router.post("/patient/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register_patient(patient_data: PatientCreate, accounts: AccountService = Depends(get_accounts)):
    result = accounts.register_patient(
        name=patient_data.name,
        email=patient_data.email,
        phone=patient_data.phone,
        address=patient_data.address,
        password=patient_data.password,
    )
    if result.outcome.status_code == status.HTTP_409_CONFLICT:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Patient with this email or phone already exists",
        )
    raise_for_outcome(result.outcome)

    access_token = accounts.token_authority.issue(result.value.email)
    return Token(access_token=access_token, role=Role.PATIENT)


@router.get("/whoami", response_model=Identity)
def whoami(token: str = Depends(get_token), accounts: AccountService = Depends(get_accounts)):
    ref = accounts.whoami(token)
    if ref is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Identity(role=ref.role, id=ref.id, identifier=ref.identifier)
