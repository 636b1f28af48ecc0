from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic.core.identity import Role
from clinic.core.outcomes import Outcome
from clinic.core.security import TokenAuthority
from clinic.database import get_db
from clinic.repository import ClinicRepository
from clinic.services.accounts import AccountService
from clinic.services.authorization import AuthorizationGate
from clinic.services.availability import AvailabilityEngine
from clinic.services.booking import BookingCoordinator
from clinic.services.prescriptions import PrescriptionService

bearer_scheme = HTTPBearer(auto_error=False)


def raise_for_outcome(outcome: Optional[Outcome]):
    if outcome is None or outcome.ok:
        return
    headers = {"WWW-Authenticate": "Bearer"} if outcome.status_code == status.HTTP_401_UNAUTHORIZED else None
    raise HTTPException(status_code=outcome.status_code, detail=outcome.message, headers=headers)


def get_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_token_authority(request: Request) -> TokenAuthority:
    return request.app.state.token_authority


def get_repository(db: Session = Depends(get_db)) -> ClinicRepository:
    return ClinicRepository(db)


def get_gate(
    repository: ClinicRepository = Depends(get_repository),
    token_authority: TokenAuthority = Depends(get_token_authority),
) -> AuthorizationGate:
    return AuthorizationGate(repository, token_authority)


def get_availability(repository: ClinicRepository = Depends(get_repository)) -> AvailabilityEngine:
    return AvailabilityEngine(repository)


def get_booking(
    request: Request,
    repository: ClinicRepository = Depends(get_repository),
    token_authority: TokenAuthority = Depends(get_token_authority),
) -> BookingCoordinator:
    return BookingCoordinator(
        repository,
        token_authority,
        request.app.state.booking_locks,
        clock=request.app.state.clock,
    )


def get_accounts(
    request: Request,
    repository: ClinicRepository = Depends(get_repository),
    token_authority: TokenAuthority = Depends(get_token_authority),
) -> AccountService:
    return AccountService(repository, token_authority, bcrypt_rounds=request.app.state.bcrypt_rounds)


def get_prescriptions(
    repository: ClinicRepository = Depends(get_repository),
    booking: BookingCoordinator = Depends(get_booking),
) -> PrescriptionService:
    return PrescriptionService(repository, booking)


def require_role(*roles: Role):
    """Dependency that lets the request through if the bearer token is valid for any of ``roles``.

    Resolves to the raw token; handlers re-extract the identifier when they need the caller.
    """

    def dependency(token: str = Depends(get_token), gate: AuthorizationGate = Depends(get_gate)) -> str:
        failure = None
        for role in roles:
            failure = gate.authorize(token, role)
            if failure is None:
                return token
            if failure is not Outcome.ROLE_MISMATCH:
                break
        raise_for_outcome(failure)
        return token

    return dependency
