import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from clinic.core.identity import Role, lookup
from clinic.core.outcomes import Outcome
from clinic.core.security import TokenAuthority
from clinic.repository import ClinicRepository

logger = logging.getLogger(__name__)


class AuthorizationGate:
    """
    Checks that a bearer token is valid for a role before a call may proceed.

    ``authorize`` returns ``None`` when the caller passes and an ``Outcome``
    otherwise. It does not hand back the resolved entity; callers
    that need it re-extract the identifier from the token.
    """

    def __init__(self, repository: ClinicRepository, token_authority: TokenAuthority):
        self.repository = repository
        self.token_authority = token_authority

    def authorize(self, token: str, required_role: Role) -> Optional[Outcome]:
        identifier = self.token_authority.verify(token)
        if identifier is None:
            return Outcome.INVALID_TOKEN

        identifier = identifier.strip()
        if not identifier:
            return Outcome.INVALID_TOKEN

        try:
            ref = lookup(self.repository, identifier, Role(required_role))
        except SQLAlchemyError:
            logger.exception(f"Role lookup failed for {required_role}")
            return Outcome.INTERNAL_FAILURE

        if ref is None:
            logger.info(f"Token for {identifier} is not a {Role(required_role).value}")
            return Outcome.ROLE_MISMATCH
        return None
