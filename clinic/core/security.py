import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import bcrypt
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL = timedelta(days=7)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def get_password_hash(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenAuthority:
    """
    Issues and verifies signed bearer tokens bound to an identifier.

    The identifier is the email for doctors and patients and the username for
    admins. Tokens carry no role; role checks happen against the repositories.

    Args:
        secret_key: HMAC key used to sign tokens
        ttl: lifetime of an issued token
        clock: returns the current aware UTC time, used for issuing and expiry checks
    """

    def __init__(
        self,
        secret_key: str,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._ttl = ttl
        self._clock = clock

    def issue(self, identifier: str) -> str:
        now = self._clock()
        claims = {
            "sub": identifier,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: Optional[str]) -> Optional[str]:
        """Return the bound identifier, or None if the token is malformed, forged or expired."""
        if not token or not isinstance(token, str):
            return None
        try:
            # Expiry is checked below against the injected clock
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as e:
            logger.debug(f"Token rejected: {type(e).__name__}")
            return None

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            return None
        if self._clock().timestamp() >= exp:
            logger.debug("Token rejected: expired")
            return None

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            return None
        return subject
