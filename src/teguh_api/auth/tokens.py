"""Session tokens (JWT) and password hashing."""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError
from passlib.context import CryptContext

from teguh_api.config import Settings
from teguh_api.errors.exceptions import ExpiredTokenError, InvalidTokenError
from teguh_api.storage.tables import UserRecord

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def new_session_id() -> str:
    return "sess_" + secrets.token_hex(32)


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str
    plan: str
    session_id: str | None


class TokenService:
    """Issues and verifies stateless signed session tokens."""

    def __init__(self, settings: Settings):
        self._secret = settings.jwt_secret
        self._algorithm = settings.jwt_algorithm
        self._lifetime = timedelta(days=settings.jwt_expires_days)

    def issue(self, user: UserRecord, session_id: str | None = None) -> str:
        now = datetime.now(UTC)
        claims = {
            "sub": user.id,
            "email": user.email,
            "plan": user.plan,
            "iat": now,
            "exp": now + self._lifetime,
        }
        if session_id:
            claims["sid"] = session_id
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature and expiry.

        Raises:
            ExpiredTokenError: the token is past ``exp``
            InvalidTokenError: bad signature, malformed, or missing subject
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise ExpiredTokenError() from e
        except JWTError as e:
            raise InvalidTokenError() from e

        user_id = payload.get("sub")
        if not user_id:
            raise InvalidTokenError(message="Invalid token payload")

        return TokenClaims(
            user_id=str(user_id),
            email=str(payload.get("email", "")),
            plan=str(payload.get("plan", "free")),
            session_id=payload.get("sid"),
        )
