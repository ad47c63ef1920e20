import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from config import Settings
from errors import ExpiredToken, Forbidden, InvalidToken, MissingToken, TokenError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

bearer_scheme = HTTPBearer(auto_error=False)


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


def build_password_context(rounds: int = 12) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


class Identity(BaseModel):
    user_id: str
    email: str


class SessionIssuer:
    """Signs and verifies stateless session tokens (JWT).

    Validity is purely a function of signature and expiry; nothing is stored
    server side, so there is no revocation.
    """

    def __init__(self, settings: Settings, clock: Clock = utc_clock):
        self.secret_key = settings.secret_key
        self.algorithm = settings.jwt_algorithm
        self.lifetime = timedelta(days=settings.token_expire_days)
        self.clock = clock

    def issue(self, user_id: str, email: str) -> str:
        issued_at = self.clock()
        to_encode = {
            "id": str(user_id),
            "email": email,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.lifetime).timestamp()),
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        try:
            # expiry is checked against our own clock below
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise InvalidToken(str(e)) from e

        user_id, email, exp = payload.get("id"), payload.get("email"), payload.get("exp")
        if not user_id or not email or not isinstance(exp, (int, float)):
            raise InvalidToken("Token is missing required claims")
        if self.clock().timestamp() >= exp:
            raise ExpiredToken("Signature has expired")
        return Identity(user_id=user_id, email=email)


class AccessGuard:
    """FastAPI dependency protecting routes with `Authorization: Bearer <token>`."""

    def __init__(self, issuer: SessionIssuer):
        self.issuer = issuer

    def __call__(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> Identity:
        if credentials is None or not credentials.credentials:
            raise MissingToken()
        try:
            identity = self.issuer.verify(credentials.credentials)
        except TokenError as e:
            logger.info("Rejected token on %s: %s", request.url.path, e)
            raise Forbidden() from e
        request.state.identity = identity
        return identity
