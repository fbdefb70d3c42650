"""
Caller identity from bearer JWTs.

Tokens are issued by the external auth service. We only verify the signature
and read two claims: `sub` (user id) and `role` (guest or reviewer).
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from villa_booking.core.config import get_settings
from villa_booking.core.exceptions import Forbidden

bearer_scheme = HTTPBearer(auto_error=False)


class Role(str, enum.Enum):
    GUEST = "guest"
    REVIEWER = "reviewer"


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: Role = Role.GUEST

    @property
    def is_reviewer(self) -> bool:
        return self.role == Role.REVIEWER


def create_access_token(
    subject: str,
    role: Role = Role.GUEST,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mint a token. Used by tooling and tests; production tokens come from auth."""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {"sub": str(subject), "role": Role(role).value, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Caller:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        role = Role(payload.get("role", Role.GUEST.value))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown role in token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Caller(user_id=str(subject), role=role)


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Caller:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_access_token(credentials.credentials)


async def require_reviewer(caller: Caller = Depends(get_current_caller)) -> Caller:
    if not caller.is_reviewer:
        raise Forbidden("Reviewer role required")
    return caller
