from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from ..config import settings
from .exceptions import ForbiddenException, UnauthorizedException

bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLES = {"admin", "super_admin", "staff"}


class SessionUser(BaseModel):
    """The signed-in dashboard user, as carried by the session token."""
    id: str
    email: str = ""
    role: str = "admin"
    access_token: str


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=12))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, token_type: str = "access") -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise UnauthorizedException("Could not validate credentials")

    if payload.get("type", "access") != token_type:
        raise UnauthorizedException("Invalid token type")
    if not payload.get("sub"):
        raise UnauthorizedException("Invalid token payload")
    return payload


def get_optional_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[SessionUser]:
    """Resolve the session if a bearer token was sent; None otherwise."""
    if credentials is None:
        return None
    payload = verify_token(credentials.credentials)
    return SessionUser(
        id=str(payload["sub"]),
        email=payload.get("email", ""),
        role=payload.get("role", "admin"),
        access_token=credentials.credentials,
    )


def get_current_session(session: Optional[SessionUser] = Depends(get_optional_session)) -> SessionUser:
    if session is None:
        raise UnauthorizedException("Unauthorized")
    if session.role.lower() not in ADMIN_ROLES:
        raise ForbiddenException("Admin access required")
    return session
