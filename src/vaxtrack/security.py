from __future__ import annotations

import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional, Protocol

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.vaxtrack.config import settings
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.services.users.service import user_service

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)

# Identity-provider subject of the current caller, used by the audit logger
# to attribute events without passing the user through every call.
_current_subject: ContextVar[Optional[str]] = ContextVar("current_subject", default=None)


def get_current_subject() -> Optional[str]:
    return _current_subject.get()


class InvalidTokenError(Exception):
    pass


@dataclass
class IdentityClaims:
    subject: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class IdentityProvider(Protocol):
    def verify(self, token: str) -> IdentityClaims:
        """Validate a session token; raise InvalidTokenError if it is not acceptable."""


class JwtIdentityProvider:
    """Verifies session JWTs issued by the external identity provider.

    AUTH_JWT_KEY holds the verification key (PEM public key for RS*, shared
    secret for HS*). Issuer and audience are checked only when configured.
    """

    def __init__(
        self,
        key: Optional[str] = None,
        algorithms: Optional[str] = None,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
    ) -> None:
        self._key = key or settings.auth_jwt_key
        self._algorithms = [a.strip() for a in (algorithms or settings.auth_jwt_algorithms).split(",") if a.strip()]
        self._issuer = issuer or settings.auth_jwt_issuer
        self._audience = audience or settings.auth_jwt_audience

    def verify(self, token: str) -> IdentityClaims:
        if not self._key:
            raise InvalidTokenError("Token verification key is not configured")
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=self._algorithms,
                audience=self._audience,
                issuer=self._issuer,
                options={"verify_aud": self._audience is not None},
            )
        except JWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        subject = payload.get("sub")
        if not subject:
            raise InvalidTokenError("Token has no subject")
        return IdentityClaims(
            subject=str(subject),
            email=payload.get("email"),
            first_name=payload.get("given_name") or payload.get("first_name"),
            last_name=payload.get("family_name") or payload.get("last_name"),
        )


identity_provider: IdentityProvider = JwtIdentityProvider()


def get_identity_provider() -> IdentityProvider:
    """FastAPI dependency; tests override it with a fake provider."""

    return identity_provider


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> IdentityClaims:
    """Validate the bearer token and record the caller's subject.

    Any missing or invalid token is rejected with 401 before a route runs.
    """

    if credentials is None or not credentials.credentials:
        _current_subject.set(None)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = provider.verify(credentials.credentials)
    except InvalidTokenError:
        _current_subject.set(None)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    _current_subject.set(claims.subject)
    return claims


async def get_current_user(claims: IdentityClaims = Depends(get_identity)) -> User:
    """Resolve the local profile for the authenticated subject.

    Callers must have synced their profile through POST /auth/sync first, and
    deactivated accounts are refused.
    """

    user = user_service.get_user_by_subject(claims.subject)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User profile not found; sync the account first",
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")
    return user
