"""API Dependencies"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from kinderledger.database import get_db  # noqa: F401
from kinderledger.core.security import decode_token, ROLES, ROLE_OWNER, TOKEN_TYPE

# Tokens are issued by the identity service
security = HTTPBearer()


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as described by the access token"""
    subject: str
    role: str

    @property
    def is_owner(self) -> bool:
        return self.role == ROLE_OWNER


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    """
    Resolve the caller from the bearer token.

    Raises:
        HTTPException: 401 if the token is invalid, not an access token, or
            lacks a subject or known role
    """
    payload = decode_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Could not validate credentials")

    if payload.get("type") != TOKEN_TYPE:
        raise _unauthorized("Invalid token type")

    subject: Optional[str] = payload.get("sub")
    role: Optional[str] = payload.get("role")
    if not subject or role not in ROLES:
        raise _unauthorized("Could not validate credentials")

    return Principal(subject=subject, role=role)


async def require_staff(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Any authenticated school member (owner or staff)"""
    return principal


async def require_owner(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Owner only: billing runs, payments and financial reports"""
    if not principal.is_owner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return principal
