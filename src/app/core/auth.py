"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
Bearer tokens are validated with decode_token from security.py and turned
into a CurrentUser carrying the tenant (school_id) used to scope every
admissions operation.

SECURITY NOTE:
- Development mode auth bypass is ONLY enabled when PYTHON_ENV=development
- Production environments MUST set PYTHON_ENV=production to disable test tokens
"""

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.security import decode_token

logger = logging.getLogger(__name__)

security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)

# Roles allowed to operate the admissions workflow
ADMISSIONS_STAFF_ROLES = {"school_admin", "principal", "admissions_officer"}


@dataclass
class CurrentUser:
    """
    Authenticated school staff member, populated from JWT claims.

    Attributes:
        id: User's unique identifier
        school_id: Tenant the user belongs to (None for platform users)
        role: User's role
        email: User's email address
    """

    id: UUID
    school_id: UUID | None
    role: str
    email: str = ""

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, school_id={self.school_id}, role={self.role})"


def _is_dev_mode_safe() -> bool:
    """Development bypass requires development settings and no production env var."""
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_USER = CurrentUser(
    id=UUID("00000000-0000-0000-0000-000000000001"),
    school_id=UUID("00000000-0000-0000-0000-00000000a001"),
    role="school_admin",
    email="admissions@eksms.dev",
)


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> CurrentUser:
    """
    Validate a JWT and extract the user claims.

    Raises:
        HTTPException 401: If the token is invalid, expired or missing claims
    """
    if _DEVELOPMENT_MODE and token in ("dev-token", "test-token"):
        logger.debug("Development mode: Using test token")
        return _DEV_USER

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        school_id_str = payload.get("school_id")
        return CurrentUser(
            id=UUID(user_id_str),
            school_id=UUID(school_id_str) if school_id_str else None,
            role=payload.get("role", ""),
            email=payload.get("email", ""),
        )
    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """FastAPI dependency returning the authenticated user."""
    return await _validate_jwt_token(credentials.credentials)


async def get_admissions_staff(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    FastAPI dependency for admissions endpoints.

    Requires a staff role and a school (tenant) claim.

    Raises:
        HTTPException 403: If the user is not admissions staff of a school
    """
    if user.role not in ADMISSIONS_STAFF_ROLES:
        logger.warning(f"Access denied: User {user.id} has role '{user.role}'")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMISSIONS_ACCESS_REQUIRED",
                "message": "Admissions staff access is required for this endpoint.",
            },
        )

    if user.school_id is None:
        logger.warning(f"Access denied: User {user.id} has no school")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "SCHOOL_REQUIRED",
                "message": "This endpoint requires a school-scoped account.",
            },
        )

    return user


__all__ = [
    "ADMISSIONS_STAFF_ROLES",
    "CurrentUser",
    "get_admissions_staff",
    "get_current_user",
]
