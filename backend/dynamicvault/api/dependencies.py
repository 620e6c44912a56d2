"""Request Dependencies — bearer authentication, role guards, and request helpers.

Invariants:
    - get_current_user raises 401 for a missing/invalid/revoked token, 403 for a
      suspended user (AuthService.authenticate)
    - require_roles passes when the caller holds ANY of the listed roles
    - Parsed query dates are timezone-aware UTC; unparseable dates are a 400

Design Decisions:
    - HTTPBearer(auto_error=False): missing credentials surface as our own
      AuthenticationError envelope instead of FastAPI's default 403
"""

from collections.abc import Callable, Coroutine
from datetime import datetime
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.config import Settings, get_settings
from dynamicvault.core.access_rules import has_any_role
from dynamicvault.core.clock import parse_iso_datetime
from dynamicvault.core.domain_types import Role
from dynamicvault.core.errors import (
    AuthenticationError, ErrorContext, InvalidInputError, PermissionDeniedError,
)
from dynamicvault.infrastructure.database import get_db
from dynamicvault.services.auth_service import AuthContext, AuthService

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token", "MISSING_TOKEN")
    return await AuthService(db, settings).authenticate(credentials.credentials)


def require_roles(
    *roles: Role,
) -> Callable[..., Coroutine[Any, Any, AuthContext]]:
    """Dependency factory: caller must hold at least one of `roles`."""

    async def _guard(user: AuthContext = Depends(get_current_user)) -> AuthContext:
        if not has_any_role(user.roles, roles):
            raise PermissionDeniedError(
                "Insufficient permissions",
                ErrorContext(wallet_address=user.wallet_address),
            )
        return user

    return _guard


def client_ip(request: Request) -> str | None:
    """First x-forwarded-for hop, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def parse_date_param(value: str | None, field: str) -> datetime | None:
    if value is None:
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise InvalidInputError(f"Invalid {field} format", field)

