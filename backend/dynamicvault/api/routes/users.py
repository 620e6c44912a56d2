"""User Routes — own profile and API keys, admin role/status management, wallet history.

Invariants:
    - Profile endpoints act on the caller's wallet only
    - API keys: admin or oracle; raw key returned once at creation
    - Path wallet addresses are validated and lowercased before use
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.api import serializers
from dynamicvault.api.dependencies import (
    get_current_user, parse_date_param, require_roles,
)
from dynamicvault.core.access_rules import total_pages
from dynamicvault.core.domain_types import Role, WALLET_ADDRESS_PATTERN
from dynamicvault.infrastructure.database import get_db
from dynamicvault.schemas.user import (
    ApiKeyCreate, ProfileUpdate, RolesUpdate, StatusUpdate,
)
from dynamicvault.services.auth_service import AuthContext
from dynamicvault.services.transaction_service import TransactionService
from dynamicvault.services.user_service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])

WalletPath = Annotated[str, Path(pattern=WALLET_ADDRESS_PATTERN)]


# ─── Profile ─────────────────────────────────────────────────────

@router.get("/profile")
async def get_profile(
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await UserService(db).get_by_wallet_or_404(user.wallet_address)
    return {"user": serializers.user_profile(record)}


async def _update_profile(
    body: ProfileUpdate, user: AuthContext, db: AsyncSession,
) -> dict:
    record = await UserService(db).update_profile(user.wallet_address, body)
    return {
        "message": "Profile updated successfully",
        "user": serializers.user_profile(record),
    }


@router.put("/profile")
async def replace_profile(
    body: ProfileUpdate,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _update_profile(body, user, db)


@router.patch("/profile")
async def patch_profile(
    body: ProfileUpdate,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _update_profile(body, user, db)


# ─── API keys ────────────────────────────────────────────────────

_key_managers = require_roles(Role.ADMIN, Role.ORACLE)


@router.get("/api-keys")
async def list_api_keys(
    user: AuthContext = Depends(_key_managers),
    db: AsyncSession = Depends(get_db),
):
    record = await UserService(db).get_by_wallet_or_404(user.wallet_address)
    return {"apiKeys": [serializers.api_key(k) for k in record.api_keys or []]}


@router.post("/api-keys", status_code=status.HTTP_201_CREATED)
async def create_api_key(
    body: ApiKeyCreate,
    user: AuthContext = Depends(_key_managers),
    db: AsyncSession = Depends(get_db),
):
    raw_key, entry = await UserService(db).create_api_key(
        user.wallet_address, body.key_name, body.permissions, body.expires_in_days,
    )
    return {
        "message": "API key created. Store it now; it will not be shown again.",
        "apiKey": {**serializers.api_key(entry), "key": raw_key},
    }


@router.delete("/api-keys/{key_name}")
async def revoke_api_key(
    key_name: str,
    user: AuthContext = Depends(_key_managers),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).revoke_api_key(user.wallet_address, key_name)
    return {"message": f"API key '{key_name}' revoked"}


# ─── Admin ───────────────────────────────────────────────────────

@router.put("/{wallet_address}/roles")
async def update_roles(
    body: RolesUpdate,
    wallet_address: WalletPath,
    admin: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    record = await UserService(db).update_roles(wallet_address.lower(), body.roles)
    return {
        "message": "User roles updated",
        "user": serializers.user_profile(record),
    }


@router.put("/{wallet_address}/status")
async def update_status(
    body: StatusUpdate,
    wallet_address: WalletPath,
    admin: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    record = await UserService(db).update_status(wallet_address.lower(), body.status)
    return {
        "message": "User status updated",
        "user": serializers.user_profile(record),
    }


# ─── Wallet history ──────────────────────────────────────────────

@router.get("/{wallet_address}/transactions")
async def wallet_transactions(
    wallet_address: WalletPath,
    limit: int = Query(20, ge=1, le=100),
    page: int = Query(1, ge=1),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    """Transactions where the wallet is the buyer or the seller."""
    wallet = wallet_address.lower()
    rows, total = await TransactionService(db).list_for_wallet(
        wallet,
        page=page,
        limit=limit,
        start=parse_date_param(start_date, "startDate"),
        end=parse_date_param(end_date, "endDate"),
    )
    return {
        "transactions": [serializers.wallet_transaction(tx, wallet) for tx in rows],
        "pagination": serializers.pagination(total, page, total_pages(total, limit)),
    }
