"""Auth Routes — wallet challenge, signature verification, refresh, logout, sessions.

Invariants:
    - Nonce and verify are public; everything else requires a bearer token
    - POST /logout ends the caller's session; DELETE /logout ends all of them
    - Session cleanup is admin-only
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.api import serializers
from dynamicvault.api.dependencies import (
    client_ip, get_current_user, require_roles,
)
from dynamicvault.config import Settings, get_settings
from dynamicvault.core.domain_types import Role, WALLET_ADDRESS_PATTERN
from dynamicvault.infrastructure.database import get_db
from dynamicvault.schemas.auth import (
    AccessTokenResponse, NonceResponse, RefreshRequest, TokenPairResponse,
    VerifyRequest,
)
from dynamicvault.services.auth_service import AuthContext, AuthService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/nonce", response_model=NonceResponse)
async def get_nonce(
    wallet_address: str = Query(..., alias="walletAddress", pattern=WALLET_ADDRESS_PATTERN),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Issue a single-use sign-in nonce for the wallet."""
    issued = await AuthService(db, settings).issue_nonce(wallet_address)
    return NonceResponse(
        wallet_address=issued.wallet_address,
        nonce=issued.nonce,
        message=issued.message,
    )


@router.post("/verify", response_model=TokenPairResponse)
async def verify(
    body: VerifyRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Verify the signed challenge and open a session."""
    tokens = await AuthService(db, settings).verify_and_login(
        body.wallet_address,
        body.signature,
        body.message,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return TokenPairResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    access_token, expires_in = await AuthService(db, settings).refresh(
        body.refresh_token,
    )
    return AccessTokenResponse(access_token=access_token, expires_in=expires_in)


@router.post("/logout")
async def logout(
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Log out of the current session."""
    await AuthService(db, settings).logout(user.session_id)
    return {"message": "Logged out successfully"}


@router.delete("/logout")
async def logout_all(
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Log out of every session for this wallet."""
    count = await AuthService(db, settings).logout_all(user.wallet_address)
    return {"message": "Logged out from all devices", "sessionsEnded": count}


@router.get("/sessions")
async def list_sessions(
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    sessions = await AuthService(db, settings).list_active_sessions(
        user.wallet_address,
    )
    return {
        "sessions": [
            serializers.auth_session(s, user.session_id) for s in sessions
        ],
    }


@router.post("/sessions/cleanup")
async def cleanup_sessions(
    user: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Delete expired and invalidated sessions."""
    removed = await AuthService(db, settings).cleanup_sessions()
    return {"message": "Session cleanup complete", "deleted": removed}
