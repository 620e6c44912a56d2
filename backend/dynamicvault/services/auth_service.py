"""AuthService — wallet challenge/response sign-in and refresh-token sessions.

Invariants:
    - A nonce is accepted at most once: it is rotated by an UPDATE guarded on
      the nonce that was checked, so concurrent verifies of one signature
      open exactly one session
    - verify fails (401) unless the EIP-191 signer equals the wallet AND the
      signed message embeds the wallet's current, unexpired nonce
    - Only sha256(refresh_token) is stored; lookups hash the presented token
    - An access token is honored only while its session row is valid and unexpired
    - Suspended users are refused (403) even with a well-formed token

Design Decisions:
    - Session id travels in the access token (sessionId claim): logout and the
      "current session" marker key off it rather than the user id
    - Nonce issuance returns a suggested message; any message containing the
      nonce is accepted so existing wallet UIs keep working
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.config import Settings
from dynamicvault.core.clock import ensure_utc, utcnow
from dynamicvault.core.domain_types import UserStatus
from dynamicvault.core.errors import (
    AuthenticationError, ErrorContext, PermissionDeniedError,
)
from dynamicvault.core.tokens import (
    AccessTokenClaims, decode_access_token, generate_nonce,
    generate_refresh_token, hash_secret, issue_access_token,
)
from dynamicvault.core.wallet_signature import (
    build_sign_in_message, message_contains_nonce, verify_signature,
)
from dynamicvault.models.auth_session import AuthSession
from dynamicvault.models.user import User
from dynamicvault.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller, as resolved from a bearer token."""
    wallet_address: str
    user_id: uuid.UUID
    roles: list[str]
    session_id: uuid.UUID


@dataclass(frozen=True)
class IssuedNonce:
    wallet_address: str
    nonce: str
    message: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: str


class AuthService:
    def __init__(self, db: AsyncSession, settings: Settings):
        self._db = db
        self._settings = settings
        self._users = UserService(db)

    # ─── Challenge / response ────────────────────────────────────

    async def issue_nonce(self, wallet_address: str) -> IssuedNonce:
        wallet = wallet_address.lower()
        nonce = generate_nonce()
        await self._users.upsert_nonce(
            wallet, nonce, utcnow() + self._settings.nonce_ttl,
        )
        return IssuedNonce(
            wallet_address=wallet,
            nonce=nonce,
            message=build_sign_in_message(wallet, nonce),
        )

    async def verify_and_login(
        self,
        wallet_address: str,
        signature: str,
        message: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> TokenPair:
        wallet = wallet_address.lower()
        ctx = ErrorContext(wallet_address=wallet)

        user = await self._users.get_by_wallet(wallet)
        if user is None:
            raise AuthenticationError(
                "No sign-in challenge issued for this wallet",
                "NONCE_NOT_FOUND", ctx,
            )
        if ensure_utc(user.nonce_expiry) <= utcnow():
            raise AuthenticationError("Nonce expired", "NONCE_EXPIRED", ctx)
        if not message_contains_nonce(message, user.nonce):
            raise AuthenticationError(
                "Signed message does not contain the current nonce",
                "NONCE_MISMATCH", ctx,
            )
        if not verify_signature(message, signature, wallet):
            raise AuthenticationError(
                "Invalid signature", "INVALID_SIGNATURE", ctx,
            )
        if user.status == UserStatus.SUSPENDED.value:
            raise PermissionDeniedError("Account suspended", ctx)

        now = utcnow()
        await self._consume_nonce(user, now)

        refresh_token = generate_refresh_token()
        session = AuthSession(
            id=uuid.uuid4(),
            user_id=user.id,
            wallet_address=wallet,
            token_hash=hash_secret(refresh_token),
            created_at=now,
            expires_at=now + self._settings.refresh_token_ttl,
            ip_address=ip_address,
            user_agent=user_agent,
            is_valid=True,
        )
        self._db.add(session)
        await self._db.commit()

        logger.info(
            "Wallet signed in",
            extra={"wallet_address": wallet, "session_id": str(session.id)},
        )
        return TokenPair(
            access_token=self._access_token_for(user, session.id),
            refresh_token=refresh_token,
            expires_in=self._settings.jwt_expiry,
        )

    # ─── Tokens ──────────────────────────────────────────────────

    async def refresh(self, refresh_token: str) -> tuple[str, str]:
        """Exchange a refresh token for a new access token."""
        session = await self._find_live_session_by_token(refresh_token)
        if session is None:
            raise AuthenticationError(
                "Invalid or expired refresh token", "INVALID_REFRESH_TOKEN",
            )
        user = await self._db.get(User, session.user_id)
        if user is None:
            raise AuthenticationError("User not found", "USER_NOT_FOUND")
        if user.status == UserStatus.SUSPENDED.value:
            raise PermissionDeniedError(
                "Account suspended",
                ErrorContext(wallet_address=user.wallet_address),
            )
        return self._access_token_for(user, session.id), self._settings.jwt_expiry

    async def authenticate(self, token: str) -> AuthContext:
        """Resolve a bearer token to the calling user, or raise 401/403."""
        claims = decode_access_token(
            token, self._settings.jwt_secret, self._settings.jwt_algorithm,
        )
        if claims is None:
            raise AuthenticationError("Invalid or expired token", "INVALID_TOKEN")
        try:
            session_id = uuid.UUID(claims.session_id)
        except ValueError:
            raise AuthenticationError("Invalid or expired token", "INVALID_TOKEN")

        user = await self._users.get_by_wallet(claims.wallet_address)
        if user is None:
            raise AuthenticationError("User not found", "USER_NOT_FOUND")
        if user.status == UserStatus.SUSPENDED.value:
            raise PermissionDeniedError(
                "Account suspended",
                ErrorContext(wallet_address=user.wallet_address),
            )

        session = await self._db.get(AuthSession, session_id)
        if (
            session is None
            or session.user_id != user.id
            or not session.is_valid
            or ensure_utc(session.expires_at) <= utcnow()
        ):
            raise AuthenticationError("Session is no longer valid", "SESSION_INVALID")

        return AuthContext(
            wallet_address=user.wallet_address,
            user_id=user.id,
            roles=list(user.roles or []),
            session_id=session.id,
        )

    # ─── Sessions ────────────────────────────────────────────────

    async def logout(self, session_id: uuid.UUID) -> None:
        await self._db.execute(
            update(AuthSession)
            .where(AuthSession.id == session_id)
            .values(is_valid=False),
        )
        await self._db.commit()
        logger.info("Session logged out", extra={"session_id": str(session_id)})

    async def logout_all(self, wallet_address: str) -> int:
        result = await self._db.execute(
            update(AuthSession)
            .where(
                AuthSession.wallet_address == wallet_address.lower(),
                AuthSession.is_valid.is_(True),
            )
            .values(is_valid=False),
        )
        await self._db.commit()
        logger.info(
            f"Logged out of {result.rowcount} sessions",
            extra={"wallet_address": wallet_address.lower()},
        )
        return result.rowcount

    async def list_active_sessions(self, wallet_address: str) -> list[AuthSession]:
        result = await self._db.execute(
            select(AuthSession)
            .where(
                AuthSession.wallet_address == wallet_address.lower(),
                AuthSession.is_valid.is_(True),
                AuthSession.expires_at > utcnow(),
            )
            .order_by(AuthSession.created_at.desc()),
        )
        return list(result.scalars().all())

    async def cleanup_sessions(self) -> int:
        """Delete expired or invalidated sessions. Returns rows removed."""
        result = await self._db.execute(
            delete(AuthSession).where(
                or_(
                    AuthSession.expires_at <= utcnow(),
                    AuthSession.is_valid.is_(False),
                ),
            ),
        )
        await self._db.commit()
        logger.info(f"Session cleanup removed {result.rowcount} rows")
        return result.rowcount

    # ─── Helpers ─────────────────────────────────────────────────

    async def _consume_nonce(self, user: User, now: datetime) -> None:
        """Rotate the nonce only if it is still the one that was checked."""
        result = await self._db.execute(
            update(User)
            .where(User.id == user.id, User.nonce == user.nonce)
            .values(
                nonce=generate_nonce(),
                nonce_expiry=now + self._settings.nonce_ttl,
                last_login=now,
            )
            .execution_options(synchronize_session="evaluate"),
        )
        if result.rowcount != 1:
            raise AuthenticationError(
                "Nonce already used",
                "NONCE_MISMATCH",
                ErrorContext(wallet_address=user.wallet_address),
            )

    async def _find_live_session_by_token(
        self, refresh_token: str,
    ) -> AuthSession | None:
        result = await self._db.execute(
            select(AuthSession).where(
                AuthSession.token_hash == hash_secret(refresh_token),
                AuthSession.is_valid.is_(True),
                AuthSession.expires_at > utcnow(),
            ),
        )
        return result.scalar_one_or_none()

    def _access_token_for(self, user: User, session_id: uuid.UUID) -> str:
        claims = AccessTokenClaims(
            wallet_address=user.wallet_address,
            roles=list(user.roles or []),
            session_id=str(session_id),
        )
        return issue_access_token(
            claims,
            self._settings.jwt_secret,
            self._settings.access_token_ttl,
            self._settings.jwt_algorithm,
        )
