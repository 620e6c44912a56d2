"""UserService — wallet-keyed user lookups, profile merges, API keys, admin updates.

Invariants:
    - Wallet addresses arrive already lowercase (schemas / routes normalize)
    - Profile updates merge: fields absent from the request keep their value
    - API keys persisted as sha256 digests; the raw key is returned once
    - JSON columns are reassigned, never mutated in place (change tracking)
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.core.clock import ensure_utc, utcnow
from dynamicvault.core.domain_types import Role, UserStatus
from dynamicvault.core.errors import ConflictError, ResourceNotFoundError
from dynamicvault.core.tokens import generate_api_key, hash_secret
from dynamicvault.models.user import User
from dynamicvault.schemas.user import (
    DEFAULT_NOTIFICATION_PREFERENCES, ProfileUpdate,
)

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self._db = db

    async def get_by_wallet(self, wallet_address: str) -> User | None:
        result = await self._db.execute(
            select(User).where(User.wallet_address == wallet_address.lower()),
        )
        return result.scalar_one_or_none()

    async def get_by_wallet_or_404(self, wallet_address: str) -> User:
        user = await self.get_by_wallet(wallet_address)
        if not user:
            raise ResourceNotFoundError("User", wallet_address)
        return user

    async def upsert_nonce(
        self, wallet_address: str, nonce: str, expires_at: datetime,
    ) -> User:
        """Store a fresh challenge nonce, creating the user on first contact."""
        user = await self.get_by_wallet(wallet_address)
        if user is None:
            user = User(
                wallet_address=wallet_address.lower(),
                nonce=nonce,
                nonce_expiry=expires_at,
                roles=[Role.USER.value],
                status=UserStatus.ACTIVE.value,
                api_keys=[],
            )
            self._db.add(user)
            logger.info(
                "New wallet registered",
                extra={"wallet_address": user.wallet_address},
            )
        else:
            user.nonce = nonce
            user.nonce_expiry = expires_at
        await self._db.commit()
        return user

    async def update_profile(
        self, wallet_address: str, update: ProfileUpdate,
    ) -> User:
        user = await self.get_by_wallet_or_404(wallet_address)
        profile = merge_profile(user.profile_info, update)
        user.profile_info = profile
        await self._db.commit()
        return user

    async def create_api_key(
        self,
        wallet_address: str,
        key_name: str,
        permissions: list[str],
        expires_in_days: int,
    ) -> tuple[str, dict]:
        """Issue a named API key. Returns (raw_key, stored_entry)."""
        user = await self.get_by_wallet_or_404(wallet_address)
        keys = list(user.api_keys or [])
        if any(k.get("name") == key_name for k in keys):
            raise ConflictError(f"API key '{key_name}' already exists")

        raw_key = generate_api_key()
        now = utcnow()
        entry = {
            "name": key_name,
            "key": hash_secret(raw_key),
            "permissions": list(permissions),
            "createdAt": now.isoformat(),
            "expiresAt": (now + timedelta(days=expires_in_days)).isoformat(),
        }
        keys.append(entry)
        user.api_keys = keys
        await self._db.commit()
        logger.info(
            f"API key '{key_name}' created",
            extra={"wallet_address": user.wallet_address},
        )
        return raw_key, entry

    async def revoke_api_key(self, wallet_address: str, key_name: str) -> None:
        user = await self.get_by_wallet_or_404(wallet_address)
        keys = list(user.api_keys or [])
        remaining = [k for k in keys if k.get("name") != key_name]
        if len(remaining) == len(keys):
            raise ResourceNotFoundError("API key", key_name)
        user.api_keys = remaining
        await self._db.commit()

    async def update_roles(self, wallet_address: str, roles: list[Role]) -> User:
        user = await self.get_by_wallet_or_404(wallet_address)
        user.roles = sorted({Role(r).value for r in roles})
        await self._db.commit()
        logger.info(
            f"Roles set to {user.roles}",
            extra={"wallet_address": user.wallet_address},
        )
        return user

    async def update_status(
        self, wallet_address: str, status: UserStatus,
    ) -> User:
        user = await self.get_by_wallet_or_404(wallet_address)
        user.status = UserStatus(status).value
        await self._db.commit()
        logger.info(
            f"Status set to {user.status}",
            extra={"wallet_address": user.wallet_address},
        )
        return user


def merge_profile(current: dict | None, update: ProfileUpdate) -> dict:
    """Apply only the supplied profile fields on top of the stored profile."""
    profile = dict(current or {})
    sent = update.model_dump(exclude_unset=True)

    if "username" in sent:
        profile["username"] = update.username
    if "email" in sent:
        profile["email"] = str(update.email) if update.email else None
    if "avatar_url" in sent:
        profile["avatarUrl"] = str(update.avatar_url) if update.avatar_url else None

    prefs = dict(
        profile.get("notificationPreferences") or DEFAULT_NOTIFICATION_PREFERENCES,
    )
    if update.notification_preferences is not None:
        prefs.update(
            update.notification_preferences.model_dump(
                by_alias=True, exclude_none=True,
            ),
        )
    profile["notificationPreferences"] = prefs
    return profile


def is_api_key_active(entry: dict, now: datetime | None = None) -> bool:
    expires_at = entry.get("expiresAt")
    if not expires_at:
        return True
    moment = now or utcnow()
    return ensure_utc(datetime.fromisoformat(expires_at)) > moment
