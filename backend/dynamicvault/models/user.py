"""User ORM — a wallet identity with its login challenge, roles, and profile.

Invariants:
    - wallet_address is unique and stored lowercase
    - nonce/nonce_expiry always set (a row only exists once a challenge was issued)
    - roles is a non-empty JSON list drawn from Role
    - api_keys holds only sha256 digests of issued keys, never raw keys

Design Decisions:
    - profile_info and api_keys as JSON: small, user-scoped, always read together
      with the user row (no independent queries)
    - updated_at maintained via onupdate on every write
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from dynamicvault.db.base import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Wallet-backed user account."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    wallet_address: Mapped[str] = mapped_column(
        String(42), nullable=False, unique=True, index=True,
    )
    nonce: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    nonce_expiry: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    roles: Mapped[list] = mapped_column(
        JSON, nullable=False, default=lambda: ["user"],
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active",
    )
    profile_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    api_keys: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now,
    )
