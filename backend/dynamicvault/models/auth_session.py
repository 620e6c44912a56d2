"""AuthSession ORM — one signed-in device, anchored by a hashed refresh token.

Invariants:
    - token_hash is the sha256 of the refresh token (raw token never stored)
    - is_valid flips to False on logout and never back
    - A session is usable only while is_valid and expires_at > now

Design Decisions:
    - wallet_address denormalized from users: logout-all and session listing
      filter by wallet without a join
    - No ORM relationship to User: sessions are always queried directly, and
      the users FK cascades deletes in the database
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from dynamicvault.db.base import Base


class AuthSession(Base):
    """Refresh-token session for a wallet."""
    __tablename__ = "auth_sessions"
    __table_args__ = (
        Index("ix_auth_sessions_wallet_valid", "wallet_address", "is_valid"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False)
    token_hash: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_valid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
