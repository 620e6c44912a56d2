"""Asset ORM — a tokenized real-world asset with price, listing, and verification state.

Invariants:
    - token_id is unique and positive
    - current_owner / listed_by / verified_by stored lowercase
    - is_listed=False implies listing_price/listed_at/listed_by are cleared
    - view_count only ever increases

Design Decisions:
    - Embedded documents flattened into columns (price_*, listing, ownership,
      verification, stats); only free-form parts stay JSON (metadata, media,
      verification_data)
    - Python attribute asset_metadata maps to column "metadata": the name is
      reserved on declarative classes
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Text, Integer, BigInteger, Float, Boolean, DateTime, JSON,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from dynamicvault.db.base import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Asset(Base):
    """Tokenized asset — referenced by price history, transactions, and predictions."""
    __tablename__ = "assets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    token_id: Mapped[int] = mapped_column(
        BigInteger, nullable=False, unique=True, index=True,
    )
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    asset_type: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    asset_metadata: Mapped[dict] = mapped_column(
        "metadata", JSON, nullable=False, default=dict,
    )
    media: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Current price
    price_value: Mapped[float] = mapped_column(Float, nullable=False)
    price_value_usd: Mapped[float] = mapped_column(Float, nullable=False)
    price_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now,
    )
    ai_confidence_score: Mapped[float | None] = mapped_column(
        Float, nullable=True,
    )

    # Listing
    is_listed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True,
    )
    listing_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    listed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    listed_by: Mapped[str | None] = mapped_column(String(42), nullable=True)

    # Ownership
    current_owner: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True,
    )
    owner_since: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now,
    )

    # Verification
    is_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    verified_by: Mapped[str | None] = mapped_column(String(42), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    verification_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Stats
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    favorite_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    offer_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now,
    )
