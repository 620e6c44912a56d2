"""PriceHistory ORM — one observed or assigned price for an asset at a point in time.

Invariants:
    - asset_id references assets.id; points are removed with their asset
    - source_type is a PriceSourceType value
    - block fields are either all set or all NULL

Design Decisions:
    - token_id denormalized: range queries by token never need a join
    - ai_factors as JSON list of {factor, impact, description}
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Integer, BigInteger, Float, DateTime, JSON, ForeignKey, Index,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from dynamicvault.db.base import Base


class PriceHistory(Base):
    __tablename__ = "price_history"
    __table_args__ = (
        Index("ix_price_history_token_timestamp", "token_id", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    asset_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    token_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    price_usd: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    source_type: Mapped[str] = mapped_column(String(20), nullable=False)
    data_source_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    model_version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ai_confidence_score: Mapped[float | None] = mapped_column(
        Float, nullable=True,
    )
    ai_factors: Mapped[list | None] = mapped_column(JSON, nullable=True)
    tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    block_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    block_timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
