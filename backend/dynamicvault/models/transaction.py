"""Transaction ORM — a marketplace event (mint, list, sale, offer, ...) for a token.

Invariants:
    - type is a TransactionType value, status a TransactionStatus value
    - seller/buyer stored lowercase; either may be NULL (mint has no seller)
    - tx_hash is unique when present
    - price/price_usd are NULL for mint and delist events

Design Decisions:
    - asset_id nullable with SET NULL: the ledger outlives a deleted asset
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Integer, BigInteger, Float, DateTime, ForeignKey, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from dynamicvault.db.base import Base


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_status_timestamp", "status", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    token_id: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True,
    )
    asset_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("assets.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_usd: Mapped[float | None] = mapped_column(Float, nullable=True)
    seller: Mapped[str | None] = mapped_column(
        String(42), nullable=True, index=True,
    )
    buyer: Mapped[str | None] = mapped_column(
        String(42), nullable=True, index=True,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    tx_hash: Mapped[str | None] = mapped_column(
        String(66), nullable=True, unique=True,
    )
    block_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gas_used: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    gas_price_wei: Mapped[str | None] = mapped_column(String(78), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    platform_fee: Mapped[float | None] = mapped_column(Float, nullable=True)
    payment_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default="eth",
    )

    asset: Mapped["Asset | None"] = relationship("Asset", lazy="selectin")
