"""OraclePrediction ORM — an AI price prediction awaiting admin review.

Invariants:
    - status transitions only pending -> accepted | rejected
    - confidence_score in [0, 100]
    - on-chain fields are either all set or all NULL

Design Decisions:
    - inputs / feature_importance / performance_metrics as JSON: model-specific
      payloads, read back whole
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Text, Integer, BigInteger, Float, DateTime, JSON, ForeignKey,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from dynamicvault.db.base import Base


class OraclePrediction(Base):
    __tablename__ = "oracle_predictions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    asset_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    token_id: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    predicted_price: Mapped[float] = mapped_column(Float, nullable=False)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False)
    data_sources_used: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    model_version: Mapped[str] = mapped_column(String(50), nullable=False)
    inputs: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    feature_importance: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    performance_metrics: Mapped[dict | None] = mapped_column(
        JSON, nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    onchain_tx_hash: Mapped[str | None] = mapped_column(
        String(66), nullable=True,
    )
    onchain_block_number: Mapped[int | None] = mapped_column(
        Integer, nullable=True,
    )
    onchain_timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
