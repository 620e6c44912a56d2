"""DataSource ORM — an external price feed consulted by the oracle.

Invariants:
    - name is unique
    - reliability and price_accuracy in [0, 100]; ai_weighting in [0, 1]
    - configuration["refreshInterval"] is always present (seconds)

Design Decisions:
    - status and metrics sub-documents flattened; configuration kept as JSON
      because mapping/headers/authentication are source-specific
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Float, Boolean, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from dynamicvault.db.base import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DataSource(Base):
    __tablename__ = "data_sources"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True, index=True,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    configuration: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=lambda: {"refreshInterval": 3600},
    )

    # Status
    is_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, index=True,
    )
    last_fetch_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    next_fetch_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    error_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Metrics
    reliability: Mapped[float] = mapped_column(
        Float, nullable=False, default=100.0,
    )
    latency: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    price_accuracy: Mapped[float] = mapped_column(
        Float, nullable=False, default=80.0,
    )
    ai_weighting: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.5,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now,
    )
