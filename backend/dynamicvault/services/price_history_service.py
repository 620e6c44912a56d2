"""PriceHistoryService — recording price points and reading history with analytics.

Invariants:
    - Raw history is newest first and capped at `limit`
    - Aggregated history is ascending by bucket (core/price_analytics.py)
    - Analytics compare the asset's current price with the latest point at or
      before each horizon; no point means 0 change
    - record_point never commits: callers commit alongside the price change
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.core.clock import utcnow
from dynamicvault.core.domain_types import AggregationPeriod, PriceSourceType
from dynamicvault.core.errors import ResourceNotFoundError
from dynamicvault.core.price_analytics import (
    PricePoint, aggregate_price_points, percent_change, returns_volatility,
    source_distribution,
)
from dynamicvault.models.asset import Asset
from dynamicvault.models.price_history import PriceHistory

logger = logging.getLogger(__name__)

_HORIZONS = {
    "change24h": timedelta(days=1),
    "change7d": timedelta(days=7),
    "change30d": timedelta(days=30),
}
VOLATILITY_WINDOW = timedelta(days=30)


class PriceHistoryService:
    def __init__(self, db: AsyncSession):
        self._db = db

    def record_point(
        self,
        asset: Asset,
        price: float,
        price_usd: float,
        source_type: PriceSourceType,
        *,
        data_source_name: str | None = None,
        model_version: str | None = None,
        ai_confidence_score: float | None = None,
        ai_factors: list[dict] | None = None,
        tx_hash: str | None = None,
        block_number: int | None = None,
        timestamp: datetime | None = None,
    ) -> PriceHistory:
        """Stage a price-history row in the current session."""
        has_block = tx_hash is not None and block_number is not None
        point = PriceHistory(
            asset_id=asset.id,
            token_id=asset.token_id,
            price=price,
            price_usd=price_usd,
            timestamp=timestamp or utcnow(),
            source_type=PriceSourceType(source_type).value,
            data_source_name=data_source_name,
            model_version=model_version,
            ai_confidence_score=ai_confidence_score,
            ai_factors=ai_factors,
            tx_hash=tx_hash if has_block else None,
            block_number=block_number if has_block else None,
            block_timestamp=utcnow() if has_block else None,
        )
        self._db.add(point)
        return point

    async def get_history(
        self,
        token_id: int,
        limit: int = 100,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[PriceHistory]:
        query = self._range_query(token_id, start, end).order_by(
            PriceHistory.timestamp.desc(),
        ).limit(limit)
        result = await self._db.execute(query)
        return list(result.scalars().all())

    async def get_aggregated(
        self,
        token_id: int,
        period: AggregationPeriod,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict]:
        result = await self._db.execute(
            self._range_query(token_id, start, end).order_by(
                PriceHistory.timestamp.asc(),
            ),
        )
        points = [
            PricePoint(timestamp=p.timestamp, price=p.price)
            for p in result.scalars().all()
        ]
        return aggregate_price_points(points, period)

    async def get_analytics(self, token_id: int) -> dict:
        asset = await self._get_asset(token_id)
        current = asset.price_value
        now = utcnow()

        analytics = {"current": current}
        for key, horizon in _HORIZONS.items():
            previous = await self._latest_price_before(token_id, now - horizon)
            analytics[key] = percent_change(current, previous)

        avg_confidence = await self._db.scalar(
            select(func.avg(PriceHistory.ai_confidence_score)).where(
                PriceHistory.token_id == token_id,
                PriceHistory.ai_confidence_score.is_not(None),
            ),
        )
        analytics["averageConfidence"] = float(avg_confidence or 0.0)

        recent = await self._db.execute(
            select(PriceHistory.price)
            .where(
                PriceHistory.token_id == token_id,
                PriceHistory.timestamp >= now - VOLATILITY_WINDOW,
            )
            .order_by(PriceHistory.timestamp.asc()),
        )
        analytics["volatility"] = returns_volatility(list(recent.scalars().all()))
        return analytics

    async def get_source_distribution(self, token_id: int) -> list[dict]:
        result = await self._db.execute(
            select(PriceHistory.source_type, func.count())
            .where(PriceHistory.token_id == token_id)
            .group_by(PriceHistory.source_type),
        )
        return source_distribution({source: count for source, count in result.all()})

    async def delete_range(
        self,
        token_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        await self._get_asset(token_id)
        query = delete(PriceHistory).where(PriceHistory.token_id == token_id)
        if start is not None:
            query = query.where(PriceHistory.timestamp >= start)
        if end is not None:
            query = query.where(PriceHistory.timestamp <= end)
        result = await self._db.execute(query)
        await self._db.commit()
        logger.info(
            "Price history pruned",
            extra={"token_id": token_id, "deleted": result.rowcount},
        )
        return result.rowcount

    async def ensure_asset(self, token_id: int) -> Asset:
        return await self._get_asset(token_id)

    # ─── Helpers ─────────────────────────────────────────────────

    async def _get_asset(self, token_id: int) -> Asset:
        asset = await self._db.scalar(
            select(Asset).where(Asset.token_id == token_id),
        )
        if asset is None:
            raise ResourceNotFoundError("Asset", str(token_id))
        return asset

    async def _latest_price_before(
        self, token_id: int, moment: datetime,
    ) -> float | None:
        return await self._db.scalar(
            select(PriceHistory.price)
            .where(
                PriceHistory.token_id == token_id,
                PriceHistory.timestamp <= moment,
            )
            .order_by(PriceHistory.timestamp.desc())
            .limit(1),
        )

    @staticmethod
    def _range_query(
        token_id: int, start: datetime | None, end: datetime | None,
    ):
        query = select(PriceHistory).where(PriceHistory.token_id == token_id)
        if start is not None:
            query = query.where(PriceHistory.timestamp >= start)
        if end is not None:
            query = query.where(PriceHistory.timestamp <= end)
        return query
