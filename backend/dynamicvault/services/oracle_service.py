"""OracleService — AI price prediction intake, review, and performance reporting.

Invariants:
    - New predictions are always pending
    - Only a pending prediction can be accepted or rejected (else 400); the
      status leaves pending through a guarded UPDATE, so one of two racing
      reviews wins and the other gets 400
    - Acceptance keeps the asset's ETH/USD rate, updates its price, and writes an
      ai-oracle history point, all in one commit
    - onChain reference set only when both transaction hash and block number are given
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.core.clock import utcnow
from dynamicvault.core.domain_types import PredictionStatus, PriceSourceType
from dynamicvault.core.errors import (
    BusinessRuleError, ErrorContext, ResourceNotFoundError,
)
from dynamicvault.core.oracle_metrics import (
    feature_analysis, model_version_summary, price_factors,
)
from dynamicvault.core.price_analytics import derive_usd_price, mean
from dynamicvault.models.asset import Asset
from dynamicvault.models.oracle_prediction import OraclePrediction
from dynamicvault.schemas.oracle import PredictionSubmit
from dynamicvault.services.asset_service import apply_price
from dynamicvault.services.price_history_service import PriceHistoryService

logger = logging.getLogger(__name__)


class OracleService:
    def __init__(self, db: AsyncSession):
        self._db = db
        self._history = PriceHistoryService(db)

    async def submit(self, data: PredictionSubmit) -> OraclePrediction:
        asset = await self._get_asset(data.token_id)
        prediction = OraclePrediction(
            id=uuid.uuid4(),
            asset_id=asset.id,
            token_id=asset.token_id,
            timestamp=utcnow(),
            predicted_price=data.predicted_price,
            confidence_score=data.confidence_score,
            data_sources_used=list(data.data_sources_used),
            model_version=data.model_version,
            inputs=(
                data.inputs.model_dump(by_alias=True, exclude_none=True)
                if data.inputs else {}
            ),
            feature_importance=[
                f.model_dump(by_alias=True) for f in data.feature_importance
            ],
            performance_metrics=(
                data.performance_metrics.model_dump(by_alias=True)
                if data.performance_metrics else None
            ),
            status=PredictionStatus.PENDING.value,
        )
        self._db.add(prediction)
        await self._db.commit()
        logger.info(
            f"Prediction submitted by model {data.model_version}",
            extra={"token_id": asset.token_id, "resource_id": str(prediction.id)},
        )
        return prediction

    async def list_for_token(
        self,
        token_id: int,
        status: PredictionStatus | None = None,
        limit: int = 20,
    ) -> list[OraclePrediction]:
        query = select(OraclePrediction).where(OraclePrediction.token_id == token_id)
        if status is not None:
            query = query.where(
                OraclePrediction.status == PredictionStatus(status).value,
            )
        result = await self._db.execute(
            query.order_by(OraclePrediction.timestamp.desc()).limit(limit),
        )
        return list(result.scalars().all())

    async def get(self, prediction_id: uuid.UUID) -> OraclePrediction:
        prediction = await self._db.get(OraclePrediction, prediction_id)
        if prediction is None:
            raise ResourceNotFoundError("Prediction", str(prediction_id))
        return prediction

    async def accept(
        self,
        prediction_id: uuid.UUID,
        tx_hash: str | None = None,
        block_number: int | None = None,
    ) -> OraclePrediction:
        prediction = await self._get_pending(prediction_id)
        asset = await self._get_asset(prediction.token_id)

        onchain = {}
        if tx_hash is not None and block_number is not None:
            onchain = dict(
                onchain_tx_hash=tx_hash,
                onchain_block_number=block_number,
                onchain_timestamp=utcnow(),
            )
        await self._close_review(prediction, PredictionStatus.ACCEPTED, **onchain)

        price_usd = derive_usd_price(
            prediction.predicted_price, asset.price_value, asset.price_value_usd,
        )
        apply_price(
            asset, prediction.predicted_price, price_usd,
            prediction.confidence_score,
        )
        self._history.record_point(
            asset, prediction.predicted_price, price_usd,
            PriceSourceType.AI_ORACLE,
            model_version=prediction.model_version,
            ai_confidence_score=prediction.confidence_score,
            ai_factors=price_factors(prediction.feature_importance or []),
            tx_hash=tx_hash,
            block_number=block_number,
        )

        await self._db.commit()
        logger.info(
            "Prediction accepted",
            extra={"token_id": asset.token_id, "resource_id": str(prediction.id)},
        )
        return prediction

    async def reject(
        self, prediction_id: uuid.UUID, reason: str | None = None,
    ) -> OraclePrediction:
        prediction = await self._get_pending(prediction_id)
        await self._close_review(
            prediction, PredictionStatus.REJECTED, rejection_reason=reason,
        )
        await self._db.commit()
        logger.info(
            "Prediction rejected",
            extra={"resource_id": str(prediction.id), "token_id": prediction.token_id},
        )
        return prediction

    async def performance(
        self, start: datetime | None = None, end: datetime | None = None,
    ) -> dict:
        query = select(
            OraclePrediction.status,
            OraclePrediction.model_version,
            OraclePrediction.confidence_score,
            OraclePrediction.feature_importance,
        )
        if start is not None:
            query = query.where(OraclePrediction.timestamp >= start)
        if end is not None:
            query = query.where(OraclePrediction.timestamp <= end)
        rows = (await self._db.execute(query)).all()

        statuses = [r.status for r in rows]
        return {
            "performance": {
                "totalPredictions": len(rows),
                "acceptedPredictions": statuses.count(PredictionStatus.ACCEPTED.value),
                "rejectedPredictions": statuses.count(PredictionStatus.REJECTED.value),
                "averageConfidence": mean([r.confidence_score for r in rows]),
                "modelVersions": model_version_summary(
                    (r.model_version, r.confidence_score) for r in rows
                ),
            },
            "featureAnalysis": feature_analysis(r.feature_importance for r in rows),
        }

    # ─── Helpers ─────────────────────────────────────────────────

    async def _get_pending(self, prediction_id: uuid.UUID) -> OraclePrediction:
        prediction = await self.get(prediction_id)
        if prediction.status != PredictionStatus.PENDING.value:
            raise _not_pending(prediction, prediction.status)
        return prediction

    async def _close_review(
        self, prediction: OraclePrediction, status: PredictionStatus, **values,
    ) -> None:
        """Move pending -> status in one guarded UPDATE; a lost race is a 400."""
        result = await self._db.execute(
            update(OraclePrediction)
            .where(
                OraclePrediction.id == prediction.id,
                OraclePrediction.status == PredictionStatus.PENDING.value,
            )
            .values(status=status.value, **values)
            .execution_options(synchronize_session="evaluate"),
        )
        if result.rowcount != 1:
            raise _not_pending(prediction, "reviewed")

    async def _get_asset(self, token_id: int) -> Asset:
        asset = await self._db.scalar(
            select(Asset).where(Asset.token_id == token_id),
        )
        if asset is None:
            raise ResourceNotFoundError("Asset", str(token_id))
        return asset


def _not_pending(prediction: OraclePrediction, status: str) -> BusinessRuleError:
    return BusinessRuleError(
        f"Prediction is already {status}",
        "PREDICTION_NOT_PENDING",
        ErrorContext(
            token_id=prediction.token_id, resource_id=str(prediction.id),
        ),
    )
