"""Oracle Schemas — prediction submission and acceptance bodies.

Invariants:
    - confidenceScore in [0, 100]; feature importance in [0, 1]; direction in [-1, 1]
"""

from typing import Any

from pydantic import Field, PositiveInt

from dynamicvault.schemas.base import CamelModel, TransactionHashStr


class PredictionInputs(CamelModel):
    market_data: dict[str, Any] | None = None
    asset_specific: dict[str, Any] | None = None
    economic_indicators: dict[str, Any] | None = None
    sentiment_analysis: dict[str, Any] | None = None


class FeatureImportance(CamelModel):
    feature: str = Field(min_length=1)
    importance: float = Field(ge=0, le=1)
    direction: float = Field(ge=-1, le=1)


class PerformanceMetrics(CamelModel):
    accuracy: float = Field(ge=0, le=100)
    error_margin: float = Field(gt=0)
    calibration: float = Field(ge=0, le=100)


class PredictionSubmit(CamelModel):
    token_id: PositiveInt
    predicted_price: float = Field(gt=0)
    confidence_score: float = Field(ge=0, le=100)
    data_sources_used: list[str]
    model_version: str = Field(min_length=1, max_length=50)
    inputs: PredictionInputs | None = None
    feature_importance: list[FeatureImportance]
    performance_metrics: PerformanceMetrics | None = None


class PredictionAccept(CamelModel):
    transaction_hash: TransactionHashStr | None = None
    block_number: int | None = Field(None, ge=0)
