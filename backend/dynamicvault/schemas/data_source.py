"""Data Source Schemas — create/update bodies, bulk updates, and fetch metrics.

Invariants:
    - name at least 3 chars; refreshInterval a positive number of seconds
    - aiWeighting in [0, 1]; accuracy in [0, 100]; latency non-negative
    - Update bodies are partial: only fields present in the request are applied
"""

from typing import Any

from pydantic import Field, HttpUrl, PositiveInt

from dynamicvault.core.domain_types import DataSourceType
from dynamicvault.schemas.base import CamelModel


class DataSourceConfiguration(CamelModel):
    refresh_interval: PositiveInt
    mapping: dict[str, Any] | None = None
    headers: dict[str, str] | None = None
    authentication: dict[str, str] | None = None


class DataSourceConfigurationUpdate(CamelModel):
    refresh_interval: PositiveInt | None = None
    mapping: dict[str, Any] | None = None
    headers: dict[str, str] | None = None
    authentication: dict[str, str] | None = None


class DataSourceCreate(CamelModel):
    name: str = Field(min_length=3, max_length=100)
    type: DataSourceType
    url: HttpUrl | None = None
    description: str
    configuration: DataSourceConfiguration
    ai_weighting: float | None = Field(None, ge=0, le=1)


class DataSourceUpdate(CamelModel):
    name: str | None = Field(None, min_length=3, max_length=100)
    url: HttpUrl | None = None
    description: str | None = None
    configuration: DataSourceConfigurationUpdate | None = None
    ai_weighting: float | None = Field(None, ge=0, le=1)


class BulkUpdateItem(CamelModel):
    """One entry of a bulk update; `data` is validated per item by the service."""
    id: str
    data: dict[str, Any]


class BulkUpdateRequest(CamelModel):
    data_sources: list[BulkUpdateItem] = Field(min_length=1)


class DataSourceStatusUpdate(CamelModel):
    enabled: bool


class FetchMetrics(CamelModel):
    success: bool
    latency: float = Field(ge=0)
    error: str | None = None


class AccuracyUpdate(CamelModel):
    accuracy: float = Field(ge=0, le=100)
