"""DataSourceService — registry of oracle price feeds and their fetch health.

Invariants:
    - Names are unique (409 on create or rename collision)
    - New sources start enabled, reliability 100, latency 0, accuracy 80,
      aiWeighting 0.5 unless given
    - A configuration update merges into the stored one; refreshInterval is
      kept when not supplied
    - Fetch results go through core/source_health.py (pure transition)
    - Bulk updates validate and apply item by item; one bad item does not
      block the others
"""

import logging
import uuid

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.core.clock import utcnow
from dynamicvault.core.domain_types import DataSourceType
from dynamicvault.core.errors import (
    ConflictError, DynamicVaultError, ResourceNotFoundError,
)
from dynamicvault.core.source_health import (
    DEFAULT_REFRESH_INTERVAL_SECONDS, MIN_ORACLE_RELIABILITY,
    apply_fetch_result, clamp_percentage,
)
from dynamicvault.models.data_source import DataSource
from dynamicvault.schemas.data_source import (
    BulkUpdateItem, DataSourceCreate, DataSourceUpdate,
)

logger = logging.getLogger(__name__)


class DataSourceService:
    def __init__(self, db: AsyncSession):
        self._db = db

    # ─── Queries ─────────────────────────────────────────────────

    async def list_sources(self, enabled: bool | None = None) -> list[DataSource]:
        query = select(DataSource)
        if enabled is not None:
            query = query.where(DataSource.is_enabled.is_(enabled))
        result = await self._db.execute(query.order_by(DataSource.name.asc()))
        return list(result.scalars().all())

    async def get(self, source_id: uuid.UUID) -> DataSource:
        source = await self._db.get(DataSource, source_id)
        if source is None:
            raise ResourceNotFoundError("Data source", str(source_id))
        return source

    async def get_by_name(self, name: str) -> DataSource | None:
        return await self._db.scalar(
            select(DataSource).where(DataSource.name == name),
        )

    async def due_for_fetch(self, limit: int = 10) -> list[DataSource]:
        """Enabled sources whose next fetch time has passed, soonest first."""
        result = await self._db.execute(
            select(DataSource)
            .where(
                DataSource.is_enabled.is_(True),
                DataSource.next_fetch_at <= utcnow(),
            )
            .order_by(DataSource.next_fetch_at.asc())
            .limit(limit),
        )
        return list(result.scalars().all())

    async def by_type(self, source_type: DataSourceType) -> list[DataSource]:
        result = await self._db.execute(
            select(DataSource)
            .where(
                DataSource.type == DataSourceType(source_type).value,
                DataSource.is_enabled.is_(True),
            )
            .order_by(DataSource.reliability.desc()),
        )
        return list(result.scalars().all())

    async def optimal_for_oracle(self, limit: int = 5) -> list[DataSource]:
        result = await self._db.execute(
            select(DataSource)
            .where(
                DataSource.is_enabled.is_(True),
                DataSource.reliability >= MIN_ORACLE_RELIABILITY,
            )
            .order_by(
                DataSource.price_accuracy.desc(),
                DataSource.ai_weighting.desc(),
            )
            .limit(limit),
        )
        return list(result.scalars().all())

    # ─── Lifecycle ───────────────────────────────────────────────

    async def create(self, data: DataSourceCreate) -> DataSource:
        if await self.get_by_name(data.name) is not None:
            raise ConflictError(f"Data source with name '{data.name}' already exists")
        source = DataSource(
            id=uuid.uuid4(),
            name=data.name,
            type=DataSourceType(data.type).value,
            url=str(data.url) if data.url else None,
            description=data.description,
            configuration=data.configuration.model_dump(
                by_alias=True, exclude_none=True,
            ),
            is_enabled=True,
            error_count=0,
            reliability=100.0,
            latency=0.0,
            price_accuracy=80.0,
            ai_weighting=data.ai_weighting if data.ai_weighting is not None else 0.5,
        )
        self._db.add(source)
        await self._db.commit()
        logger.info(f"Data source '{source.name}' created")
        return source

    async def update(
        self, source_id: uuid.UUID, data: DataSourceUpdate,
    ) -> DataSource:
        source = await self.get(source_id)
        await self._apply_update(source, data)
        await self._db.commit()
        return source

    async def bulk_update(self, items: list[BulkUpdateItem]) -> dict:
        """Apply each item independently. Returns {updated, errors}."""
        updated, errors = [], []
        for item in items:
            try:
                source_id = uuid.UUID(item.id)
                data = DataSourceUpdate.model_validate(item.data)
                source = await self.get(source_id)
                await self._apply_update(source, data)
                await self._db.commit()
            except ValueError as e:
                # pydantic ValidationError and malformed UUIDs
                await self._db.rollback()
                errors.append({"id": item.id, "error": _validation_message(e)})
                continue
            except DynamicVaultError as e:
                await self._db.rollback()
                errors.append({"id": item.id, "error": e.message})
                continue
            updated.append({"id": str(source.id), "name": source.name, "success": True})
        logger.info(
            f"Bulk data source update: {len(updated)} updated, {len(errors)} failed",
        )
        return {"updated": updated, "errors": errors}

    async def delete(self, source_id: uuid.UUID) -> None:
        source = await self.get(source_id)
        await self._db.delete(source)
        await self._db.commit()
        logger.info(f"Data source '{source.name}' deleted")

    async def set_enabled(self, source_id: uuid.UUID, enabled: bool) -> DataSource:
        source = await self.get(source_id)
        source.is_enabled = enabled
        await self._db.commit()
        return source

    # ─── Health ──────────────────────────────────────────────────

    async def record_fetch(
        self,
        source_id: uuid.UUID,
        success: bool,
        latency: float,
        error: str | None = None,
    ) -> DataSource:
        source = await self.get(source_id)
        outcome = apply_fetch_result(
            reliability=source.reliability,
            error_count=source.error_count,
            last_error=source.last_error,
            refresh_interval_seconds=(source.configuration or {}).get(
                "refreshInterval",
            ),
            success=success,
            latency=latency,
            error=error,
            fetched_at=utcnow(),
        )
        source.reliability = outcome.reliability
        source.error_count = outcome.error_count
        source.last_error = outcome.last_error
        source.latency = outcome.latency
        source.last_fetch_at = outcome.last_fetch_at
        source.next_fetch_at = outcome.next_fetch_at
        await self._db.commit()
        if not success:
            logger.warning(
                f"Data source '{source.name}' fetch failed: {outcome.last_error}",
            )
        return source

    async def update_accuracy(
        self, source_id: uuid.UUID, accuracy: float,
    ) -> DataSource:
        source = await self.get(source_id)
        source.price_accuracy = clamp_percentage(accuracy)
        await self._db.commit()
        return source

    async def reset_errors(self, source_id: uuid.UUID) -> DataSource:
        source = await self.get(source_id)
        source.error_count = 0
        source.last_error = None
        await self._db.commit()
        return source

    # ─── Helpers ─────────────────────────────────────────────────

    async def _apply_update(self, source: DataSource, data: DataSourceUpdate) -> None:
        sent = data.model_dump(exclude_unset=True)
        if "name" in sent and data.name and data.name != source.name:
            if await self.get_by_name(data.name) is not None:
                raise ConflictError(
                    f"Data source with name '{data.name}' already exists",
                )
            source.name = data.name
        if "url" in sent:
            source.url = str(data.url) if data.url else None
        if "description" in sent and data.description is not None:
            source.description = data.description
        if "ai_weighting" in sent and data.ai_weighting is not None:
            source.ai_weighting = data.ai_weighting
        if data.configuration is not None:
            merged = dict(source.configuration or {})
            merged.update(
                data.configuration.model_dump(by_alias=True, exclude_none=True),
            )
            merged.setdefault("refreshInterval", DEFAULT_REFRESH_INTERVAL_SECONDS)
            source.configuration = merged


def _validation_message(error: ValueError) -> str:
    if isinstance(error, ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}"
            for e in error.errors()
        )
    return str(error)
