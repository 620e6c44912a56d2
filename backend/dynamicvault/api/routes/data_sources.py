"""Data Source Routes — registry CRUD, bulk updates, enablement, fetch metrics.

Invariants:
    - Reads and metric reports: admin or oracle; all other writes: admin
    - Bulk PATCH reports per-item results; `errors` present only when non-empty
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.api import serializers
from dynamicvault.api.dependencies import require_roles
from dynamicvault.core.domain_types import Role
from dynamicvault.infrastructure.database import get_db
from dynamicvault.schemas.data_source import (
    AccuracyUpdate, BulkUpdateRequest, DataSourceCreate, DataSourceStatusUpdate,
    DataSourceUpdate, FetchMetrics,
)
from dynamicvault.services.auth_service import AuthContext
from dynamicvault.services.data_source_service import DataSourceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/data-sources", tags=["data-sources"])

_readers = require_roles(Role.ADMIN, Role.ORACLE)
_admins = require_roles(Role.ADMIN)


@router.get("")
async def list_data_sources(
    enabled: bool | None = Query(None),
    user: AuthContext = Depends(_readers),
    db: AsyncSession = Depends(get_db),
):
    sources = await DataSourceService(db).list_sources(enabled)
    return {"dataSources": [serializers.data_source(s) for s in sources]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_data_source(
    body: DataSourceCreate,
    user: AuthContext = Depends(_admins),
    db: AsyncSession = Depends(get_db),
):
    source = await DataSourceService(db).create(body)
    return {
        "message": "Data source created successfully",
        "dataSource": serializers.data_source(source),
    }


@router.patch("")
async def bulk_update_data_sources(
    body: BulkUpdateRequest,
    user: AuthContext = Depends(_admins),
    db: AsyncSession = Depends(get_db),
):
    result = await DataSourceService(db).bulk_update(body.data_sources)
    response = {
        "message": f"Updated {len(result['updated'])} data sources",
        "updated": result["updated"],
    }
    if result["errors"]:
        response["errors"] = result["errors"]
    return response


@router.get("/{source_id}")
async def get_data_source(
    source_id: UUID,
    user: AuthContext = Depends(_readers),
    db: AsyncSession = Depends(get_db),
):
    source = await DataSourceService(db).get(source_id)
    return {"dataSource": serializers.data_source(source)}


@router.patch("/{source_id}")
async def update_data_source(
    source_id: UUID,
    body: DataSourceUpdate,
    user: AuthContext = Depends(_admins),
    db: AsyncSession = Depends(get_db),
):
    source = await DataSourceService(db).update(source_id, body)
    return {
        "message": "Data source updated successfully",
        "dataSource": serializers.data_source(source),
    }


@router.delete("/{source_id}")
async def delete_data_source(
    source_id: UUID,
    user: AuthContext = Depends(_admins),
    db: AsyncSession = Depends(get_db),
):
    await DataSourceService(db).delete(source_id)
    return {"message": "Data source deleted successfully"}


@router.patch("/{source_id}/status")
async def set_data_source_status(
    source_id: UUID,
    body: DataSourceStatusUpdate,
    user: AuthContext = Depends(_admins),
    db: AsyncSession = Depends(get_db),
):
    source = await DataSourceService(db).set_enabled(source_id, body.enabled)
    state = "enabled" if source.is_enabled else "disabled"
    return {
        "message": f"Data source {state}",
        "dataSource": serializers.data_source(source),
    }


@router.post("/{source_id}/metrics")
async def record_fetch_metrics(
    source_id: UUID,
    body: FetchMetrics,
    user: AuthContext = Depends(_readers),
    db: AsyncSession = Depends(get_db),
):
    source = await DataSourceService(db).record_fetch(
        source_id, body.success, body.latency, body.error,
    )
    return {
        "message": "Data source metrics updated",
        "dataSource": serializers.data_source(source),
    }


@router.patch("/{source_id}/metrics")
async def update_price_accuracy(
    source_id: UUID,
    body: AccuracyUpdate,
    user: AuthContext = Depends(_readers),
    db: AsyncSession = Depends(get_db),
):
    source = await DataSourceService(db).update_accuracy(source_id, body.accuracy)
    return {
        "message": "Price accuracy updated",
        "dataSource": serializers.data_source(source),
    }
