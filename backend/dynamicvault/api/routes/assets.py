"""Asset Routes — catalogue listing, stats, creation, detail, metadata, deletion.

Invariants:
    - GET routes are public; writes require a role or ownership
    - /stats is registered before /{token_id}
    - Absent list filters are not applied; limit capped at 100
"""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.api import serializers
from dynamicvault.api.dependencies import get_current_user, require_roles
from dynamicvault.core.access_rules import total_pages
from dynamicvault.core.domain_types import Role
from dynamicvault.infrastructure.database import get_db
from dynamicvault.schemas.asset import AssetCreate, AssetMetadataUpdate
from dynamicvault.services.asset_service import AssetFilters, AssetService
from dynamicvault.services.auth_service import AuthContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/assets", tags=["assets"])

TokenIdPath = Annotated[int, Path(gt=0)]


@router.get("")
async def list_assets(
    asset_type: str | None = Query(None, alias="assetType"),
    current_owner: str | None = Query(None, alias="currentOwner"),
    is_listed: bool | None = Query(None, alias="isListed"),
    price_min: float | None = Query(None, alias="priceMin", ge=0),
    price_max: float | None = Query(None, alias="priceMax", ge=0),
    sort_by: Literal["createdAt", "price", "name", "tokenId", "viewCount"] = Query(
        "createdAt", alias="sortBy",
    ),
    sort_direction: Literal["asc", "desc"] = Query("desc", alias="sortDirection"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = AssetFilters(
        asset_type=asset_type,
        current_owner=current_owner,
        is_listed=is_listed,
        price_min=price_min,
        price_max=price_max,
    )
    assets, total = await AssetService(db).list_assets(
        filters, sort_by, sort_direction, page, limit,
    )
    return {
        "assets": [serializers.asset_summary(a) for a in assets],
        "pagination": serializers.pagination(total, page, total_pages(total, limit)),
    }


@router.get("/stats")
async def asset_stats(db: AsyncSession = Depends(get_db)):
    return await AssetService(db).stats()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_asset(
    body: AssetCreate,
    user: AuthContext = Depends(require_roles(Role.ADMIN, Role.ORACLE)),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService(db).create(body)
    return {
        "message": "Asset created successfully",
        "asset": {"id": str(asset.id), "tokenId": asset.token_id},
    }


@router.get("/{token_id}")
async def get_asset(token_id: TokenIdPath, db: AsyncSession = Depends(get_db)):
    """Full asset document; counts as a view."""
    asset = await AssetService(db).view(token_id)
    return {"asset": serializers.asset_detail(asset)}


@router.patch("/{token_id}")
async def update_asset_metadata(
    token_id: TokenIdPath,
    body: AssetMetadataUpdate,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace the asset's metadata (owner, admin, or oracle)."""
    asset = await AssetService(db).update_metadata(
        token_id,
        body.model_dump(by_alias=True, exclude_none=True),
        user.wallet_address,
        user.roles,
    )
    return {
        "message": "Asset metadata updated successfully",
        "asset": serializers.asset_detail(asset),
    }


@router.delete("/{token_id}")
async def delete_asset(
    token_id: TokenIdPath,
    user: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    await AssetService(db).delete(token_id)
    return {"message": "Asset deleted successfully", "tokenId": token_id}
