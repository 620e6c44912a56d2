"""Asset Market Routes — listing, pricing, verification, favorites, price history.

Invariants:
    - Listing requires ownership; delisting requires ownership or admin
    - Price updates by an oracle are recorded as ai-oracle, otherwise manual
    - Verification is admin-only; DELETE /verify clears it
    - Price-history pruning is admin-only
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.api import serializers
from dynamicvault.api.dependencies import (
    get_current_user, parse_date_param, require_roles,
)
from dynamicvault.core.access_rules import has_any_role
from dynamicvault.core.domain_types import (
    AggregationPeriod, PriceSourceType, Role,
)
from dynamicvault.infrastructure.database import get_db
from dynamicvault.schemas.asset import (
    ListingCreate, PriceUpdate, VerificationRequest,
)
from dynamicvault.services.asset_service import AssetService
from dynamicvault.services.auth_service import AuthContext
from dynamicvault.services.price_history_service import PriceHistoryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/assets", tags=["asset-market"])

TokenIdPath = Annotated[int, Path(gt=0)]


# ─── Listing ─────────────────────────────────────────────────────

@router.post("/{token_id}/listing")
async def list_asset(
    token_id: TokenIdPath,
    body: ListingCreate,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    asset, tx = await AssetService(db).list_for_sale(
        token_id, body.listing_price, user.wallet_address,
    )
    return {
        "message": "Asset listed for sale successfully",
        "asset": {
            "tokenId": asset.token_id,
            "isListed": asset.is_listed,
            "listingPrice": asset.listing_price,
        },
        "transaction": serializers.transaction(tx),
    }


@router.delete("/{token_id}/listing")
async def delist_asset(
    token_id: TokenIdPath,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    asset, tx = await AssetService(db).delist(
        token_id, user.wallet_address, user.roles,
    )
    return {
        "message": "Asset delisted successfully",
        "asset": {"tokenId": asset.token_id, "isListed": asset.is_listed},
        "transaction": serializers.transaction(tx),
    }


# ─── Price ───────────────────────────────────────────────────────

@router.put("/{token_id}/price")
async def update_price(
    token_id: TokenIdPath,
    body: PriceUpdate,
    user: AuthContext = Depends(require_roles(Role.ADMIN, Role.ORACLE)),
    db: AsyncSession = Depends(get_db),
):
    source = (
        PriceSourceType.AI_ORACLE
        if has_any_role(user.roles, [Role.ORACLE])
        else PriceSourceType.MANUAL
    )
    asset = await AssetService(db).update_price(
        token_id, body.price, body.price_usd, source, body.ai_confidence_score,
    )
    return {
        "message": "Asset price updated successfully",
        "asset": {
            "tokenId": asset.token_id,
            "currentPrice": serializers.asset_detail(asset)["currentPrice"],
        },
    }


# ─── Verification ────────────────────────────────────────────────

@router.post("/{token_id}/verify")
async def verify_asset(
    token_id: TokenIdPath,
    body: VerificationRequest | None = None,
    user: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService(db).verify(
        token_id,
        user.wallet_address,
        body.verification_data if body else None,
    )
    return {
        "message": "Asset verified successfully",
        "asset": {
            "tokenId": asset.token_id,
            "isVerified": asset.is_verified,
            "verifiedBy": asset.verified_by,
        },
    }


@router.delete("/{token_id}/verify")
async def unverify_asset(
    token_id: TokenIdPath,
    user: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService(db).unverify(token_id, user.wallet_address)
    return {
        "message": "Asset verification removed successfully",
        "asset": {"tokenId": asset.token_id, "isVerified": asset.is_verified},
    }


# ─── Favorites ───────────────────────────────────────────────────

@router.post("/{token_id}/favorite")
async def favorite_asset(
    token_id: TokenIdPath,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService(db).set_favorite(token_id, True)
    return {"tokenId": asset.token_id, "favoriteCount": asset.favorite_count}


@router.delete("/{token_id}/favorite")
async def unfavorite_asset(
    token_id: TokenIdPath,
    user: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService(db).set_favorite(token_id, False)
    return {"tokenId": asset.token_id, "favoriteCount": asset.favorite_count}


# ─── Price history ───────────────────────────────────────────────

@router.get("/{token_id}/price-history")
async def price_history(
    token_id: TokenIdPath,
    limit: int = Query(100, ge=1, le=1000),
    period: AggregationPeriod | None = Query(None),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    """Raw or bucketed price history, plus analytics and source mix."""
    start = parse_date_param(start_date, "startDate")
    end = parse_date_param(end_date, "endDate")
    service = PriceHistoryService(db)
    await service.ensure_asset(token_id)

    if period is not None:
        history = await service.get_aggregated(token_id, period, start, end)
    else:
        points = await service.get_history(token_id, limit, start, end)
        history = [serializers.price_point(p) for p in points]

    return {
        "priceHistory": history,
        "analytics": await service.get_analytics(token_id),
        "sources": await service.get_source_distribution(token_id),
    }


@router.delete("/{token_id}/price-history")
async def delete_price_history(
    token_id: TokenIdPath,
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    user: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    deleted = await PriceHistoryService(db).delete_range(
        token_id,
        parse_date_param(start_date, "startDate"),
        parse_date_param(end_date, "endDate"),
    )
    return {"message": "Price history deleted", "deleted": deleted}
