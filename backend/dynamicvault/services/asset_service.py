"""AssetService — catalogue queries, asset lifecycle, listing, pricing, verification.

Invariants:
    - List filters that are absent are not applied (isListed/priceMin/priceMax
      have no implicit defaults)
    - Listing state changes exactly once per call and always writes a ledger row
    - Every price update writes a price-history point in the same commit
    - Unverify clears verification; the removal is noted in verification_data
    - Deleting an asset removes its price history and predictions, and detaches
      its transactions

Design Decisions:
    - Sort keys mapped through a whitelist, never interpolated from the request
    - View, favorite and offer counters change in SQL (col = col + 1), never
      read-modify-write in Python, so concurrent requests do not lose counts
"""

import logging
from dataclasses import dataclass

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.core.access_rules import (
    can_edit_asset, has_any_role, is_owner, page_offset,
)
from dynamicvault.core.clock import isoformat_utc, utcnow
from dynamicvault.core.domain_types import (
    PriceSourceType, Role, TransactionStatus, TransactionType,
)
from dynamicvault.core.errors import (
    BusinessRuleError, ConflictError, ErrorContext, PermissionDeniedError,
    ResourceNotFoundError,
)
from dynamicvault.core.price_analytics import derive_usd_price
from dynamicvault.models.asset import Asset
from dynamicvault.models.oracle_prediction import OraclePrediction
from dynamicvault.models.price_history import PriceHistory
from dynamicvault.models.transaction import Transaction
from dynamicvault.schemas.asset import AssetCreate
from dynamicvault.services.price_history_service import PriceHistoryService
from dynamicvault.services.transaction_service import (
    TransactionService, clear_listing,
)

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": Asset.created_at,
    "price": Asset.price_value,
    "name": Asset.name,
    "tokenId": Asset.token_id,
    "viewCount": Asset.view_count,
}


@dataclass
class AssetFilters:
    asset_type: str | None = None
    current_owner: str | None = None
    is_listed: bool | None = None
    price_min: float | None = None
    price_max: float | None = None


class AssetService:
    def __init__(self, db: AsyncSession):
        self._db = db
        self._history = PriceHistoryService(db)
        self._ledger = TransactionService(db)

    # ─── Queries ─────────────────────────────────────────────────

    async def list_assets(
        self,
        filters: AssetFilters,
        sort_by: str = "createdAt",
        sort_direction: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Asset], int]:
        conditions = _filter_conditions(filters)
        total = await self._db.scalar(
            select(func.count()).select_from(Asset).where(*conditions),
        )
        column = SORT_COLUMNS.get(sort_by, Asset.created_at)
        order = column.asc() if sort_direction == "asc" else column.desc()
        result = await self._db.execute(
            select(Asset)
            .where(*conditions)
            .order_by(order, Asset.token_id.asc())
            .offset(page_offset(page, limit))
            .limit(limit),
        )
        return list(result.scalars().all()), total or 0

    async def stats(self) -> dict:
        total = await self._db.scalar(select(func.count()).select_from(Asset))
        by_type = await self._db.execute(
            select(Asset.asset_type, func.count()).group_by(Asset.asset_type),
        )
        listed = await self._db.scalar(
            select(func.count()).select_from(Asset).where(Asset.is_listed.is_(True)),
        )
        verified = await self._db.scalar(
            select(func.count()).select_from(Asset).where(Asset.is_verified.is_(True)),
        )
        return {
            "total": total or 0,
            "byType": {asset_type: n for asset_type, n in by_type.all()},
            "listed": listed or 0,
            "verified": verified or 0,
        }

    async def get(self, token_id: int) -> Asset:
        asset = await self._db.scalar(
            select(Asset).where(Asset.token_id == token_id),
        )
        if asset is None:
            raise ResourceNotFoundError("Asset", str(token_id))
        return asset

    async def view(self, token_id: int) -> Asset:
        """Fetch an asset for display, counting the view."""
        return await self._bump_counter(token_id, view_count=Asset.view_count + 1)

    # ─── Lifecycle ───────────────────────────────────────────────

    async def create(self, data: AssetCreate) -> Asset:
        existing = await self._db.scalar(
            select(Asset.id).where(Asset.token_id == data.token_id),
        )
        if existing is not None:
            raise ConflictError(
                f"Asset with token ID {data.token_id} already exists",
                ErrorContext(token_id=data.token_id),
            )
        now = utcnow()
        asset = Asset(
            token_id=data.token_id,
            contract_address=data.contract_address.lower(),
            name=data.name,
            asset_type=data.asset_type,
            description=data.description,
            asset_metadata={},
            media={},
            price_value=data.current_price.value,
            price_value_usd=data.current_price.value_usd,
            price_updated_at=now,
            is_listed=False,
            current_owner=data.ownership.current_owner,
            owner_since=now,
            is_verified=False,
            view_count=0,
            favorite_count=0,
            offer_count=0,
        )
        self._db.add(asset)
        await self._db.commit()
        logger.info("Asset created", extra={"token_id": asset.token_id})
        return asset

    async def update_metadata(
        self,
        token_id: int,
        metadata: dict,
        wallet_address: str,
        roles: list[str],
    ) -> Asset:
        asset = await self.get(token_id)
        if not can_edit_asset(wallet_address, roles, asset.current_owner):
            raise PermissionDeniedError(
                "You do not have permission to update this asset",
                ErrorContext(wallet_address=wallet_address, token_id=token_id),
            )
        asset.asset_metadata = dict(metadata)
        await self._db.commit()
        return asset

    async def delete(self, token_id: int) -> None:
        asset = await self.get(token_id)
        await self._db.execute(
            delete(PriceHistory).where(PriceHistory.asset_id == asset.id),
        )
        await self._db.execute(
            delete(OraclePrediction).where(OraclePrediction.asset_id == asset.id),
        )
        await self._db.execute(
            update(Transaction)
            .where(Transaction.asset_id == asset.id)
            .values(asset_id=None),
        )
        await self._db.delete(asset)
        await self._db.commit()
        logger.info("Asset deleted", extra={"token_id": token_id})

    async def set_favorite(self, token_id: int, favorite: bool) -> Asset:
        if favorite:
            count = Asset.favorite_count + 1
        else:
            count = case(
                (Asset.favorite_count > 0, Asset.favorite_count - 1), else_=0,
            )
        return await self._bump_counter(token_id, favorite_count=count)

    async def _bump_counter(self, token_id: int, **values) -> Asset:
        """Apply a counter expression in SQL, then reload the row."""
        result = await self._db.execute(
            update(Asset)
            .where(Asset.token_id == token_id)
            .values(**values)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount == 0:
            raise ResourceNotFoundError("Asset", str(token_id))
        await self._db.commit()
        return await self._db.scalar(
            select(Asset)
            .where(Asset.token_id == token_id)
            .execution_options(populate_existing=True),
        )

    # ─── Market ──────────────────────────────────────────────────

    async def list_for_sale(
        self, token_id: int, listing_price: float, wallet_address: str,
    ) -> tuple[Asset, Transaction]:
        asset = await self.get(token_id)
        ctx = ErrorContext(wallet_address=wallet_address, token_id=token_id)
        if not is_owner(wallet_address, asset.current_owner):
            raise PermissionDeniedError("Only the owner can list this asset", ctx)
        if asset.is_listed:
            raise BusinessRuleError(
                "Asset is already listed for sale", "ALREADY_LISTED", ctx,
            )

        asset.is_listed = True
        asset.listing_price = listing_price
        asset.listed_at = utcnow()
        asset.listed_by = wallet_address.lower()
        price_usd = derive_usd_price(
            listing_price, asset.price_value, asset.price_value_usd,
        )
        tx = self._ledger.stage(
            asset, TransactionType.LIST, TransactionStatus.COMPLETED,
            price=listing_price, price_usd=price_usd, seller=wallet_address,
        )
        await self._db.commit()
        logger.info(
            "Asset listed",
            extra={"token_id": token_id, "wallet_address": wallet_address},
        )
        return asset, tx

    async def delist(
        self, token_id: int, wallet_address: str, roles: list[str],
    ) -> tuple[Asset, Transaction]:
        asset = await self.get(token_id)
        ctx = ErrorContext(wallet_address=wallet_address, token_id=token_id)
        if not (
            is_owner(wallet_address, asset.current_owner)
            or has_any_role(roles, [Role.ADMIN])
        ):
            raise PermissionDeniedError(
                "Only the owner or an admin can delist this asset", ctx,
            )
        if not asset.is_listed:
            raise BusinessRuleError(
                "Asset is not currently listed", "NOT_LISTED", ctx,
            )

        clear_listing(asset)
        tx = self._ledger.stage(
            asset, TransactionType.DELIST, TransactionStatus.COMPLETED,
            seller=wallet_address,
        )
        await self._db.commit()
        logger.info(
            "Asset delisted",
            extra={"token_id": token_id, "wallet_address": wallet_address},
        )
        return asset, tx

    async def update_price(
        self,
        token_id: int,
        price: float,
        price_usd: float,
        source_type: PriceSourceType,
        ai_confidence_score: float | None = None,
        data_source_name: str | None = None,
    ) -> Asset:
        asset = await self.get(token_id)
        apply_price(asset, price, price_usd, ai_confidence_score)
        self._history.record_point(
            asset, price, price_usd, source_type,
            data_source_name=data_source_name,
            ai_confidence_score=ai_confidence_score,
        )
        await self._db.commit()
        logger.info(
            f"Price updated to {price}",
            extra={"token_id": token_id},
        )
        return asset

    # ─── Verification ────────────────────────────────────────────

    async def verify(
        self,
        token_id: int,
        verifier: str,
        verification_data: dict | None = None,
    ) -> Asset:
        asset = await self.get(token_id)
        asset.is_verified = True
        asset.verified_by = verifier.lower()
        asset.verified_at = utcnow()
        asset.verification_data = dict(verification_data) if verification_data else None
        await self._db.commit()
        logger.info(
            "Asset verified",
            extra={"token_id": token_id, "wallet_address": verifier.lower()},
        )
        return asset

    async def unverify(self, token_id: int, admin: str) -> Asset:
        asset = await self.get(token_id)
        if not asset.is_verified:
            raise BusinessRuleError(
                "Asset is not verified", "NOT_VERIFIED",
                ErrorContext(token_id=token_id),
            )
        now = utcnow()
        asset.is_verified = False
        asset.verified_by = None
        asset.verified_at = None
        asset.verification_data = {
            **(asset.verification_data or {}),
            "isVerified": False,
            "removalReason": "Admin action",
            "removedBy": admin.lower(),
            "removedAt": isoformat_utc(now),
        }
        await self._db.commit()
        logger.info("Asset verification removed", extra={"token_id": token_id})
        return asset


def apply_price(
    asset: Asset,
    price: float,
    price_usd: float,
    ai_confidence_score: float | None = None,
) -> None:
    asset.price_value = price
    asset.price_value_usd = price_usd
    asset.price_updated_at = utcnow()
    asset.ai_confidence_score = ai_confidence_score


def _filter_conditions(filters: AssetFilters) -> list:
    conditions = []
    if filters.asset_type:
        conditions.append(Asset.asset_type == filters.asset_type)
    if filters.current_owner:
        conditions.append(Asset.current_owner == filters.current_owner.lower())
    if filters.is_listed is not None:
        conditions.append(Asset.is_listed.is_(filters.is_listed))
    if filters.price_min is not None:
        conditions.append(Asset.price_value >= filters.price_min)
    if filters.price_max is not None:
        conditions.append(Asset.price_value <= filters.price_max)
    return conditions
