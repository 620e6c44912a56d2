"""TransactionService — the marketplace ledger: queries, stats, and event recording.

Invariants:
    - Listings are newest first; absent filters are not applied
    - A wallet's history matches buyer OR seller
    - Blockchain data (tx_hash + block_number) stored only when both are given
    - tx_hash is unique: a reused hash is a 409, not a driver error
    - A sale transfers ownership to the buyer and delists the asset
    - offer_count is incremented in SQL so concurrent offers are all counted
    - stage_* helpers never commit; record_* use cases do
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.core.access_rules import page_offset
from dynamicvault.core.clock import utcnow
from dynamicvault.core.domain_types import (
    StatsPeriod, TransactionStatus, TransactionType,
)
from dynamicvault.core.errors import ConflictError, ResourceNotFoundError
from dynamicvault.models.asset import Asset
from dynamicvault.models.transaction import Transaction

logger = logging.getLogger(__name__)

_STATS_WINDOWS = {
    StatsPeriod.DAY: timedelta(days=1),
    StatsPeriod.WEEK: timedelta(days=7),
    StatsPeriod.MONTH: timedelta(days=30),
}
RECENT_TRANSACTIONS = 5


@dataclass
class TransactionFilters:
    token_id: int | None = None
    asset_id: uuid.UUID | None = None
    type: TransactionType | None = None
    seller: str | None = None
    buyer: str | None = None
    status: TransactionStatus | None = None
    start: datetime | None = None
    end: datetime | None = None


class TransactionService:
    def __init__(self, db: AsyncSession):
        self._db = db

    # ─── Queries ─────────────────────────────────────────────────

    async def list_transactions(
        self, filters: TransactionFilters, page: int = 1, limit: int = 10,
    ) -> tuple[list[Transaction], int]:
        conditions = _filter_conditions(filters)
        return await self._paginate(conditions, page, limit)

    async def list_for_wallet(
        self,
        wallet_address: str,
        page: int = 1,
        limit: int = 20,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[list[Transaction], int]:
        wallet = wallet_address.lower()
        conditions = [or_(Transaction.buyer == wallet, Transaction.seller == wallet)]
        conditions += _filter_conditions(TransactionFilters(start=start, end=end))
        return await self._paginate(conditions, page, limit)

    async def get(self, transaction_id: uuid.UUID) -> Transaction:
        tx = await self._db.get(Transaction, transaction_id)
        if tx is None:
            raise ResourceNotFoundError("Transaction", str(transaction_id))
        return tx

    async def stats(self, period: StatsPeriod = StatsPeriod.DAY) -> dict:
        end = utcnow()
        start = end - _STATS_WINDOWS[StatsPeriod(period)]
        completed = Transaction.status == TransactionStatus.COMPLETED.value
        in_window = [Transaction.timestamp >= start, Transaction.timestamp <= end]

        count, volume = (await self._db.execute(
            select(func.count(), func.coalesce(func.sum(Transaction.price), 0.0))
            .where(
                Transaction.type == TransactionType.SELL.value,
                completed, *in_window,
            ),
        )).one()

        by_type = await self._db.execute(
            select(Transaction.type, func.count())
            .where(completed, *in_window)
            .group_by(Transaction.type),
        )

        recent = await self._db.execute(
            select(Transaction)
            .where(completed)
            .order_by(Transaction.timestamp.desc())
            .limit(RECENT_TRANSACTIONS),
        )
        return {
            "totalCount": count,
            "totalVolume": float(volume),
            "salesByType": {tx_type: n for tx_type, n in by_type.all()},
            "recentTransactions": list(recent.scalars().all()),
        }

    # ─── Recording ───────────────────────────────────────────────

    def stage(
        self,
        asset: Asset,
        tx_type: TransactionType,
        status: TransactionStatus,
        *,
        price: float | None = None,
        price_usd: float | None = None,
        seller: str | None = None,
        buyer: str | None = None,
        platform_fee: float | None = None,
        tx_hash: str | None = None,
        block_number: int | None = None,
    ) -> Transaction:
        """Add a ledger row for `asset` to the session without committing."""
        has_block = tx_hash is not None and block_number is not None
        tx = Transaction(
            id=uuid.uuid4(),
            type=TransactionType(tx_type).value,
            token_id=asset.token_id,
            asset_id=asset.id,
            price=price,
            price_usd=price_usd,
            seller=seller.lower() if seller else None,
            buyer=buyer.lower() if buyer else None,
            timestamp=utcnow(),
            status=TransactionStatus(status).value,
            platform_fee=platform_fee,
            tx_hash=tx_hash if has_block else None,
            block_number=block_number if has_block else None,
            payment_method="eth",
            asset=asset,
        )
        self._db.add(tx)
        return tx

    async def record_mint(
        self,
        token_id: int,
        minter: str,
        tx_hash: str | None = None,
        block_number: int | None = None,
    ) -> Transaction:
        asset = await self._get_asset(token_id)
        await self._ensure_unique_hash(tx_hash, block_number)
        tx = self.stage(
            asset, TransactionType.MINT, TransactionStatus.COMPLETED,
            buyer=minter, tx_hash=tx_hash, block_number=block_number,
        )
        await self._db.commit()
        logger.info("Mint recorded", extra={"token_id": token_id})
        return tx

    async def record_sale(
        self,
        token_id: int,
        price: float,
        price_usd: float,
        seller: str,
        buyer: str,
        platform_fee: float | None = None,
        tx_hash: str | None = None,
        block_number: int | None = None,
    ) -> Transaction:
        asset = await self._get_asset(token_id)
        await self._ensure_unique_hash(tx_hash, block_number)
        transfer_ownership(asset, buyer)
        tx = self.stage(
            asset, TransactionType.SELL, TransactionStatus.COMPLETED,
            price=price, price_usd=price_usd, seller=seller, buyer=buyer,
            platform_fee=platform_fee, tx_hash=tx_hash, block_number=block_number,
        )
        await self._db.commit()
        logger.info(
            "Sale recorded",
            extra={"token_id": token_id, "wallet_address": buyer.lower()},
        )
        return tx

    async def record_offer(
        self,
        token_id: int,
        price: float,
        price_usd: float,
        seller: str,
        buyer: str,
    ) -> Transaction:
        asset = await self._get_asset(token_id)
        await self._db.execute(
            update(Asset)
            .where(Asset.id == asset.id)
            .values(offer_count=Asset.offer_count + 1)
            .execution_options(synchronize_session=False),
        )
        tx = self.stage(
            asset, TransactionType.OFFER, TransactionStatus.PENDING,
            price=price, price_usd=price_usd, seller=seller, buyer=buyer,
        )
        await self._db.commit()
        return tx

    async def update_status(
        self,
        transaction_id: uuid.UUID,
        status: TransactionStatus,
        tx_hash: str | None = None,
        block_number: int | None = None,
    ) -> Transaction:
        tx = await self.get(transaction_id)
        tx.status = TransactionStatus(status).value
        if tx_hash is not None and block_number is not None:
            if tx_hash != tx.tx_hash:
                await self._ensure_unique_hash(tx_hash, block_number)
            tx.tx_hash = tx_hash
            tx.block_number = block_number
        await self._db.commit()
        return tx

    async def delete(self, transaction_id: uuid.UUID) -> None:
        tx = await self.get(transaction_id)
        await self._db.delete(tx)
        await self._db.commit()
        logger.info(
            "Transaction deleted", extra={"resource_id": str(transaction_id)},
        )

    # ─── Helpers ─────────────────────────────────────────────────

    async def _paginate(
        self, conditions: list, page: int, limit: int,
    ) -> tuple[list[Transaction], int]:
        total = await self._db.scalar(
            select(func.count()).select_from(Transaction).where(*conditions),
        )
        result = await self._db.execute(
            select(Transaction)
            .where(*conditions)
            .order_by(Transaction.timestamp.desc())
            .offset(page_offset(page, limit))
            .limit(limit),
        )
        return list(result.scalars().all()), total or 0

    async def _get_asset(self, token_id: int) -> Asset:
        asset = await self._db.scalar(
            select(Asset).where(Asset.token_id == token_id),
        )
        if asset is None:
            raise ResourceNotFoundError("Asset", str(token_id))
        return asset

    async def _ensure_unique_hash(
        self, tx_hash: str | None, block_number: int | None,
    ) -> None:
        if tx_hash is None or block_number is None:
            return
        existing = await self._db.scalar(
            select(Transaction.id).where(Transaction.tx_hash == tx_hash),
        )
        if existing is not None:
            raise ConflictError(f"Transaction hash '{tx_hash}' already recorded")


def transfer_ownership(asset: Asset, new_owner: str) -> None:
    """Hand the asset to `new_owner`; any open listing is withdrawn."""
    asset.current_owner = new_owner.lower()
    asset.owner_since = utcnow()
    clear_listing(asset)


def clear_listing(asset: Asset) -> None:
    asset.is_listed = False
    asset.listing_price = None
    asset.listed_at = None
    asset.listed_by = None


def _filter_conditions(filters: TransactionFilters) -> list:
    conditions = []
    if filters.token_id is not None:
        conditions.append(Transaction.token_id == filters.token_id)
    if filters.asset_id is not None:
        conditions.append(Transaction.asset_id == filters.asset_id)
    if filters.type is not None:
        conditions.append(Transaction.type == TransactionType(filters.type).value)
    if filters.seller:
        conditions.append(Transaction.seller == filters.seller.lower())
    if filters.buyer:
        conditions.append(Transaction.buyer == filters.buyer.lower())
    if filters.status is not None:
        conditions.append(
            Transaction.status == TransactionStatus(filters.status).value,
        )
    if filters.start is not None:
        conditions.append(Transaction.timestamp >= filters.start)
    if filters.end is not None:
        conditions.append(Transaction.timestamp <= filters.end)
    return conditions
