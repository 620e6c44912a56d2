"""Transaction Routes — ledger queries, stats, and recording of mints, sales, offers.

Invariants:
    - Reads are public; recording and status changes need admin or oracle;
      deletion is admin-only
    - /stats and the recording paths are registered before /{transaction_id}
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.api import serializers
from dynamicvault.api.dependencies import parse_date_param, require_roles
from dynamicvault.core.access_rules import total_pages
from dynamicvault.core.domain_types import (
    Role, StatsPeriod, TransactionStatus, TransactionType,
)
from dynamicvault.infrastructure.database import get_db
from dynamicvault.schemas.transaction import (
    MintRequest, OfferRequest, SaleRequest, TransactionStatusUpdate,
)
from dynamicvault.services.auth_service import AuthContext
from dynamicvault.services.transaction_service import (
    TransactionFilters, TransactionService,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/transactions", tags=["transactions"])

_recorders = require_roles(Role.ADMIN, Role.ORACLE)


@router.get("")
async def list_transactions(
    token_id: int | None = Query(None, alias="tokenId", gt=0),
    asset_id: UUID | None = Query(None, alias="assetId"),
    tx_type: TransactionType | None = Query(None, alias="type"),
    seller: str | None = Query(None),
    buyer: str | None = Query(None),
    tx_status: TransactionStatus | None = Query(None, alias="status"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = TransactionFilters(
        token_id=token_id,
        asset_id=asset_id,
        type=tx_type,
        seller=seller,
        buyer=buyer,
        status=tx_status,
        start=parse_date_param(start_date, "startDate"),
        end=parse_date_param(end_date, "endDate"),
    )
    rows, total = await TransactionService(db).list_transactions(filters, page, limit)
    return {
        "transactions": [serializers.transaction(tx) for tx in rows],
        "pagination": serializers.pagination(total, page, total_pages(total, limit)),
    }


@router.get("/stats")
async def transaction_stats(
    period: StatsPeriod = Query(StatsPeriod.DAY),
    db: AsyncSession = Depends(get_db),
):
    stats = await TransactionService(db).stats(period)
    stats["recentTransactions"] = [
        serializers.transaction(tx) for tx in stats["recentTransactions"]
    ]
    return stats


@router.post("/mint", status_code=status.HTTP_201_CREATED)
async def record_mint(
    body: MintRequest,
    user: AuthContext = Depends(_recorders),
    db: AsyncSession = Depends(get_db),
):
    tx = await TransactionService(db).record_mint(
        body.token_id, body.minter, body.transaction_hash, body.block_number,
    )
    return {"message": "Mint recorded", "transaction": serializers.transaction(tx)}


@router.post("/sale", status_code=status.HTTP_201_CREATED)
async def record_sale(
    body: SaleRequest,
    user: AuthContext = Depends(_recorders),
    db: AsyncSession = Depends(get_db),
):
    tx = await TransactionService(db).record_sale(
        body.token_id, body.price, body.price_usd, body.seller, body.buyer,
        body.platform_fee, body.transaction_hash, body.block_number,
    )
    return {"message": "Sale recorded", "transaction": serializers.transaction(tx)}


@router.post("/offer", status_code=status.HTTP_201_CREATED)
async def record_offer(
    body: OfferRequest,
    user: AuthContext = Depends(_recorders),
    db: AsyncSession = Depends(get_db),
):
    tx = await TransactionService(db).record_offer(
        body.token_id, body.price, body.price_usd, body.seller, body.buyer,
    )
    return {"message": "Offer recorded", "transaction": serializers.transaction(tx)}


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: UUID, db: AsyncSession = Depends(get_db),
):
    tx = await TransactionService(db).get(transaction_id)
    return {"transaction": serializers.transaction(tx)}


@router.patch("/{transaction_id}/status")
async def update_transaction_status(
    transaction_id: UUID,
    body: TransactionStatusUpdate,
    user: AuthContext = Depends(_recorders),
    db: AsyncSession = Depends(get_db),
):
    tx = await TransactionService(db).update_status(
        transaction_id, body.status, body.transaction_hash, body.block_number,
    )
    return {
        "message": "Transaction status updated",
        "transaction": serializers.transaction(tx),
    }


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: UUID,
    user: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    await TransactionService(db).delete(transaction_id)
    return {"message": "Transaction deleted successfully"}
