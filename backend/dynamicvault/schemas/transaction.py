"""Transaction Schemas — mint, sale, offer, and status-update bodies."""

from pydantic import Field, PositiveInt

from dynamicvault.core.domain_types import TransactionStatus
from dynamicvault.schemas.base import (
    CamelModel, TransactionHashStr, WalletAddressStr,
)


class MintRequest(CamelModel):
    token_id: PositiveInt
    minter: WalletAddressStr
    transaction_hash: TransactionHashStr | None = None
    block_number: int | None = Field(None, ge=0)


class SaleRequest(CamelModel):
    token_id: PositiveInt
    price: float = Field(gt=0)
    price_usd: float = Field(gt=0)
    seller: WalletAddressStr
    buyer: WalletAddressStr
    platform_fee: float | None = Field(None, ge=0)
    transaction_hash: TransactionHashStr | None = None
    block_number: int | None = Field(None, ge=0)


class OfferRequest(CamelModel):
    token_id: PositiveInt
    price: float = Field(gt=0)
    price_usd: float = Field(gt=0)
    seller: WalletAddressStr
    buyer: WalletAddressStr


class TransactionStatusUpdate(CamelModel):
    status: TransactionStatus
    transaction_hash: TransactionHashStr | None = None
    block_number: int | None = Field(None, ge=0)
