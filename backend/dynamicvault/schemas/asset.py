"""Asset Schemas — creation, metadata, pricing, listing, and verification bodies.

Invariants:
    - Prices are strictly positive; AI confidence in [0, 100]
    - Metadata dates must parse as ISO-8601 (stored as ISO strings)
    - Provenance documentation and certificate fileKey default to ""
"""

from typing import Any

from pydantic import Field, PositiveInt, field_validator

from dynamicvault.core.clock import parse_iso_datetime
from dynamicvault.schemas.base import CamelModel, WalletAddressStr


def _iso_date(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return parse_iso_datetime(value).isoformat()
    except ValueError:
        raise ValueError("must be an ISO-8601 date")


class PriceInput(CamelModel):
    value: float = Field(gt=0)
    value_usd: float = Field(gt=0)


class OwnershipInput(CamelModel):
    current_owner: WalletAddressStr


class AssetCreate(CamelModel):
    token_id: PositiveInt
    contract_address: str = Field(pattern=r"^0x[0-9a-fA-F]+$", max_length=42)
    name: str = Field(min_length=1, max_length=200)
    asset_type: str = Field(min_length=1, max_length=50)
    description: str
    current_price: PriceInput
    ownership: OwnershipInput


class ProvenanceEntry(CamelModel):
    owner: str
    period: str
    documentation: str = ""


class Certificate(CamelModel):
    type: str
    issuer: str
    date: str
    file_key: str = ""

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _iso_date(v)


class AssetMetadataUpdate(CamelModel):
    asset_location: str | None = None
    acquisition_date: str | None = None
    dimensions: str | None = None
    materials: list[str] | None = None
    creator: str | None = None
    creation_date: str | None = None
    condition: str | None = None
    provenance: list[ProvenanceEntry] | None = None
    certificates: list[Certificate] | None = None
    custom_attributes: dict[str, Any] | None = None

    @field_validator("acquisition_date", "creation_date")
    @classmethod
    def validate_dates(cls, v: str | None) -> str | None:
        return _iso_date(v)


class PriceUpdate(CamelModel):
    price: float = Field(gt=0)
    price_usd: float = Field(gt=0)
    ai_confidence_score: float | None = Field(None, ge=0, le=100)


class ListingCreate(CamelModel):
    listing_price: float = Field(gt=0)


class VerificationRequest(CamelModel):
    verification_data: dict[str, Any] | None = None
