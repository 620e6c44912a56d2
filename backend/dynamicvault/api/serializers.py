"""Serializers — ORM rows to camelCase response dictionaries.

Invariants:
    - Timestamps are ISO-8601 UTC strings (or None)
    - Secrets never serialized: no nonce, token hash, or API key digest
    - Nested groups mirror the public document shape (currentPrice, marketStatus,
      ownership, verification, stats)
"""

import uuid

from dynamicvault.core.clock import isoformat_utc
from dynamicvault.models.asset import Asset
from dynamicvault.models.auth_session import AuthSession
from dynamicvault.models.data_source import DataSource
from dynamicvault.models.oracle_prediction import OraclePrediction
from dynamicvault.models.price_history import PriceHistory
from dynamicvault.models.transaction import Transaction
from dynamicvault.models.user import User
from dynamicvault.services.user_service import is_api_key_active


def pagination(total: int, page: int, total_pages: int) -> dict:
    return {"total": total, "page": page, "totalPages": total_pages}


# ─── Users & sessions ────────────────────────────────────────────

def user_profile(user: User) -> dict:
    return {
        "walletAddress": user.wallet_address,
        "roles": list(user.roles or []),
        "createdAt": isoformat_utc(user.created_at),
        "lastLogin": isoformat_utc(user.last_login),
        "profileInfo": user.profile_info or {},
        "status": user.status,
    }


def api_key(entry: dict) -> dict:
    return {
        "name": entry["name"],
        "permissions": list(entry.get("permissions", [])),
        "createdAt": entry.get("createdAt"),
        "expiresAt": entry.get("expiresAt"),
        "isActive": is_api_key_active(entry),
    }


def auth_session(session: AuthSession, current_session_id: uuid.UUID) -> dict:
    return {
        "id": str(session.id),
        "createdAt": isoformat_utc(session.created_at),
        "expiresAt": isoformat_utc(session.expires_at),
        "ipAddress": session.ip_address,
        "userAgent": session.user_agent,
        "isCurrentSession": session.id == current_session_id,
    }


# ─── Assets ──────────────────────────────────────────────────────

def _current_price(asset: Asset) -> dict:
    return {
        "value": asset.price_value,
        "valueUsd": asset.price_value_usd,
        "updatedAt": isoformat_utc(asset.price_updated_at),
        "aiConfidenceScore": asset.ai_confidence_score,
    }


def asset_summary(asset: Asset) -> dict:
    return {
        "id": str(asset.id),
        "tokenId": asset.token_id,
        "contractAddress": asset.contract_address,
        "name": asset.name,
        "assetType": asset.asset_type,
        "thumbnailUrl": (asset.media or {}).get("thumbnailUrl"),
        "currentPrice": _current_price(asset),
        "isListed": asset.is_listed,
        "currentOwner": asset.current_owner,
        "isVerified": asset.is_verified,
    }


def asset_detail(asset: Asset) -> dict:
    return {
        "id": str(asset.id),
        "tokenId": asset.token_id,
        "contractAddress": asset.contract_address,
        "name": asset.name,
        "assetType": asset.asset_type,
        "description": asset.description,
        "metadata": asset.asset_metadata or {},
        "media": asset.media or {},
        "currentPrice": _current_price(asset),
        "marketStatus": {
            "isListed": asset.is_listed,
            "listingPrice": asset.listing_price,
            "listedAt": isoformat_utc(asset.listed_at),
            "listedBy": asset.listed_by,
        },
        "ownership": {
            "currentOwner": asset.current_owner,
            "ownerSince": isoformat_utc(asset.owner_since),
        },
        "verification": {
            "isVerified": asset.is_verified,
            "verifiedBy": asset.verified_by,
            "verifiedAt": isoformat_utc(asset.verified_at),
            "verificationData": asset.verification_data,
        },
        "stats": {
            "viewCount": asset.view_count,
            "favoriteCount": asset.favorite_count,
            "offerCount": asset.offer_count,
        },
        "createdAt": isoformat_utc(asset.created_at),
        "updatedAt": isoformat_utc(asset.updated_at),
    }


def price_point(point: PriceHistory) -> dict:
    body = {
        "id": str(point.id),
        "tokenId": point.token_id,
        "price": point.price,
        "priceUsd": point.price_usd,
        "timestamp": isoformat_utc(point.timestamp),
        "source": {
            "type": point.source_type,
            "dataSourceName": point.data_source_name,
            "modelVersion": point.model_version,
        },
    }
    if point.ai_confidence_score is not None or point.ai_factors:
        body["aiMetrics"] = {
            "confidenceScore": point.ai_confidence_score,
            "factors": point.ai_factors or [],
        }
    if point.tx_hash is not None:
        body["blockchain"] = {
            "transactionHash": point.tx_hash,
            "blockNumber": point.block_number,
            "timestamp": isoformat_utc(point.block_timestamp),
        }
    return body


# ─── Transactions ────────────────────────────────────────────────

def _blockchain(tx: Transaction) -> dict | None:
    if tx.tx_hash is None:
        return None
    return {
        "transactionHash": tx.tx_hash,
        "blockNumber": tx.block_number,
        "gasUsed": tx.gas_used,
        "gasPrice": tx.gas_price_wei,
    }


def _asset_ref(tx: Transaction) -> dict | None:
    if tx.asset_id is None:
        return None
    return {
        "id": str(tx.asset_id),
        "name": tx.asset.name if tx.asset is not None else None,
    }


def transaction(tx: Transaction) -> dict:
    return {
        "id": str(tx.id),
        "type": tx.type,
        "tokenId": tx.token_id,
        "asset": _asset_ref(tx),
        "price": tx.price,
        "priceUsd": tx.price_usd,
        "seller": tx.seller,
        "buyer": tx.buyer,
        "timestamp": isoformat_utc(tx.timestamp),
        "blockchain": _blockchain(tx),
        "status": tx.status,
        "platformFee": tx.platform_fee,
        "paymentMethod": tx.payment_method,
    }


def wallet_transaction(tx: Transaction, wallet_address: str) -> dict:
    wallet = wallet_address.lower()
    is_buyer = tx.buyer == wallet
    return {
        "id": str(tx.id),
        "type": tx.type,
        "tokenId": tx.token_id,
        "asset": _asset_ref(tx),
        "price": tx.price,
        "priceUsd": tx.price_usd,
        "isBuyer": is_buyer,
        "isSeller": tx.seller == wallet,
        "counterparty": tx.seller if is_buyer else tx.buyer,
        "timestamp": isoformat_utc(tx.timestamp),
        "status": tx.status,
    }


# ─── Oracle ──────────────────────────────────────────────────────

def prediction_summary(prediction: OraclePrediction) -> dict:
    return {
        "id": str(prediction.id),
        "tokenId": prediction.token_id,
        "timestamp": isoformat_utc(prediction.timestamp),
        "predictedPrice": prediction.predicted_price,
        "confidenceScore": prediction.confidence_score,
        "modelVersion": prediction.model_version,
        "status": prediction.status,
    }


def prediction_detail(prediction: OraclePrediction) -> dict:
    on_chain = None
    if prediction.onchain_tx_hash is not None:
        on_chain = {
            "transactionHash": prediction.onchain_tx_hash,
            "blockNumber": prediction.onchain_block_number,
            "timestamp": isoformat_utc(prediction.onchain_timestamp),
        }
    return {
        **prediction_summary(prediction),
        "assetId": str(prediction.asset_id),
        "dataSourcesUsed": list(prediction.data_sources_used or []),
        "inputs": prediction.inputs or {},
        "featureImportance": list(prediction.feature_importance or []),
        "performanceMetrics": prediction.performance_metrics,
        "rejectionReason": prediction.rejection_reason,
        "onChainReference": on_chain,
    }


# ─── Data sources ────────────────────────────────────────────────

def data_source(source: DataSource) -> dict:
    return {
        "id": str(source.id),
        "name": source.name,
        "type": source.type,
        "url": source.url,
        "description": source.description,
        "configuration": source.configuration or {},
        "status": {
            "isEnabled": source.is_enabled,
            "lastFetchAt": isoformat_utc(source.last_fetch_at),
            "nextFetchAt": isoformat_utc(source.next_fetch_at),
            "errorCount": source.error_count,
            "lastError": source.last_error,
        },
        "metrics": {
            "reliability": source.reliability,
            "latency": source.latency,
            "priceAccuracy": source.price_accuracy,
        },
        "aiWeighting": source.ai_weighting,
        "createdAt": isoformat_utc(source.created_at),
        "updatedAt": isoformat_utc(source.updated_at),
    }
