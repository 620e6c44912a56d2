"""Domain Types — shared value enums and the wallet address format.

Invariants:
    - Wallet addresses match WALLET_ADDRESS_PATTERN and are lowercased at the API boundary
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum


# ─── Identity ────────────────────────────────────────────────────

WALLET_ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"


# ─── Enums ───────────────────────────────────────────────────────

class Role(str, Enum):
    """Access roles — a user holds one or more."""
    USER = "user"
    ADMIN = "admin"
    ORACLE = "oracle"


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class TransactionType(str, Enum):
    """Marketplace events recorded against a token."""
    MINT = "mint"
    LIST = "list"
    BUY = "buy"
    SELL = "sell"
    DELIST = "delist"
    TRANSFER = "transfer"
    OFFER = "offer"
    OFFER_ACCEPT = "offer_accept"
    OFFER_REJECT = "offer_reject"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PriceSourceType(str, Enum):
    """Origin of a price-history point."""
    AI_ORACLE = "ai-oracle"
    USER_LISTING = "user-listing"
    SALE = "sale"
    MANUAL = "manual"


class PredictionStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    REJECTED = "rejected"
    ACCEPTED = "accepted"


class DataSourceType(str, Enum):
    API = "api"
    FILE = "file"
    STREAM = "stream"


class AggregationPeriod(str, Enum):
    """Bucket width for aggregated price history."""
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class StatsPeriod(str, Enum):
    """Look-back window for transaction statistics."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
