"""Assets, price history, and the transaction ledger.

Revision ID: 002_assets_and_ledger
Revises: 001_initial
Create Date: 2026-10-19

Transactions keep their row when the asset goes away (asset_id SET NULL);
price history is owned by the asset (CASCADE).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "002_assets_and_ledger"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "assets",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("token_id", sa.BigInteger, nullable=False, unique=True),
        sa.Column("contract_address", sa.String(42), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("asset_type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("metadata", sa.JSON, nullable=False),
        sa.Column("media", sa.JSON, nullable=False),
        sa.Column("price_value", sa.Float, nullable=False),
        sa.Column("price_value_usd", sa.Float, nullable=False),
        sa.Column("price_updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("ai_confidence_score", sa.Float, nullable=True),
        sa.Column("is_listed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("listing_price", sa.Float, nullable=True),
        sa.Column("listed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("listed_by", sa.String(42), nullable=True),
        sa.Column("current_owner", sa.String(42), nullable=False),
        sa.Column("owner_since", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("verified_by", sa.String(42), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_data", sa.JSON, nullable=True),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("favorite_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("offer_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_assets_token_id", "assets", ["token_id"])
    op.create_index("ix_assets_asset_type", "assets", ["asset_type"])
    op.create_index("ix_assets_is_listed", "assets", ["is_listed"])
    op.create_index("ix_assets_current_owner", "assets", ["current_owner"])
    op.create_index("ix_assets_created_at", "assets", ["created_at"])

    op.create_table(
        "price_history",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "asset_id", UUID(as_uuid=True),
            sa.ForeignKey("assets.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("token_id", sa.BigInteger, nullable=False),
        sa.Column("price", sa.Float, nullable=False),
        sa.Column("price_usd", sa.Float, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("source_type", sa.String(20), nullable=False),
        sa.Column("data_source_name", sa.String(100), nullable=True),
        sa.Column("model_version", sa.String(50), nullable=True),
        sa.Column("ai_confidence_score", sa.Float, nullable=True),
        sa.Column("ai_factors", sa.JSON, nullable=True),
        sa.Column("tx_hash", sa.String(66), nullable=True),
        sa.Column("block_number", sa.Integer, nullable=True),
        sa.Column("block_timestamp", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_price_history_asset_id", "price_history", ["asset_id"])
    op.create_index(
        "ix_price_history_token_timestamp", "price_history",
        ["token_id", "timestamp"],
    )

    op.create_table(
        "transactions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("token_id", sa.BigInteger, nullable=False),
        sa.Column(
            "asset_id", UUID(as_uuid=True),
            sa.ForeignKey("assets.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("price", sa.Float, nullable=True),
        sa.Column("price_usd", sa.Float, nullable=True),
        sa.Column("seller", sa.String(42), nullable=True),
        sa.Column("buyer", sa.String(42), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("tx_hash", sa.String(66), nullable=True, unique=True),
        sa.Column("block_number", sa.Integer, nullable=True),
        sa.Column("gas_used", sa.BigInteger, nullable=True),
        sa.Column("gas_price_wei", sa.String(78), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("platform_fee", sa.Float, nullable=True),
        sa.Column("payment_method", sa.String(20), nullable=False, server_default="eth"),
    )
    op.create_index("ix_transactions_type", "transactions", ["type"])
    op.create_index("ix_transactions_token_id", "transactions", ["token_id"])
    op.create_index("ix_transactions_asset_id", "transactions", ["asset_id"])
    op.create_index("ix_transactions_seller", "transactions", ["seller"])
    op.create_index("ix_transactions_buyer", "transactions", ["buyer"])
    op.create_index(
        "ix_transactions_status_timestamp", "transactions",
        ["status", "timestamp"],
    )


def downgrade() -> None:
    op.drop_table("transactions")
    op.drop_table("price_history")
    op.drop_table("assets")
