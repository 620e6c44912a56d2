"""AI oracle predictions and the data-source registry.

Revision ID: 003_oracle_and_data_sources
Revises: 002_assets_and_ledger
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "003_oracle_and_data_sources"
down_revision: Union[str, None] = "002_assets_and_ledger"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "oracle_predictions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "asset_id", UUID(as_uuid=True),
            sa.ForeignKey("assets.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("token_id", sa.BigInteger, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("predicted_price", sa.Float, nullable=False),
        sa.Column("confidence_score", sa.Float, nullable=False),
        sa.Column("data_sources_used", sa.JSON, nullable=False),
        sa.Column("model_version", sa.String(50), nullable=False),
        sa.Column("inputs", sa.JSON, nullable=False),
        sa.Column("feature_importance", sa.JSON, nullable=False),
        sa.Column("performance_metrics", sa.JSON, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("onchain_tx_hash", sa.String(66), nullable=True),
        sa.Column("onchain_block_number", sa.Integer, nullable=True),
        sa.Column("onchain_timestamp", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_oracle_predictions_asset_id", "oracle_predictions", ["asset_id"])
    op.create_index("ix_oracle_predictions_token_id", "oracle_predictions", ["token_id"])
    op.create_index("ix_oracle_predictions_status", "oracle_predictions", ["status"])

    op.create_table(
        "data_sources",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("url", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("configuration", sa.JSON, nullable=False),
        sa.Column("is_enabled", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("last_fetch_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_fetch_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("reliability", sa.Float, nullable=False, server_default="100"),
        sa.Column("latency", sa.Float, nullable=False, server_default="0"),
        sa.Column("price_accuracy", sa.Float, nullable=False, server_default="80"),
        sa.Column("ai_weighting", sa.Float, nullable=False, server_default="0.5"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_data_sources_name", "data_sources", ["name"])
    op.create_index("ix_data_sources_type", "data_sources", ["type"])
    op.create_index("ix_data_sources_is_enabled", "data_sources", ["is_enabled"])


def downgrade() -> None:
    op.drop_table("data_sources")
    op.drop_table("oracle_predictions")
