"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


NETWORKS = ("MTN", "TELECEL", "AIRTELTIGO")


def upgrade():
    op.create_table(
        "bundles",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("network", sa.Enum(*NETWORKS, name="network"), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("data_amount", sa.String(32), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_bundles_network", "bundles", ["network"], unique=False)
    op.create_index("ix_bundles_network_active", "bundles", ["network", "is_active"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("reference", sa.String(64), nullable=False),
        sa.Column("bundle_id", sa.Integer, sa.ForeignKey("bundles.id"), nullable=True),
        sa.Column("network", sa.Enum(*NETWORKS, name="network", create_type=False), nullable=False),
        sa.Column("data_amount", sa.String(32), nullable=False),
        sa.Column("recipient_phone", sa.String(32), nullable=False),
        sa.Column(
            "status",
            sa.Enum("queued", "processing", "success", "failed", name="transactionstatus"),
            nullable=False,
        ),
        sa.Column("provider_order_id", sa.String(128), nullable=True),
        sa.Column("provider_reference", sa.String(128), nullable=True),
        sa.Column("retries", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_transactions_reference", "transactions", ["reference"], unique=True)
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"], unique=False)
    op.create_index("ix_transactions_provider_order_id", "transactions", ["provider_order_id"], unique=False)
    op.create_index("ix_transactions_provider_reference", "transactions", ["provider_reference"], unique=False)
    op.create_index("ix_transactions_status_created", "transactions", ["status", "created_at"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("title", sa.String(128), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="info"),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"], unique=False)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, nullable=True),
        sa.Column("type", sa.String(32), nullable=False, server_default="system"),
        sa.Column("level", sa.String(16), nullable=False, server_default="info"),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_activity_logs_type_level", "activity_logs", ["type", "level"], unique=False)


def downgrade():
    op.drop_table("activity_logs")
    op.drop_table("notifications")
    op.drop_table("transactions")
    op.drop_table("bundles")
    sa.Enum(name="transactionstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="network").drop(op.get_bind(), checkfirst=True)
