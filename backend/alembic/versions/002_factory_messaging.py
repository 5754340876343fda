"""WeCom factory messaging: supplier integration, PO milestones, message log, team notes

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Supplier integration state. Databases stamped at 001 may already carry some columns.
    op.execute("ALTER TABLE suppliers ADD COLUMN IF NOT EXISTS wecom_webhook_url TEXT")
    op.execute("ALTER TABLE suppliers ADD COLUMN IF NOT EXISTS wecom_webhook_token VARCHAR(128)")
    op.execute(
        "ALTER TABLE suppliers ADD COLUMN IF NOT EXISTS wecom_integration_status VARCHAR(20) "
        "NOT NULL DEFAULT 'unconfigured'"
    )
    op.execute("ALTER TABLE suppliers ADD COLUMN IF NOT EXISTS wecom_error_count INTEGER NOT NULL DEFAULT 0")
    op.execute("ALTER TABLE suppliers ADD COLUMN IF NOT EXISTS wecom_last_error TEXT")
    op.execute("ALTER TABLE suppliers ADD COLUMN IF NOT EXISTS wecom_last_test TIMESTAMPTZ")
    op.execute("ALTER TABLE suppliers DROP CONSTRAINT IF EXISTS chk_supplier_wecom_status")
    op.execute(
        """
        ALTER TABLE suppliers
        ADD CONSTRAINT chk_supplier_wecom_status CHECK (
            wecom_integration_status IN ('unconfigured', 'active', 'failed')
        )
        """
    )
    op.execute("ALTER TABLE suppliers DROP CONSTRAINT IF EXISTS chk_supplier_wecom_error_count")
    op.execute(
        "ALTER TABLE suppliers ADD CONSTRAINT chk_supplier_wecom_error_count CHECK (wecom_error_count >= 0)"
    )

    # Factory milestones on purchase orders.
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS factory_confirmed_at TIMESTAMPTZ")
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS production_started_at TIMESTAMPTZ")
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS production_completed_at TIMESTAMPTZ")
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS factory_qc_status VARCHAR(500)")
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS shipped_at TIMESTAMPTZ")
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS factory_tracking_number VARCHAR(255)")
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS delay_days INTEGER")
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS delay_reason TEXT")
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS last_factory_reply_at TIMESTAMPTZ")
    op.execute("ALTER TABLE purchase_orders ADD COLUMN IF NOT EXISTS last_factory_message_at TIMESTAMPTZ")

    op.create_table(
        "team_notes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "purchase_order_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("purchase_orders.id"),
            nullable=False,
        ),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("mentions", postgresql.ARRAY(postgresql.UUID(as_uuid=True)), nullable=True),
        sa.Column("is_supplier_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("source_message_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_team_notes_purchase_order_id", "team_notes", ["purchase_order_id"])
    op.create_index("ix_team_notes_created_at", "team_notes", ["created_at"])

    op.create_table(
        "wecom_messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("direction", sa.String(10), nullable=False),
        sa.Column("supplier_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column(
            "purchase_order_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("purchase_orders.id"),
            nullable=True,
        ),
        sa.Column("message_type", sa.String(50), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("parsed_action", sa.String(50), nullable=True),
        sa.Column("parsed_data", postgresql.JSONB(), nullable=True),
        sa.Column("external_message_id", sa.String(128), nullable=True),
        sa.Column("team_note_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("team_notes.id"), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("provider_response", postgresql.JSONB(), nullable=True),
        sa.Column("provider_message_id", sa.String(128), nullable=True),
        sa.Column("meta_data", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("direction IN ('inbound', 'outbound')", name="chk_wecom_message_direction"),
        sa.CheckConstraint(
            "status IN ('pending', 'sent', 'failed', 'delivered', 'read')",
            name="chk_wecom_message_status",
        ),
    )
    op.create_index("ix_wecom_messages_supplier_id", "wecom_messages", ["supplier_id"])
    op.create_index("ix_wecom_messages_purchase_order_id", "wecom_messages", ["purchase_order_id"])
    op.create_index("ix_wecom_messages_status", "wecom_messages", ["status"])
    op.create_index("ix_wecom_messages_created_at", "wecom_messages", ["created_at"])
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_wecom_messages_external "
        "ON wecom_messages (supplier_id, external_message_id) "
        "WHERE external_message_id IS NOT NULL"
    )

    # Circular reference: notes point at the message that produced them.
    op.create_foreign_key(
        "fk_team_notes_source_message",
        "team_notes",
        "wecom_messages",
        ["source_message_id"],
        ["id"],
    )

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.String(30), nullable=False, server_default="wecom"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.String(30), nullable=True),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action_url", sa.Text(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_notifications_unread "
        "ON notifications (user_id, created_at) WHERE is_read = false"
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_constraint("fk_team_notes_source_message", "team_notes", type_="foreignkey")
    op.drop_table("wecom_messages")
    op.drop_table("team_notes")

    for column in (
        "last_factory_message_at",
        "last_factory_reply_at",
        "delay_reason",
        "delay_days",
        "factory_tracking_number",
        "shipped_at",
        "factory_qc_status",
        "production_completed_at",
        "production_started_at",
        "factory_confirmed_at",
    ):
        op.execute(f"ALTER TABLE purchase_orders DROP COLUMN IF EXISTS {column}")

    op.execute("ALTER TABLE suppliers DROP CONSTRAINT IF EXISTS chk_supplier_wecom_error_count")
    op.execute("ALTER TABLE suppliers DROP CONSTRAINT IF EXISTS chk_supplier_wecom_status")
    for column in (
        "wecom_last_test",
        "wecom_last_error",
        "wecom_error_count",
        "wecom_integration_status",
        "wecom_webhook_token",
        "wecom_webhook_url",
    ):
        op.execute(f"ALTER TABLE suppliers DROP COLUMN IF EXISTS {column}")
