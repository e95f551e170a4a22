"""Automation schema - OAuth connections, automations and automation logs

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "meta_connections",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("meta_user_id", sa.String(64), nullable=False),
        sa.Column("meta_user_name", sa.String(255), nullable=True),
        sa.Column("access_token_encrypted", sa.Text, nullable=False),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_valid", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_meta_connections_user_id", "meta_connections", ["user_id"])

    op.create_table(
        "google_connections",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("google_email", sa.String(255), nullable=False),
        sa.Column("access_token_encrypted", sa.Text, nullable=False),
        sa.Column("refresh_token_encrypted", sa.Text, nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_valid", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_google_connections_user_id", "google_connections", ["user_id"])

    op.create_table(
        "automations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column(
            "meta_connection_id", postgresql.UUID(as_uuid=True),
            sa.ForeignKey("meta_connections.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("meta_page_id", sa.String(64), nullable=True),
        sa.Column("meta_page_name", sa.String(255), nullable=True),
        sa.Column("meta_page_token_encrypted", sa.Text, nullable=True),
        sa.Column("meta_form_id", sa.String(64), nullable=True),
        sa.Column("meta_form_name", sa.String(255), nullable=True),
        sa.Column(
            "google_connection_id", postgresql.UUID(as_uuid=True),
            sa.ForeignKey("google_connections.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("spreadsheet_id", sa.String(128), nullable=True),
        sa.Column("spreadsheet_name", sa.String(255), nullable=True),
        sa.Column("sheet_name", sa.String(255), nullable=True),
        sa.Column("field_mapping", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("webhook_verify_token", sa.String(128), nullable=True),
        sa.Column("webhook_active", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("leads_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_lead_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('draft', 'active', 'paused', 'error')", name="ck_automations_status",
        ),
    )
    op.create_index(
        "ix_automations_page_form_status", "automations",
        ["meta_page_id", "meta_form_id", "status"],
    )
    op.create_index("ix_automations_user_id", "automations", ["user_id"])

    # Append-only audit log
    op.create_table(
        "automation_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "automation_id", postgresql.UUID(as_uuid=True),
            sa.ForeignKey("automations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("kind", sa.String(30), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("data", postgresql.JSONB, nullable=True),
        sa.Column("lead_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_automation_logs_automation_kind_created", "automation_logs",
        ["automation_id", "kind", "created_at"],
    )
    # Idempotency backstop: one lead_received row per automation + lead
    op.create_index(
        "uq_automation_logs_lead_received", "automation_logs",
        ["automation_id", "lead_id"],
        unique=True,
        postgresql_where=sa.text("kind = 'lead_received'"),
    )


def downgrade() -> None:
    op.drop_index("uq_automation_logs_lead_received", table_name="automation_logs")
    op.drop_index("ix_automation_logs_automation_kind_created", table_name="automation_logs")
    op.drop_table("automation_logs")

    op.drop_index("ix_automations_user_id", table_name="automations")
    op.drop_index("ix_automations_page_form_status", table_name="automations")
    op.drop_table("automations")

    op.drop_index("ix_google_connections_user_id", table_name="google_connections")
    op.drop_table("google_connections")

    op.drop_index("ix_meta_connections_user_id", table_name="meta_connections")
    op.drop_table("meta_connections")
