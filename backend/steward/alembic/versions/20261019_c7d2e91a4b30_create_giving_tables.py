"""create giving tables

Revision ID: c7d2e91a4b30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "c7d2e91a4b30"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:  # type: ignore[type-arg]
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
    ]


def _created_at() -> sa.Column:  # type: ignore[type-arg]
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("(CURRENT_TIMESTAMP)"),
        nullable=True,
    )


def _tenant_fk(ondelete: str = "RESTRICT") -> sa.Column:  # type: ignore[type-arg]
    return sa.Column(
        "tenant_id",
        sa.String(length=36),
        sa.ForeignKey("tenants.id", ondelete=ondelete),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("default_currency", sa.String(length=3), nullable=False),
        sa.Column("timezone", sa.String(length=50), nullable=False),
        sa.Column("donations_enabled", sa.Boolean(), nullable=False),
        sa.Column("recurring_pledges_enabled", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "funds",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("visibility", sa.String(length=20), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("goal_amount_cents", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("min_amount_cents", sa.Integer(), nullable=True),
        sa.Column("max_amount_cents", sa.Integer(), nullable=True),
        sa.Column("allow_anonymous", sa.Boolean(), nullable=False),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_funds_tenant_id"), "funds", ["tenant_id"])
    op.create_index(op.f("ix_funds_archived_at"), "funds", ["archived_at"])

    op.create_table(
        "pledges",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_fk(),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("donor_name", sa.String(length=255), nullable=True),
        sa.Column("donor_email", sa.String(length=255), nullable=True),
        sa.Column(
            "fund_id",
            sa.String(length=36),
            sa.ForeignKey("funds.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("frequency", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_charge_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("schedule_anchor_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_charged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failure_count", sa.Integer(), nullable=False),
        sa.Column("failing_since", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_failure_reason", sa.String(length=500), nullable=True),
        sa.Column("dunning_notices_sent", sa.JSON(), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("total_charges_count", sa.Integer(), nullable=False),
        sa.Column("payment_method_token", sa.String(length=255), nullable=True),
        sa.Column("payment_method_last4", sa.String(length=4), nullable=True),
        sa.Column("payment_method_brand", sa.String(length=50), nullable=True),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False),
        sa.Column("dedication_note", sa.Text(), nullable=True),
        sa.Column("paused_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lock_version", sa.Integer(), nullable=False),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pledges_tenant_id"), "pledges", ["tenant_id"])
    op.create_index(op.f("ix_pledges_user_id"), "pledges", ["user_id"])
    op.create_index(op.f("ix_pledges_fund_id"), "pledges", ["fund_id"])
    op.create_index(op.f("ix_pledges_status"), "pledges", ["status"])
    op.create_index(op.f("ix_pledges_next_charge_at"), "pledges", ["next_charge_at"])

    op.create_table(
        "pledge_settings",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_fk("CASCADE"),
        sa.Column("max_failures_before_pause", sa.Integer(), nullable=False),
        sa.Column("retry_interval_hours", sa.Integer(), nullable=False),
        sa.Column("grace_period_days", sa.Integer(), nullable=False),
        sa.Column("auto_resume_on_success", sa.Boolean(), nullable=False),
        sa.Column("dunning_email_days", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_pledge_settings_tenant_id"), "pledge_settings", ["tenant_id"], unique=True
    )

    op.create_table(
        "pledge_charges",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_fk(),
        sa.Column(
            "pledge_id",
            sa.String(length=36),
            sa.ForeignKey("pledges.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("transaction_id", sa.String(length=255), nullable=True),
        sa.Column("failure_reason", sa.String(length=500), nullable=True),
        sa.Column("charged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pledge_charges_tenant_id"), "pledge_charges", ["tenant_id"])
    op.create_index(op.f("ix_pledge_charges_pledge_id"), "pledge_charges", ["pledge_id"])

    op.create_table(
        "donation_records",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_fk(),
        sa.Column(
            "fund_id",
            sa.String(length=36),
            sa.ForeignKey("funds.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "pledge_id",
            sa.String(length=36),
            sa.ForeignKey("pledges.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False),
        sa.Column("designation_note", sa.Text(), nullable=True),
        sa.Column("message", sa.String(length=500), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_donation_records_tenant_id"), "donation_records", ["tenant_id"])
    op.create_index(op.f("ix_donation_records_fund_id"), "donation_records", ["fund_id"])
    op.create_index(op.f("ix_donation_records_pledge_id"), "donation_records", ["pledge_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_fk(),
        sa.Column("resource_type", sa.String(length=50), nullable=False),
        sa.Column("resource_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("changes", sa.JSON(), nullable=False),
        sa.Column("actor_type", sa.String(length=50), nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_logs_tenant_id"), "audit_logs", ["tenant_id"])
    op.create_index(
        "ix_audit_logs_resource",
        "audit_logs",
        ["tenant_id", "resource_type", "resource_id", "created_at"],
    )
    op.create_index(op.f("ix_audit_logs_action"), "audit_logs", ["action"])

    op.create_table(
        "idempotency_records",
        sa.Column("id", sa.String(length=36), nullable=False),
        _tenant_fk(),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False),
        sa.Column("request_method", sa.String(length=10), nullable=False),
        sa.Column("request_path", sa.String(length=500), nullable=False),
        sa.Column("response_status", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.JSON(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "idempotency_key", name="uq_tenant_idempotency_key"),
    )
    op.create_index(
        op.f("ix_idempotency_records_tenant_id"), "idempotency_records", ["tenant_id"]
    )
    op.create_index(
        op.f("ix_idempotency_records_idempotency_key"),
        "idempotency_records",
        ["idempotency_key"],
    )


def downgrade() -> None:
    op.drop_table("idempotency_records")
    op.drop_table("audit_logs")
    op.drop_table("donation_records")
    op.drop_table("pledge_charges")
    op.drop_table("pledge_settings")
    op.drop_table("pledges")
    op.drop_table("funds")
    op.drop_table("tenants")
