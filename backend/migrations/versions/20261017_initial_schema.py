"""Initial AccountsForge schema

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_initial"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True, length=32)


REVIEW_STATUSES = ("pending", "approved", "rejected")


def _ledger_columns(status_enum):
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("identities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", status_enum, nullable=False),
        sa.Column("proof_url", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.String(length=36), sa.ForeignKey("identities.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_comments", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade():
    op.create_table(
        "identities",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_sign_in_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_identities_email", "identities", ["email"], unique=True)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("identity_id", sa.String(length=36), sa.ForeignKey("identities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(length=255), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_session_tokens_identity_id", "session_tokens", ["identity_id"])
    op.create_index("ix_session_tokens_token_hash", "session_tokens", ["token_hash"], unique=True)
    op.create_index("ix_session_tokens_expires_at", "session_tokens", ["expires_at"])
    op.create_index("ix_session_tokens_is_revoked", "session_tokens", ["is_revoked"])
    op.create_index("ix_session_tokens_identity_active", "session_tokens", ["identity_id", "is_revoked"])

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("identities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", _enum("user_role", "admin", "salesman", "employee"), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("hire_date", sa.Date(), nullable=True),
        sa.Column("salary", sa.Numeric(12, 2), nullable=True),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("status", _enum("profile_status", "active", "inactive"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", name="uq_profiles_user_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_profiles_user_id", "profiles", ["user_id"])

    op.create_table(
        "expenses",
        *_ledger_columns(_enum("expense_status", *REVIEW_STATUSES)),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_expenses_user_id", "expenses", ["user_id"])
    op.create_index("ix_expenses_expense_date", "expenses", ["expense_date"])
    op.create_index("ix_expenses_user_status", "expenses", ["user_id", "status"])

    op.create_table(
        "revenues",
        *_ledger_columns(_enum("revenue_status", *REVIEW_STATUSES)),
        sa.Column("customer_name", sa.String(length=200), nullable=False),
        sa.Column("customer_email", sa.String(length=100), nullable=True),
        sa.Column("customer_phone", sa.String(length=20), nullable=True),
        sa.Column("product_service", sa.String(length=200), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(length=100), nullable=True),
        sa.Column("revenue_date", sa.Date(), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_revenues_amount_positive"),
        sa.CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="ck_revenues_commission_rate_range",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_revenues_user_id", "revenues", ["user_id"])
    op.create_index("ix_revenues_revenue_date", "revenues", ["revenue_date"])
    op.create_index("ix_revenues_user_status", "revenues", ["user_id", "status"])

    op.create_table(
        "claims",
        *_ledger_columns(_enum("claim_status", "pending", "approved", "rejected", "paid")),
        sa.Column(
            "claim_type",
            _enum("claim_type", "expense_reimbursement", "commission", "bonus", "other"),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("expense_id", sa.Integer(), sa.ForeignKey("expenses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("revenue_id", sa.Integer(), sa.ForeignKey("revenues.id", ondelete="SET NULL"), nullable=True),
        sa.Column("submitted_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column("payment_reference", sa.String(length=100), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_claims_amount_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_claims_user_id", "claims", ["user_id"])
    op.create_index("ix_claims_expense_id", "claims", ["expense_id"])
    op.create_index("ix_claims_revenue_id", "claims", ["revenue_id"])
    op.create_index("ix_claims_user_status", "claims", ["user_id", "status"])

    op.create_table(
        "commissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("salesman_id", sa.String(length=36), sa.ForeignKey("identities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("revenue_id", sa.Integer(), sa.ForeignKey("revenues.id", ondelete="CASCADE"), nullable=False),
        sa.Column("commission_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("payout_status", _enum("payout_status", "pending", "paid", "cancelled"), nullable=False),
        sa.Column("payout_date", sa.Date(), nullable=True),
        sa.Column("payout_reference", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("revenue_id", name="uq_commissions_revenue_id"),
        sa.CheckConstraint("commission_amount >= 0", name="ck_commissions_amount_non_negative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_commissions_salesman_id", "commissions", ["salesman_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("identities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", _enum("notification_type", "info", "success", "warning", "error"), nullable=False),
        sa.Column(
            "reference_type",
            _enum(
                "notification_reference_type",
                "expense", "revenue", "claim", "profile", "commission", "notification",
            ),
            nullable=True,
        ),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "read_at"])

    op.create_table(
        "company_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("setting_key", sa.String(length=128), nullable=False),
        sa.Column("setting_value", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_by", sa.String(length=36), sa.ForeignKey("identities.id", ondelete="SET NULL"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("setting_key", name="uq_company_settings_key"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "security_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("resource", sa.String(length=128), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_security_events_user_id", "security_events", ["user_id"])
    op.create_index("ix_security_events_event_type", "security_events", ["event_type"])
    op.create_index("ix_security_events_success", "security_events", ["success"])
    op.create_index("ix_security_events_occurred", "security_events", ["occurred_at"])
    op.create_index("ix_security_events_user_type", "security_events", ["user_id", "event_type"])


def downgrade():
    op.drop_table("security_events")
    op.drop_table("company_settings")
    op.drop_table("notifications")
    op.drop_table("commissions")
    op.drop_table("claims")
    op.drop_table("revenues")
    op.drop_table("expenses")
    op.drop_table("profiles")
    op.drop_table("session_tokens")
    op.drop_table("identities")
