"""affiliate_ledger_schema

Revision ID: 5c1e9a7b3d20
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5c1e9a7b3d20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default=sa.text("'buyer'")),
        sa.Column("referral_code", sa.String(16), nullable=False),
        sa.Column("referred_by", sa.BigInteger(), nullable=True),
        sa.Column("tier", sa.String(16), nullable=False, server_default=sa.text("'beginner'")),
        sa.Column("total_sales", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cashback_balance", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("role IN ('ambassador','buyer','admin')", name="ck_users_role"),
        sa.CheckConstraint(
            "tier IN ('beginner','active','performer','expert','elite')",
            name="ck_users_tier",
        ),
        sa.CheckConstraint("total_sales >= 0", name="ck_users_total_sales_non_negative"),
        sa.ForeignKeyConstraint(["referred_by"], ["users.id"]),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("referral_code", name="uq_users_referral_code"),
    )
    op.create_index("idx_users_referred_by", "users", ["referred_by"])
    op.create_index("idx_users_role", "users", ["role"])

    op.create_table(
        "commission_tiers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("min_sales", sa.Integer(), nullable=False),
        sa.Column("ambassador_rate_affiliate", sa.Numeric(5, 2), nullable=False),
        sa.Column("ambassador_rate_dropship", sa.Numeric(5, 2), nullable=False),
        sa.Column("sponsor_rate", sa.Numeric(5, 2), nullable=False),
        sa.CheckConstraint("min_sales >= 0", name="ck_commission_tiers_min_sales_non_negative"),
        sa.UniqueConstraint("name", name="uq_commission_tiers_name"),
        sa.UniqueConstraint("min_sales", name="uq_commission_tiers_min_sales"),
    )

    op.create_table(
        "affiliate_programs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("avg_commission_rate", sa.Numeric(5, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("buyer_cashback_rate", sa.Numeric(5, 2), nullable=False, server_default=sa.text("10")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.UniqueConstraint("name", name="uq_affiliate_programs_name"),
    )

    op.create_table(
        "commission_boosts",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("type", sa.String(24), nullable=False),
        sa.Column("boost_value", sa.Numeric(5, 2), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("current_uses", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", sa.BigInteger(), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "type IN ('ambassador_rate','buyer_cashback','sponsor_rate')",
            name="ck_commission_boosts_type",
        ),
        sa.CheckConstraint("current_uses >= 0", name="ck_commission_boosts_current_uses_non_negative"),
        sa.CheckConstraint(
            "boost_value >= 0 AND boost_value <= 100",
            name="ck_commission_boosts_boost_value_range",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
    )
    op.create_index(
        "idx_commission_boosts_active_window",
        "commission_boosts",
        ["is_active", "start_date", "end_date"],
    )
    op.create_index("idx_commission_boosts_user", "commission_boosts", ["user_id"])

    op.create_table(
        "outbound_clicks",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("visitor_id", sa.String(36), nullable=False),
        sa.Column("ambassador_id", sa.BigInteger(), nullable=False),
        sa.Column("buyer_user_id", sa.BigInteger(), nullable=True),
        sa.Column("affiliate_program_id", sa.Integer(), nullable=False),
        sa.Column("destination_url", sa.String(2000), nullable=False),
        sa.Column("clicked_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["ambassador_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["buyer_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["affiliate_program_id"], ["affiliate_programs.id"]),
    )
    op.create_index(
        "idx_outbound_clicks_ambassador_clicked",
        "outbound_clicks",
        ["ambassador_id", "clicked_at"],
    )

    op.create_table(
        "conversions",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("ambassador_id", sa.BigInteger(), nullable=False),
        sa.Column("sponsor_id", sa.BigInteger(), nullable=True),
        sa.Column("buyer_user_id", sa.BigInteger(), nullable=True),
        sa.Column("product_id", sa.BigInteger(), nullable=True),
        sa.Column("outbound_click_id", sa.BigInteger(), nullable=True),
        sa.Column("affiliate_program_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("order_ref", sa.String(255), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("commission_total", sa.Numeric(10, 2), nullable=False),
        sa.Column("ambassador_share", sa.Numeric(10, 2), nullable=False),
        sa.Column("sponsor_share", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("buyer_share", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("platform_share", sa.Numeric(10, 2), nullable=False),
        sa.Column("applied_ambassador_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("applied_sponsor_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("applied_buyer_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("attribution_method", sa.String(100), nullable=True),
        sa.Column("attribution_confidence", sa.String(8), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.CheckConstraint("type IN ('affiliate','dropship')", name="ck_conversions_type"),
        sa.CheckConstraint(
            "status IN ('pending','confirmed','paid','cancelled')",
            name="ck_conversions_status",
        ),
        sa.CheckConstraint(
            "attribution_confidence IS NULL OR attribution_confidence IN ('high','medium','low')",
            name="ck_conversions_attribution_confidence",
        ),
        sa.CheckConstraint("platform_share >= 0", name="ck_conversions_platform_share_non_negative"),
        sa.CheckConstraint(
            "ambassador_share + sponsor_share + buyer_share + platform_share = commission_total",
            name="ck_conversions_shares_balance",
        ),
        sa.ForeignKeyConstraint(["ambassador_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["sponsor_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["buyer_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["outbound_click_id"], ["outbound_clicks.id"]),
        sa.ForeignKeyConstraint(["affiliate_program_id"], ["affiliate_programs.id"]),
        sa.UniqueConstraint("order_ref", "affiliate_program_id", name="uq_conversions_order_ref_program"),
    )
    op.create_index("idx_conversions_ambassador_created", "conversions", ["ambassador_id", "created_at"])
    op.create_index("idx_conversions_ambassador_status", "conversions", ["ambassador_id", "status"])
    op.create_index("idx_conversions_buyer", "conversions", ["buyer_user_id"])

    op.create_table(
        "payouts",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("method", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("reference", sa.String(255), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_payouts_amount_positive"),
        sa.CheckConstraint("type IN ('ambassador','cashback')", name="ck_payouts_type"),
        sa.CheckConstraint("method IN ('stripe','paypal','bank')", name="ck_payouts_method"),
        sa.CheckConstraint(
            "status IN ('pending','processing','paid','failed')",
            name="ck_payouts_status",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("idx_payouts_user_type_status", "payouts", ["user_id", "type", "status"])

    op.create_table(
        "payout_info",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("method", sa.String(16), nullable=False),
        sa.Column("paypal_email", sa.String(255), nullable=True),
        sa.Column("iban_encrypted", sa.Text(), nullable=True),
        sa.Column("bic", sa.String(11), nullable=True),
        sa.CheckConstraint("method IN ('stripe','paypal','bank')", name="ck_payout_info_method"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("user_id", name="uq_payout_info_user_id"),
    )

    op.create_table(
        "cashback_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("conversion_id", sa.BigInteger(), nullable=True),
        sa.Column("payout_id", sa.BigInteger(), nullable=True),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "type IN ('earned','withdrawal','clawback','adjustment')",
            name="ck_cashback_transactions_type",
        ),
        sa.CheckConstraint(
            "(type = 'earned' AND amount > 0) OR (type IN ('withdrawal','clawback') AND amount < 0)"
            " OR type = 'adjustment'",
            name="ck_cashback_transactions_amount_sign",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["conversion_id"], ["conversions.id"]),
        sa.ForeignKeyConstraint(["payout_id"], ["payouts.id"]),
    )
    op.create_index(
        "idx_cashback_transactions_user_created",
        "cashback_transactions",
        ["user_id", "created_at"],
    )
    op.create_index("idx_cashback_transactions_conversion", "cashback_transactions", ["conversion_id"])

    op.create_table(
        "fraud_flags",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("type", sa.String(24), nullable=False),
        sa.Column("severity", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "type IN ('self_buy','click_spam','self_referral','rapid_conversion',"
            "'fake_account','cashback_abuse')",
            name="ck_fraud_flags_type",
        ),
        sa.CheckConstraint("severity IN ('low','medium','high','critical')", name="ck_fraud_flags_severity"),
        sa.CheckConstraint(
            "status IN ('pending','reviewed','confirmed','dismissed')",
            name="ck_fraud_flags_status",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index(
        "uq_fraud_flags_user_type_pending",
        "fraud_flags",
        ["user_id", "type"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index("idx_fraud_flags_status_created", "fraud_flags", ["status", "created_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("admin_id", sa.BigInteger(), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(100), nullable=True),
        sa.Column("old_values", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("new_values", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["admin_id"], ["users.id"]),
    )
    op.create_index("idx_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])
    op.create_index("idx_audit_logs_admin_created", "audit_logs", ["admin_id", "created_at"])

    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("label", sa.String(200), nullable=False),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("updated_by", sa.BigInteger(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("type IN ('number','string','boolean','json')", name="ck_settings_type"),
        sa.CheckConstraint(
            "category IN ('payouts','cashback','general','limits','notifications')",
            name="ck_settings_category",
        ),
        sa.ForeignKeyConstraint(["updated_by"], ["users.id"]),
        sa.UniqueConstraint("key", name="uq_settings_key"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("type", sa.String(24), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
        sa.CheckConstraint(
            "type IN ('sale','referral','tier_up','cashback_earned','payout')",
            name="ck_notifications_type",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("idx_notifications_user_read", "notifications", ["user_id", "is_read"])


def downgrade() -> None:
    for table_name in (
        "notifications",
        "settings",
        "audit_logs",
        "fraud_flags",
        "cashback_transactions",
        "payout_info",
        "payouts",
        "conversions",
        "outbound_clicks",
        "commission_boosts",
        "affiliate_programs",
        "commission_tiers",
        "users",
    ):
        op.drop_table(table_name)
