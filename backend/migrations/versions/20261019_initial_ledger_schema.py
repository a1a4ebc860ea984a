"""Initial schema: auth, settings, wallets, payouts, billing, deposits, flash sales

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


MONEY = sa.Numeric(14, 2)
PCT = sa.Numeric(5, 2)


def _ts(name, nullable=False, **kw):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable, **kw)


def upgrade():
    # --- auth ---------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_super_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at", server_default=sa.func.now()),
        _ts("last_login_at", nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        _ts("created_at", server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        _ts("assigned_at", server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])
    op.create_index("ix_user_roles_role_id", "user_roles", ["role_id"])

    op.create_table(
        "permissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=False),
        _ts("created_at", server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_permissions_code", "permissions", ["code"], unique=True)
    op.create_index("ix_permissions_category", "permissions", ["category"])

    op.create_table(
        "role_permissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("permission_id", sa.Integer(), sa.ForeignKey("permissions.id"), nullable=False),
        _ts("granted_at", server_default=sa.func.now()),
        sa.UniqueConstraint("role_id", "permission_id", name="uq_role_permissions"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_role_permissions_role_id", "role_permissions", ["role_id"])
    op.create_index("ix_role_permissions_permission_id", "role_permissions", ["permission_id"])

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("token_hash", sa.String(length=255), nullable=False),
        _ts("created_at", server_default=sa.func.now()),
        _ts("last_used_at", server_default=sa.func.now()),
        _ts("expires_at"),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("revoked_at", nullable=True),
        sa.Column("revoked_reason", sa.String(length=255), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_session_tokens_user_id", "session_tokens", ["user_id"])
    op.create_index("ix_session_tokens_token_hash", "session_tokens", ["token_hash"], unique=True)
    op.create_index("ix_session_tokens_expires_at", "session_tokens", ["expires_at"])
    op.create_index("ix_session_tokens_is_revoked", "session_tokens", ["is_revoked"])
    op.create_index("ix_session_tokens_user_active", "session_tokens", ["user_id", "is_revoked"])

    op.create_table(
        "security_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("resource", sa.String(length=128), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        _ts("occurred_at", server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_security_events_user_id", "security_events", ["user_id"])
    op.create_index("ix_security_events_event_type", "security_events", ["event_type"])
    op.create_index("ix_security_events_success", "security_events", ["success"])
    op.create_index("ix_security_events_user_type", "security_events", ["user_id", "event_type"])
    op.create_index("ix_security_events_occurred", "security_events", ["occurred_at"])

    # --- settings & catalog ---------------------------------------------------
    op.create_table(
        "admin_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("setting_key", sa.String(length=128), nullable=False),
        sa.Column("setting_value", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _ts("created_at", server_default=sa.func.now()),
        _ts("updated_at", server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_admin_settings_setting_key", "admin_settings", ["setting_key"], unique=True)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("stock_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_seller_id", "products", ["seller_id"])

    # --- wallets & ledger -----------------------------------------------------
    op.create_table(
        "seller_wallets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("current_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("total_earnings", MONEY, nullable=False, server_default="0"),
        sa.Column("total_withdrawn", MONEY, nullable=False, server_default="0"),
        sa.Column("pending_clearance", MONEY, nullable=False, server_default="0"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        _ts("created_at"),
        _ts("updated_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_seller_wallets_seller_id", "seller_wallets", ["seller_id"], unique=True)

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wallet_id", sa.Integer(), sa.ForeignKey("seller_wallets.id"), nullable=False),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("order_reference", sa.String(length=64), nullable=True),
        sa.Column("transaction_type", sa.String(length=32), nullable=False),
        sa.Column("gross_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("commission_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("commission_percentage", PCT, nullable=False, server_default="0"),
        sa.Column("net_amount", MONEY, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _ts("created_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_wallet_transactions_wallet_id", "wallet_transactions", ["wallet_id"])
    op.create_index("ix_wallet_transactions_seller_id", "wallet_transactions", ["seller_id"])
    op.create_index("ix_wallet_transactions_order_reference", "wallet_transactions", ["order_reference"])
    op.create_index("ix_wallet_transactions_transaction_type", "wallet_transactions", ["transaction_type"])
    op.create_index("ix_wallet_transactions_created_at", "wallet_transactions", ["created_at"])
    op.create_index("ix_wallet_txns_seller_created", "wallet_transactions", ["seller_id", "created_at"])

    op.create_table(
        "payout_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("wallet_id", sa.Integer(), sa.ForeignKey("seller_wallets.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("bank_name", sa.String(length=128), nullable=False),
        sa.Column("account_title", sa.String(length=128), nullable=False),
        sa.Column("iban", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("transaction_reference", sa.String(length=128), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("processed_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _ts("processed_at", nullable=True),
        sa.Column("receipt_url", sa.String(length=512), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        _ts("created_at"),
        _ts("updated_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_payout_requests_seller_id", "payout_requests", ["seller_id"])
    op.create_index("ix_payout_requests_wallet_id", "payout_requests", ["wallet_id"])
    op.create_index("ix_payout_requests_status", "payout_requests", ["status"])
    op.create_index("ix_payout_requests_created_at", "payout_requests", ["created_at"])
    op.create_index("ix_payout_requests_seller_status", "payout_requests", ["seller_id", "status"])

    op.create_table(
        "seller_commissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("custom_commission_percentage", PCT, nullable=True),
        sa.Column("grace_period_months", sa.Integer(), nullable=False, server_default="0"),
        _ts("grace_start_date", nullable=True),
        sa.Column("grace_commission_percentage", PCT, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_seller_commissions_seller_id", "seller_commissions", ["seller_id"], unique=True)

    op.create_table(
        "platform_wallet",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("total_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("total_subscription_earnings", MONEY, nullable=False, server_default="0"),
        sa.Column("total_commission_earnings", MONEY, nullable=False, server_default="0"),
        sa.Column("total_flash_sale_earnings", MONEY, nullable=False, server_default="0"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        _ts("created_at"),
        _ts("updated_at"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "platform_wallet_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_type", sa.String(length=32), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _ts("created_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_platform_wallet_transactions_transaction_type", "platform_wallet_transactions", ["transaction_type"])
    op.create_index("ix_platform_wallet_transactions_seller_id", "platform_wallet_transactions", ["seller_id"])
    op.create_index("ix_platform_wallet_transactions_created_at", "platform_wallet_transactions", ["created_at"])

    op.create_table(
        "customer_wallets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("balance", MONEY, nullable=False, server_default="0"),
        sa.Column("total_deposited", MONEY, nullable=False, server_default="0"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        _ts("created_at"),
        _ts("updated_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_customer_wallets_customer_id", "customer_wallets", ["customer_id"], unique=True)

    op.create_table(
        "customer_wallet_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("wallet_id", sa.Integer(), sa.ForeignKey("customer_wallets.id"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("transaction_type", sa.String(length=32), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _ts("created_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_customer_wallet_transactions_wallet_id", "customer_wallet_transactions", ["wallet_id"])
    op.create_index("ix_customer_wallet_transactions_customer_id", "customer_wallet_transactions", ["customer_id"])
    op.create_index("ix_customer_wallet_transactions_created_at", "customer_wallet_transactions", ["created_at"])

    # --- billing --------------------------------------------------------------
    op.create_table(
        "seller_subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("plan_type", sa.String(length=16), nullable=False, server_default="daily"),
        sa.Column("custom_daily_fee", MONEY, nullable=True),
        _ts("last_deduction_at", nullable=True),
        _ts("next_deduction_at", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("payment_pending", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pending_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("total_fees_paid", MONEY, nullable=False, server_default="0"),
        sa.Column("free_months", sa.Integer(), nullable=False, server_default="0"),
        _ts("free_period_start", nullable=True),
        _ts("free_period_end", nullable=True),
        sa.Column("is_in_free_period", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("account_suspended", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("suspended_at", nullable=True),
        _ts("reactivated_at", nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        _ts("created_at"),
        _ts("updated_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_seller_subscriptions_seller_id", "seller_subscriptions", ["seller_id"], unique=True)
    op.create_index("ix_seller_subscriptions_next_deduction_at", "seller_subscriptions", ["next_deduction_at"])
    op.create_index("ix_seller_subscriptions_account_suspended", "seller_subscriptions", ["account_suspended"])
    op.create_index("ix_seller_subscriptions_due", "seller_subscriptions", ["is_active", "next_deduction_at"])

    op.create_table(
        "subscription_deduction_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("subscription_id", sa.Integer(), sa.ForeignKey("seller_subscriptions.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("deduction_type", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("wallet_balance_before", MONEY, nullable=True),
        sa.Column("wallet_balance_after", MONEY, nullable=True),
        _ts("created_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_subscription_deduction_logs_seller_id", "subscription_deduction_logs", ["seller_id"])
    op.create_index("ix_subscription_deduction_logs_subscription_id", "subscription_deduction_logs", ["subscription_id"])
    op.create_index("ix_subscription_deduction_logs_created_at", "subscription_deduction_logs", ["created_at"])
    op.create_index("ix_deduction_logs_seller_created", "subscription_deduction_logs", ["seller_id", "created_at"])

    op.create_table(
        "plan_change_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("current_plan", sa.String(length=16), nullable=False),
        sa.Column("requested_plan", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("processed_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _ts("processed_at", nullable=True),
        _ts("created_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_plan_change_requests_seller_id", "plan_change_requests", ["seller_id"])
    op.create_index("ix_plan_change_requests_status", "plan_change_requests", ["status"])
    op.create_index("ix_plan_change_requests_created_at", "plan_change_requests", ["created_at"])

    # --- deposits -------------------------------------------------------------
    op.create_table(
        "payment_methods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("method_name", sa.String(length=128), nullable=False),
        sa.Column("account_name", sa.String(length=128), nullable=False),
        sa.Column("account_number", sa.String(length=64), nullable=True),
        sa.Column("iban", sa.String(length=64), nullable=True),
        sa.Column("till_id", sa.String(length=64), nullable=True),
        sa.Column("logo_url", sa.String(length=512), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        _ts("created_at"),
        _ts("updated_at"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "deposit_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("requester_type", sa.String(length=16), nullable=False),
        sa.Column("payment_method_id", sa.Integer(), sa.ForeignKey("payment_methods.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("screenshot_url", sa.String(length=1024), nullable=False),
        sa.Column("transaction_reference", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("processed_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _ts("processed_at", nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        _ts("created_at"),
        _ts("updated_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_deposit_requests_user_id", "deposit_requests", ["user_id"])
    op.create_index("ix_deposit_requests_status", "deposit_requests", ["status"])
    op.create_index("ix_deposit_requests_created_at", "deposit_requests", ["created_at"])
    op.create_index("ix_deposit_requests_type_status", "deposit_requests", ["requester_type", "status"])

    # --- flash sales ----------------------------------------------------------
    op.create_table(
        "flash_sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("campaign_name", sa.String(length=255), nullable=False),
        _ts("start_date"),
        _ts("end_date"),
        sa.Column("fee_per_product", MONEY, nullable=False, server_default="0"),
        _ts("application_deadline", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "flash_sale_nominations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("flash_sale_id", sa.Integer(), sa.ForeignKey("flash_sales.id"), nullable=True),
        sa.Column("proposed_price", MONEY, nullable=False),
        sa.Column("original_price", MONEY, nullable=False),
        sa.Column("stock_limit", sa.Integer(), nullable=False),
        _ts("time_slot_start"),
        _ts("time_slot_end"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("total_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("fee_deducted", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("fee_deducted_at", nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_flash_sale_nominations_seller_id", "flash_sale_nominations", ["seller_id"])
    op.create_index("ix_flash_sale_nominations_product_id", "flash_sale_nominations", ["product_id"])
    op.create_index("ix_flash_sale_nominations_flash_sale_id", "flash_sale_nominations", ["flash_sale_id"])
    op.create_index("ix_flash_sale_nominations_status", "flash_sale_nominations", ["status"])
    op.create_index("ix_flash_sale_nominations_created_at", "flash_sale_nominations", ["created_at"])
    op.create_index("ix_flash_nominations_seller_status", "flash_sale_nominations", ["seller_id", "status"])

    op.create_table(
        "flash_sale_products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("flash_sale_id", sa.Integer(), sa.ForeignKey("flash_sales.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("nomination_id", sa.Integer(), sa.ForeignKey("flash_sale_nominations.id"), nullable=True),
        sa.Column("flash_price", MONEY, nullable=False),
        sa.Column("original_price", MONEY, nullable=False),
        sa.Column("stock_limit", sa.Integer(), nullable=False),
        sa.Column("sold_count", sa.Integer(), nullable=False, server_default="0"),
        _ts("created_at"),
        sa.UniqueConstraint("flash_sale_id", "product_id", name="uq_flash_sale_products"),
        sa.CheckConstraint("sold_count >= 0", name="ck_flash_sale_products_sold_nonneg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_flash_sale_products_flash_sale_id", "flash_sale_products", ["flash_sale_id"])
    op.create_index("ix_flash_sale_products_product_id", "flash_sale_products", ["product_id"])


def downgrade():
    for table in (
        "flash_sale_products",
        "flash_sale_nominations",
        "flash_sales",
        "deposit_requests",
        "payment_methods",
        "plan_change_requests",
        "subscription_deduction_logs",
        "seller_subscriptions",
        "customer_wallet_transactions",
        "customer_wallets",
        "platform_wallet_transactions",
        "platform_wallet",
        "seller_commissions",
        "payout_requests",
        "wallet_transactions",
        "seller_wallets",
        "products",
        "admin_settings",
        "security_events",
        "session_tokens",
        "role_permissions",
        "permissions",
        "user_roles",
        "roles",
        "users",
    ):
        op.drop_table(table)
