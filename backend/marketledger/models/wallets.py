from __future__ import annotations

from ..extensions import db
from marketledger.money import money_str
from marketledger.time_utils import to_utc_z, utcnow


MONEY = db.Numeric(14, 2)


class SellerWallet(db.Model):
    """
    Per-seller running balance.

    INVARIANT: current_balance == sum(WalletTransaction.net_amount) for the seller.
    Only ledger_service.post_entry mutates these columns, under a row lock.
    Created lazily on first posting; never deleted.
    """
    __tablename__ = "seller_wallets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    current_balance = db.Column(MONEY, nullable=False, default=0)
    total_earnings = db.Column(MONEY, nullable=False, default=0)
    total_withdrawn = db.Column(MONEY, nullable=False, default=0)
    pending_clearance = db.Column(MONEY, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    seller = db.relationship("User", backref=db.backref("seller_wallet", uselist=False, lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "current_balance": money_str(self.current_balance),
            "total_earnings": money_str(self.total_earnings),
            "total_withdrawn": money_str(self.total_withdrawn),
            "pending_clearance": money_str(self.pending_clearance),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class WalletTransaction(db.Model):
    """
    Append-only seller ledger.

    TRANSACTION TYPES (net_amount sign):
    - earning: + (gross sale minus platform commission)
    - commission_deduction: - (platform fees: subscription, flash sale)
    - withdrawal: - (completed payout)
    - refund_deduction: - (refunded order)
    - adjustment: +/- (admin correction, approved deposit)

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        db.Index("ix_wallet_txns_seller_created", "seller_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    wallet_id = db.Column(db.Integer, db.ForeignKey("seller_wallets.id"), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    order_reference = db.Column(db.String(64), nullable=True, index=True)

    transaction_type = db.Column(db.String(32), nullable=False, index=True)

    gross_amount = db.Column(MONEY, nullable=False, default=0)
    commission_amount = db.Column(MONEY, nullable=False, default=0)
    commission_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    # Signed: positive credits, negative debits
    net_amount = db.Column(MONEY, nullable=False)

    description = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    wallet = db.relationship("SellerWallet", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "wallet_id": self.wallet_id,
            "seller_id": self.seller_id,
            "order_reference": self.order_reference,
            "transaction_type": self.transaction_type,
            "gross_amount": money_str(self.gross_amount),
            "commission_amount": money_str(self.commission_amount),
            "commission_percentage": money_str(self.commission_percentage),
            "net_amount": money_str(self.net_amount),
            "description": self.description,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class PayoutRequest(db.Model):
    """
    Seller withdrawal request against the wallet balance.

    STATES: pending -> completed (process_payout) | rejected (reject_payout).
    "approved" is accepted as an intermediate state that can still be
    processed or rejected. completed and rejected are terminal.
    No balance moves until process_payout.
    """
    __tablename__ = "payout_requests"
    __table_args__ = (
        db.Index("ix_payout_requests_seller_status", "seller_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    wallet_id = db.Column(db.Integer, db.ForeignKey("seller_wallets.id"), nullable=False, index=True)

    amount = db.Column(MONEY, nullable=False)

    bank_name = db.Column(db.String(128), nullable=False)
    account_title = db.Column(db.String(128), nullable=False)
    iban = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    transaction_reference = db.Column(db.String(128), nullable=True)
    admin_notes = db.Column(db.Text, nullable=True)
    processed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    receipt_url = db.Column(db.String(512), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    wallet = db.relationship("SellerWallet", backref=db.backref("payout_requests", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "wallet_id": self.wallet_id,
            "amount": money_str(self.amount),
            "bank_name": self.bank_name,
            "account_title": self.account_title,
            "iban": self.iban,
            "status": self.status,
            "transaction_reference": self.transaction_reference,
            "admin_notes": self.admin_notes,
            "processed_by": self.processed_by,
            "processed_at": to_utc_z(self.processed_at) if self.processed_at else None,
            "receipt_url": self.receipt_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SellerCommission(db.Model):
    """
    Per-seller commission override.

    Rate resolution (ledger_service.get_commission_rate):
    grace rate while grace window is open > custom rate > global rate.
    """
    __tablename__ = "seller_commissions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    custom_commission_percentage = db.Column(db.Numeric(5, 2), nullable=True)
    grace_period_months = db.Column(db.Integer, nullable=False, default=0)
    grace_start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    grace_commission_percentage = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "custom_commission_percentage": money_str(self.custom_commission_percentage),
            "grace_period_months": self.grace_period_months,
            "grace_start_date": to_utc_z(self.grace_start_date) if self.grace_start_date else None,
            "grace_commission_percentage": money_str(self.grace_commission_percentage),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PlatformWallet(db.Model):
    """
    Single-row platform revenue account.

    Credited alongside the seller ledger whenever the platform collects a fee.
    """
    __tablename__ = "platform_wallet"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    total_balance = db.Column(MONEY, nullable=False, default=0)
    total_subscription_earnings = db.Column(MONEY, nullable=False, default=0)
    total_commission_earnings = db.Column(MONEY, nullable=False, default=0)
    total_flash_sale_earnings = db.Column(MONEY, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "total_balance": money_str(self.total_balance),
            "total_subscription_earnings": money_str(self.total_subscription_earnings),
            "total_commission_earnings": money_str(self.total_commission_earnings),
            "total_flash_sale_earnings": money_str(self.total_flash_sale_earnings),
            "updated_at": to_utc_z(self.updated_at),
        }


class PlatformWalletTransaction(db.Model):
    """Append-only platform revenue log (subscription, commission, flash_sale_fee)."""
    __tablename__ = "platform_wallet_transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_type = db.Column(db.String(32), nullable=False, index=True)
    amount = db.Column(MONEY, nullable=False)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_type": self.transaction_type,
            "amount": money_str(self.amount),
            "seller_id": self.seller_id,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class CustomerWallet(db.Model):
    """Customer store-credit balance, funded only by approved deposits."""
    __tablename__ = "customer_wallets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)
    balance = db.Column(MONEY, nullable=False, default=0)
    total_deposited = db.Column(MONEY, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "balance": money_str(self.balance),
            "total_deposited": money_str(self.total_deposited),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CustomerWalletTransaction(db.Model):
    """Append-only customer wallet log."""
    __tablename__ = "customer_wallet_transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    wallet_id = db.Column(db.Integer, db.ForeignKey("customer_wallets.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    transaction_type = db.Column(db.String(32), nullable=False)  # deposit
    amount = db.Column(MONEY, nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "wallet_id": self.wallet_id,
            "customer_id": self.customer_id,
            "transaction_type": self.transaction_type,
            "amount": money_str(self.amount),
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
