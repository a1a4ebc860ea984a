from __future__ import annotations

from ..extensions import db
from marketledger.money import money_str
from marketledger.time_utils import to_utc_z, utcnow


class SellerSubscription(db.Model):
    """
    Recurring platform fee charged against a seller's wallet.

    LIFECYCLE:
    - created at onboarding with a free period (new_seller_free_months)
    - fee-accruing once free_period_end passes
    - payment_pending when a deduction fails; arrears in pending_amount
    - account_suspended after a second consecutive failed deduction
    - reactivated (reactivated_at) once arrears are settled

    WRITERS: Only subscription_service mutates the billing-state columns
    (last/next_deduction_at, payment_pending, pending_amount, account_suspended).
    """
    __tablename__ = "seller_subscriptions"
    __table_args__ = (
        db.Index("ix_seller_subscriptions_due", "is_active", "next_deduction_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    plan_type = db.Column(db.String(16), nullable=False, default="daily")  # daily | half_monthly | monthly
    custom_daily_fee = db.Column(db.Numeric(14, 2), nullable=True)

    last_deduction_at = db.Column(db.DateTime(timezone=True), nullable=True)
    next_deduction_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    payment_pending = db.Column(db.Boolean, nullable=False, default=False)
    pending_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_fees_paid = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    free_months = db.Column(db.Integer, nullable=False, default=0)
    free_period_start = db.Column(db.DateTime(timezone=True), nullable=True)
    free_period_end = db.Column(db.DateTime(timezone=True), nullable=True)
    is_in_free_period = db.Column(db.Boolean, nullable=False, default=False)

    account_suspended = db.Column(db.Boolean, nullable=False, default=False, index=True)
    suspended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reactivated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    seller = db.relationship("User", backref=db.backref("subscription", uselist=False, lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "plan_type": self.plan_type,
            "custom_daily_fee": money_str(self.custom_daily_fee),
            "last_deduction_at": to_utc_z(self.last_deduction_at) if self.last_deduction_at else None,
            "next_deduction_at": to_utc_z(self.next_deduction_at) if self.next_deduction_at else None,
            "is_active": self.is_active,
            "payment_pending": self.payment_pending,
            "pending_amount": money_str(self.pending_amount),
            "total_fees_paid": money_str(self.total_fees_paid),
            "free_months": self.free_months,
            "free_period_start": to_utc_z(self.free_period_start) if self.free_period_start else None,
            "free_period_end": to_utc_z(self.free_period_end) if self.free_period_end else None,
            "is_in_free_period": self.is_in_free_period,
            "account_suspended": self.account_suspended,
            "suspended_at": to_utc_z(self.suspended_at) if self.suspended_at else None,
            "reactivated_at": to_utc_z(self.reactivated_at) if self.reactivated_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SubscriptionDeductionLog(db.Model):
    """
    One row per billing attempt.

    IMMUTABLE: Append-only audit trail of deductions, successful or not.
    """
    __tablename__ = "subscription_deduction_logs"
    __table_args__ = (
        db.Index("ix_deduction_logs_seller_created", "seller_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = db.Column(db.Integer, db.ForeignKey("seller_subscriptions.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    # daily | half_monthly | monthly | manual | settlement
    deduction_type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False)  # success | failed | pending
    failure_reason = db.Column(db.Text, nullable=True)

    wallet_balance_before = db.Column(db.Numeric(14, 2), nullable=True)
    wallet_balance_after = db.Column(db.Numeric(14, 2), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    subscription = db.relationship("SellerSubscription", backref=db.backref("deduction_logs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "subscription_id": self.subscription_id,
            "amount": money_str(self.amount),
            "deduction_type": self.deduction_type,
            "status": self.status,
            "failure_reason": self.failure_reason,
            "wallet_balance_before": money_str(self.wallet_balance_before),
            "wallet_balance_after": money_str(self.wallet_balance_after),
            "created_at": to_utc_z(self.created_at),
        }


class PlanChangeRequest(db.Model):
    """Seller request to switch billing plan; admin approves or rejects."""
    __tablename__ = "plan_change_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    current_plan = db.Column(db.String(16), nullable=False)
    requested_plan = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    admin_notes = db.Column(db.Text, nullable=True)
    processed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "current_plan": self.current_plan,
            "requested_plan": self.requested_plan,
            "status": self.status,
            "admin_notes": self.admin_notes,
            "processed_by": self.processed_by,
            "processed_at": to_utc_z(self.processed_at) if self.processed_at else None,
            "created_at": to_utc_z(self.created_at),
        }
