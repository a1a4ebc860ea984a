from __future__ import annotations

from ..extensions import db
from marketledger.money import money_str
from marketledger.time_utils import to_utc_z, utcnow


class PaymentMethod(db.Model):
    """Account details shown on the manual deposit form (bank, wallet apps)."""
    __tablename__ = "payment_methods"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    method_name = db.Column(db.String(128), nullable=False)
    account_name = db.Column(db.String(128), nullable=False)
    account_number = db.Column(db.String(64), nullable=True)
    iban = db.Column(db.String(64), nullable=True)
    till_id = db.Column(db.String(64), nullable=True)
    logo_url = db.Column(db.String(512), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "method_name": self.method_name,
            "account_name": self.account_name,
            "account_number": self.account_number,
            "iban": self.iban,
            "till_id": self.till_id,
            "logo_url": self.logo_url,
            "is_active": self.is_active,
            "display_order": self.display_order,
        }


class DepositRequest(db.Model):
    """
    Manual top-up request with screenshot proof of payment.

    STATES: pending -> approved | rejected. Both terminal.
    Approval is the only path that credits a wallet from a deposit.
    """
    __tablename__ = "deposit_requests"
    __table_args__ = (
        db.Index("ix_deposit_requests_type_status", "requester_type", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    requester_type = db.Column(db.String(16), nullable=False)  # customer | seller
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=False)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    screenshot_url = db.Column(db.String(1024), nullable=False)
    transaction_reference = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    admin_notes = db.Column(db.Text, nullable=True)
    processed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("deposit_requests", lazy=True))
    payment_method = db.relationship("PaymentMethod")

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "requester_type": self.requester_type,
            "payment_method_id": self.payment_method_id,
            "payment_method": self.payment_method.to_dict() if self.payment_method else None,
            "amount": money_str(self.amount),
            "screenshot_url": self.screenshot_url,
            "transaction_reference": self.transaction_reference,
            "status": self.status,
            "admin_notes": self.admin_notes,
            "processed_by": self.processed_by,
            "processed_at": to_utc_z(self.processed_at) if self.processed_at else None,
            "created_at": to_utc_z(self.created_at),
        }
