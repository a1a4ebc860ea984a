"""
Deposit Workflow Service

WHY: Sellers and customers top up their wallets by bank transfer or mobile
wallet and upload proof. An admin verifies the proof and approves, which is
the only path that credits a wallet from a deposit.

STATES: pending -> approved | rejected (both terminal).

approve/reject return {success, message, ...} dicts rather than raising:
routes surface `message` when success is false.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import DepositRequest, PaymentMethod, User
from ..money import ZERO, to_money, money_str
from . import ledger_service, notification_service, settings_service
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import ENTRY_ADJUSTMENT, LedgerError
from marketledger.time_utils import utcnow


class DepositError(Exception):
    """Raised for deposit validation errors."""
    pass


REQUESTER_CUSTOMER = "customer"
REQUESTER_SELLER = "seller"
VALID_REQUESTER_TYPES = [REQUESTER_CUSTOMER, REQUESTER_SELLER]

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
VALID_STATUSES = [STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED]


def deposits_enabled() -> bool:
    """
    Whether the manual deposit form should be offered.

    cod_only_mode forces this off regardless of manual_deposits_enabled.
    """
    if settings_service.get_bool("cod_only_mode"):
        return False
    return settings_service.get_bool("manual_deposits_enabled")


# =============================================================================
# PAYMENT METHODS
# =============================================================================

PAYMENT_METHOD_FIELDS = (
    "method_name", "account_name", "account_number", "iban", "till_id", "logo_url",
)


def list_payment_methods(active_only: bool = True) -> list[PaymentMethod]:
    query = db.session.query(PaymentMethod)
    if active_only:
        query = query.filter(PaymentMethod.is_active.is_(True))
    return query.order_by(PaymentMethod.display_order, PaymentMethod.id).all()


def _apply_payment_method_fields(method: PaymentMethod, data: dict) -> None:
    for field in PAYMENT_METHOD_FIELDS:
        if field in data:
            value = data[field]
            setattr(method, field, value.strip() if isinstance(value, str) else value)
    if "is_active" in data:
        method.is_active = bool(data["is_active"])
    if "display_order" in data:
        try:
            method.display_order = int(data["display_order"])
        except (TypeError, ValueError):
            raise DepositError("display_order must be an integer")


def create_payment_method(data: dict) -> PaymentMethod:
    data = data or {}
    if not (data.get("method_name") or "").strip():
        raise DepositError("method_name is required")
    if not (data.get("account_name") or "").strip():
        raise DepositError("account_name is required")

    method = PaymentMethod(is_active=True, display_order=0)
    _apply_payment_method_fields(method, data)
    db.session.add(method)
    db.session.commit()
    return method


def update_payment_method(method_id: int, data: dict) -> PaymentMethod:
    method = db.session.get(PaymentMethod, method_id)
    if method is None:
        raise DepositError("Payment method not found")
    _apply_payment_method_fields(method, data or {})
    if not method.method_name or not method.account_name:
        raise DepositError("method_name and account_name cannot be empty")
    db.session.commit()
    return method


def delete_payment_method(method_id: int) -> None:
    method = db.session.get(PaymentMethod, method_id)
    if method is None:
        raise DepositError("Payment method not found")
    in_use = db.session.query(DepositRequest.id).filter_by(payment_method_id=method_id).first()
    if in_use:
        raise DepositError("Payment method has deposit requests; deactivate it instead")
    db.session.delete(method)
    db.session.commit()


# =============================================================================
# REQUESTS
# =============================================================================

def create_deposit(
    user_id: int | None,
    requester_type: str,
    payment_method_id: int,
    amount,
    screenshot_url: str,
    transaction_reference: str | None = None,
) -> DepositRequest:
    """Insert a pending deposit request. No balance effect."""
    if not user_id:
        raise DepositError("Not authenticated")
    if requester_type not in VALID_REQUESTER_TYPES:
        raise DepositError(f"Invalid requester type: {requester_type}")

    try:
        value = to_money(amount)
    except ValueError as exc:
        raise DepositError(str(exc))
    if value <= 0:
        raise DepositError("Deposit amount must be greater than zero")

    method = db.session.get(PaymentMethod, payment_method_id) if payment_method_id else None
    if method is None or not method.is_active:
        raise DepositError("Payment method not available")

    screenshot_url = (screenshot_url or "").strip()
    if not screenshot_url:
        raise DepositError("Payment screenshot is required")

    deposit = DepositRequest(
        user_id=user_id,
        requester_type=requester_type,
        payment_method_id=method.id,
        amount=value,
        screenshot_url=screenshot_url,
        transaction_reference=(transaction_reference or "").strip() or None,
        status=STATUS_PENDING,
        created_at=utcnow(),
    )
    db.session.add(deposit)
    db.session.commit()
    return deposit


def approve_deposit_request(deposit_id: int, admin_id: int, admin_notes: str | None = None) -> dict:
    """
    Credit the requester's wallet and mark the request approved, atomically.

    Sellers are credited through the ledger (adjustment entry) and then have
    any subscription arrears settled. The approval email is sent after the
    commit and its failure does not affect the result.
    """
    def _op():
        deposit = lock_for_update(db.session.query(DepositRequest).filter_by(id=deposit_id)).first()
        if deposit is None:
            return {"success": False, "message": "Deposit request not found"}
        if deposit.status != STATUS_PENDING:
            return {"success": False, "message": f"Deposit request already {deposit.status}"}

        amount = Decimal(deposit.amount)
        description = f"Deposit #{deposit.id} approved"
        if deposit.requester_type == REQUESTER_SELLER:
            ledger_service.post_entry(
                seller_id=deposit.user_id,
                transaction_type=ENTRY_ADJUSTMENT,
                net_amount=amount,
                gross_amount=amount,
                description=description,
                created_by_user_id=admin_id,
            )
        else:
            ledger_service.post_customer_entry(deposit.user_id, "deposit", amount, description=description)

        deposit.status = STATUS_APPROVED
        deposit.admin_notes = admin_notes
        deposit.processed_by = admin_id
        deposit.processed_at = utcnow()
        db.session.commit()
        return {"success": True, "message": "Deposit approved and wallet updated", "amount": money_str(amount)}

    try:
        result = run_with_retry(_op)
    except LedgerError as exc:
        return {"success": False, "message": str(exc)}

    if not result["success"]:
        return result

    deposit = db.session.get(DepositRequest, deposit_id)
    current_app.logger.info("Deposit %s approved by admin %s (%s)", deposit_id, admin_id, result["amount"])

    if deposit.requester_type == REQUESTER_SELLER:
        from .subscription_service import settle_pending_fees
        # the deposit is already committed; fees stay pending for the next billing run
        try:
            settlement = settle_pending_fees(deposit.user_id)
            result["fees_settled"] = settlement.get("amount", money_str(ZERO))
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Fee settlement after deposit %s failed", deposit_id)
            result["fees_settled"] = money_str(ZERO)

    result["email_sent"] = notification_service.send_deposit_approved_email(deposit)
    return result


def reject_deposit_request(deposit_id: int, admin_id: int, reason: str) -> dict:
    reason = (reason or "").strip()
    if not reason:
        return {"success": False, "message": "A rejection reason is required"}

    def _op():
        deposit = lock_for_update(db.session.query(DepositRequest).filter_by(id=deposit_id)).first()
        if deposit is None:
            return {"success": False, "message": "Deposit request not found"}
        if deposit.status != STATUS_PENDING:
            return {"success": False, "message": f"Deposit request already {deposit.status}"}
        deposit.status = STATUS_REJECTED
        deposit.admin_notes = reason
        deposit.processed_by = admin_id
        deposit.processed_at = utcnow()
        db.session.commit()
        return {"success": True, "message": "Deposit rejected"}

    return run_with_retry(_op)


def get_deposit(deposit_id: int) -> DepositRequest | None:
    return db.session.get(DepositRequest, deposit_id)


def list_user_deposits(user_id: int, requester_type: str | None = None) -> list[DepositRequest]:
    query = db.session.query(DepositRequest).filter_by(user_id=user_id)
    if requester_type:
        query = query.filter_by(requester_type=requester_type)
    return query.order_by(DepositRequest.created_at.desc(), DepositRequest.id.desc()).all()


def list_deposits(
    requester_type: str | None = None,
    status: str | None = None,
    limit: int = 200,
) -> list[dict]:
    query = db.session.query(DepositRequest, User).join(User, User.id == DepositRequest.user_id)
    if requester_type:
        if requester_type not in VALID_REQUESTER_TYPES:
            raise DepositError(f"Invalid requester type: {requester_type}")
        query = query.filter(DepositRequest.requester_type == requester_type)
    if status:
        if status not in VALID_STATUSES:
            raise DepositError(f"Invalid status: {status}")
        query = query.filter(DepositRequest.status == status)
    out = []
    for deposit, user in query.order_by(DepositRequest.created_at.desc(), DepositRequest.id.desc()).limit(limit).all():
        data = deposit.to_dict()
        data["user_email"] = user.email
        data["user_name"] = user.full_name
        out.append(data)
    return out


def pending_count(requester_type: str | None = None) -> int:
    query = db.session.query(db.func.count(DepositRequest.id)).filter(DepositRequest.status == STATUS_PENDING)
    if requester_type:
        query = query.filter(DepositRequest.requester_type == requester_type)
    return int(query.scalar() or 0)
