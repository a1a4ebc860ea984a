"""
Payout Workflow Service

STATE MACHINE:
    pending ──process_payout──> completed
       │  └──(approve)──> approved ──process_payout──> completed
       └──reject_payout──> rejected        (approved may also be rejected)

- No balance moves at request time; process_payout debits the wallet with a
  `withdrawal` ledger entry in the same transaction that completes the request.
- completed and rejected are terminal.
- One open (pending/approved) request per seller.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import PayoutRequest
from ..money import ZERO, to_money, money_str, format_pkr
from . import ledger_service
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import LedgerError, ENTRY_WITHDRAWAL
from marketledger.time_utils import utcnow


class PayoutError(Exception):
    """Raised for payout validation and state errors."""
    pass


STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_COMPLETED = "completed"

VALID_STATUSES = [STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_COMPLETED]
OPEN_STATUSES = {STATUS_PENDING, STATUS_APPROVED}
TERMINAL_STATUSES = {STATUS_REJECTED, STATUS_COMPLETED}

BANK_FIELDS = ("bank_name", "account_title", "iban")


def request_payout(seller_id: int, amount, bank_details: dict) -> PayoutRequest:
    """
    Seller asks to withdraw `amount` to a bank account.

    Checks, in order: wallet exists, minimum amount, balance, bank details,
    no other open request.

    Raises:
        PayoutError: with the user-facing message
    """
    try:
        value = to_money(amount)
    except ValueError as exc:
        raise PayoutError(str(exc))

    wallet = ledger_service.get_wallet(seller_id)
    if wallet is None:
        raise PayoutError("Wallet not found")

    minimum = ledger_service.min_payout_amount()
    if value < minimum:
        raise PayoutError(f"Minimum payout amount is {format_pkr(minimum)}")

    if value > Decimal(wallet.current_balance):
        raise PayoutError("Insufficient balance")

    bank_details = bank_details or {}
    cleaned = {}
    for field in BANK_FIELDS:
        val = (bank_details.get(field) or "").strip()
        if not val:
            raise PayoutError(f"{field} is required")
        cleaned[field] = val

    if ledger_service.has_pending_payout(seller_id):
        raise PayoutError("You already have a pending payout request")

    payout = PayoutRequest(
        seller_id=seller_id,
        wallet_id=wallet.id,
        amount=value,
        bank_name=cleaned["bank_name"],
        account_title=cleaned["account_title"],
        iban=cleaned["iban"].replace(" ", "").upper(),
        status=STATUS_PENDING,
        created_at=utcnow(),
    )
    db.session.add(payout)
    db.session.commit()

    current_app.logger.info("Payout %s requested by seller %s for %s", payout.id, seller_id, value)
    return payout


def _get_open_payout_locked(payout_id: int) -> PayoutRequest:
    payout = lock_for_update(db.session.query(PayoutRequest).filter_by(id=payout_id)).first()
    if payout is None:
        raise PayoutError("Payout request not found")
    if payout.status not in OPEN_STATUSES:
        raise PayoutError(f"Payout request is already {payout.status}")
    return payout


def approve_payout(payout_id: int, admin_id: int, admin_notes: str | None = None) -> PayoutRequest:
    """Mark a pending request approved (queued for bank transfer). No balance effect."""
    def _op():
        payout = _get_open_payout_locked(payout_id)
        if payout.status != STATUS_PENDING:
            raise PayoutError(f"Payout request is already {payout.status}")
        payout.status = STATUS_APPROVED
        payout.processed_by = admin_id
        if admin_notes:
            payout.admin_notes = admin_notes
        db.session.commit()
        return payout

    return run_with_retry(_op)


def process_payout(payout_id: int, transaction_reference: str, admin_id: int) -> bool:
    """
    Complete a payout: debit the wallet and close the request atomically.

    Returns True on success. Returns False when the request is missing,
    closed, or the wallet no longer covers the amount; nothing is written
    in that case.
    """
    reference = (transaction_reference or "").strip()
    if not reference:
        raise PayoutError("Transaction reference is required")

    def _op():
        payout = _get_open_payout_locked(payout_id)
        amount = Decimal(payout.amount)

        ledger_service.post_entry(
            seller_id=payout.seller_id,
            transaction_type=ENTRY_WITHDRAWAL,
            net_amount=-amount,
            gross_amount=amount,
            description=f"Payout to {payout.bank_name} ({reference})",
            created_by_user_id=admin_id,
        )

        payout.status = STATUS_COMPLETED
        payout.transaction_reference = reference
        payout.processed_by = admin_id
        payout.processed_at = utcnow()
        db.session.commit()
        return True

    try:
        result = run_with_retry(_op)
    except (PayoutError, LedgerError) as exc:
        current_app.logger.warning("Payout %s not processed: %s", payout_id, exc)
        return False

    current_app.logger.info("Payout %s completed by admin %s (ref %s)", payout_id, admin_id, reference)
    return result


def reject_payout(payout_id: int, reason: str, admin_id: int) -> PayoutRequest:
    """Close an open request as rejected. No balance effect."""
    reason = (reason or "").strip()
    if not reason:
        raise PayoutError("A rejection reason is required")

    def _op():
        payout = _get_open_payout_locked(payout_id)
        payout.status = STATUS_REJECTED
        payout.admin_notes = reason
        payout.processed_by = admin_id
        payout.processed_at = utcnow()
        db.session.commit()
        return payout

    return run_with_retry(_op)


def attach_receipt(payout_id: int, receipt_url: str) -> PayoutRequest:
    """Store the bank transfer receipt URL on a completed payout."""
    receipt_url = (receipt_url or "").strip()
    if not receipt_url:
        raise PayoutError("receipt_url is required")
    payout = db.session.get(PayoutRequest, payout_id)
    if payout is None:
        raise PayoutError("Payout request not found")
    if payout.status != STATUS_COMPLETED:
        raise PayoutError("Receipts can only be attached to completed payouts")
    payout.receipt_url = receipt_url
    db.session.commit()
    return payout


def get_payout(payout_id: int) -> PayoutRequest | None:
    return db.session.get(PayoutRequest, payout_id)


def list_seller_payouts(seller_id: int, limit: int = 50) -> list[PayoutRequest]:
    return (
        db.session.query(PayoutRequest)
        .filter_by(seller_id=seller_id)
        .order_by(PayoutRequest.created_at.desc(), PayoutRequest.id.desc())
        .limit(limit)
        .all()
    )


def list_payouts(status: str | None = None, limit: int = 100) -> list[PayoutRequest]:
    query = db.session.query(PayoutRequest)
    if status:
        if status not in VALID_STATUSES:
            raise PayoutError(f"Invalid status: {status}. Must be one of {VALID_STATUSES}")
        query = query.filter_by(status=status)
    return (
        query.order_by(PayoutRequest.created_at.desc(), PayoutRequest.id.desc())
        .limit(limit)
        .all()
    )


def payout_summary() -> dict:
    """Pending count and amount for the admin finance dashboard."""
    count, total = db.session.query(
        db.func.count(PayoutRequest.id),
        db.func.coalesce(db.func.sum(PayoutRequest.amount), 0),
    ).filter(PayoutRequest.status.in_(list(OPEN_STATUSES))).one()
    completed_total = db.session.query(
        db.func.coalesce(db.func.sum(PayoutRequest.amount), 0)
    ).filter(PayoutRequest.status == STATUS_COMPLETED).scalar()
    return {
        "pending_count": int(count or 0),
        "pending_amount": money_str(total or ZERO),
        "completed_amount": money_str(completed_total or ZERO),
    }
