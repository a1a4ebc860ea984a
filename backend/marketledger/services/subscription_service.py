"""
Subscription & Billing Service

WHY: Sellers pay a recurring platform fee out of their wallet. This module
is the only writer of deduction logs and of the billing-state columns on
seller_subscriptions.

BILLING POLICY:
- fee for a period = per_day_fee * PLAN_MULTIPLIERS[plan_type]
- per_day_fee = custom_daily_fee if set, else the per_day_platform_fee setting
- free period (new_seller_free_months * 30 days) waives fees until it ends
- amount due = period fee + pending arrears
- sufficient balance: debit (commission_deduction), clear arrears, reactivate
- insufficient balance: failed log, arrears recorded; a second consecutive
  failure suspends the account
- a wallet credit (deposit approval, admin credit) settles arrears and
  reactivates the account via settle_pending_fees
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import SellerSubscription, SubscriptionDeductionLog, PlanChangeRequest, User
from ..money import ZERO, to_money, money_str, format_pkr
from . import ledger_service, settings_service
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import ENTRY_COMMISSION_DEDUCTION, PLATFORM_SUBSCRIPTION
from marketledger.time_utils import days_until, to_utc_z, utcnow


class SubscriptionError(Exception):
    """Raised for subscription validation and workflow errors."""
    pass


# =============================================================================
# PLANS (CONSTANTS)
# =============================================================================

PLAN_DAILY = "daily"
PLAN_HALF_MONTHLY = "half_monthly"
PLAN_MONTHLY = "monthly"

PLAN_MULTIPLIERS = {
    PLAN_DAILY: 1,
    PLAN_HALF_MONTHLY: 15,
    PLAN_MONTHLY: 30,
}

VALID_PLANS = list(PLAN_MULTIPLIERS)

DAYS_PER_FREE_MONTH = 30

DEDUCTION_MANUAL = "manual"
DEDUCTION_SETTLEMENT = "settlement"

LOG_SUCCESS = "success"
LOG_FAILED = "failed"

REQUEST_PENDING = "pending"
REQUEST_APPROVED = "approved"
REQUEST_REJECTED = "rejected"


# =============================================================================
# FEE ARITHMETIC
# =============================================================================

def effective_fee(per_day_fee, plan_type: str) -> Decimal:
    """Fee charged per billing period for a plan."""
    multiplier = PLAN_MULTIPLIERS.get(plan_type)
    if multiplier is None:
        raise SubscriptionError(f"Invalid plan: {plan_type}. Must be one of {VALID_PLANS}")
    return to_money(to_money(per_day_fee) * multiplier)


def per_day_fee(subscription: SellerSubscription | None) -> Decimal:
    if subscription is not None and subscription.custom_daily_fee is not None:
        return Decimal(subscription.custom_daily_fee)
    return settings_service.get_decimal("per_day_platform_fee")


def free_period_days_left(subscription: SellerSubscription | None, now: datetime | None = None) -> int:
    """
    Whole days left in the free period, rounded up.

    0 when not in a free period, when the end is past, or exactly at the end.
    """
    if subscription is None or not subscription.is_in_free_period:
        return 0
    return days_until(subscription.free_period_end, now)


def _period(plan_type: str) -> timedelta:
    return timedelta(days=PLAN_MULTIPLIERS[plan_type])


# =============================================================================
# READS
# =============================================================================

def get_subscription(seller_id: int) -> SellerSubscription | None:
    return db.session.query(SellerSubscription).filter_by(seller_id=seller_id).first()


def is_seller_suspended(seller_id: int) -> bool:
    sub = get_subscription(seller_id)
    return bool(sub and sub.account_suspended)


def list_deduction_logs(seller_id: int | None = None, limit: int = 50) -> list[SubscriptionDeductionLog]:
    query = db.session.query(SubscriptionDeductionLog)
    if seller_id is not None:
        query = query.filter_by(seller_id=seller_id)
    return (
        query.order_by(SubscriptionDeductionLog.created_at.desc(), SubscriptionDeductionLog.id.desc())
        .limit(limit)
        .all()
    )


def list_plan_change_requests(seller_id: int | None = None, status: str | None = None) -> list[PlanChangeRequest]:
    query = db.session.query(PlanChangeRequest)
    if seller_id is not None:
        query = query.filter_by(seller_id=seller_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(PlanChangeRequest.created_at.desc(), PlanChangeRequest.id.desc()).all()


def has_pending_plan_change(seller_id: int) -> bool:
    return db.session.query(PlanChangeRequest.id).filter_by(
        seller_id=seller_id, status=REQUEST_PENDING
    ).first() is not None


def subscription_overview(seller_id: int, now: datetime | None = None) -> dict:
    """Everything the seller subscription card shows, in one payload."""
    now = now or utcnow()
    sub = get_subscription(seller_id)
    daily = per_day_fee(sub)
    plan = sub.plan_type if sub else PLAN_DAILY
    return {
        "subscription": sub.to_dict() if sub else None,
        "per_day_fee": money_str(daily),
        "effective_fee": money_str(effective_fee(daily, plan)),
        "plan_fees": {p: money_str(effective_fee(daily, p)) for p in VALID_PLANS},
        "free_period_days_left": free_period_days_left(sub, now),
        "has_pending_plan_change": has_pending_plan_change(seller_id),
        "recent_deductions": [log.to_dict() for log in list_deduction_logs(seller_id, limit=10)],
        "plan_change_requests": [r.to_dict() for r in list_plan_change_requests(seller_id)],
    }


def list_subscriptions(
    *,
    suspended: bool | None = None,
    payment_pending: bool | None = None,
    limit: int = 200,
) -> list[dict]:
    query = db.session.query(SellerSubscription, User).join(User, User.id == SellerSubscription.seller_id)
    if suspended is not None:
        query = query.filter(SellerSubscription.account_suspended.is_(suspended))
    if payment_pending is not None:
        query = query.filter(SellerSubscription.payment_pending.is_(payment_pending))
    out = []
    for sub, user in query.order_by(SellerSubscription.id).limit(limit).all():
        data = sub.to_dict()
        data["seller_email"] = user.email
        data["seller_name"] = user.full_name
        data["effective_fee"] = money_str(effective_fee(per_day_fee(sub), sub.plan_type))
        out.append(data)
    return out


def admin_summary() -> dict:
    pending_count, pending_total = db.session.query(
        db.func.count(SellerSubscription.id),
        db.func.coalesce(db.func.sum(SellerSubscription.pending_amount), 0),
    ).filter(SellerSubscription.payment_pending.is_(True)).one()
    suspended_count = db.session.query(db.func.count(SellerSubscription.id)).filter(
        SellerSubscription.account_suspended.is_(True)
    ).scalar()
    active_count = db.session.query(db.func.count(SellerSubscription.id)).filter(
        SellerSubscription.is_active.is_(True)
    ).scalar()
    return {
        "active_count": int(active_count or 0),
        "payment_pending_count": int(pending_count or 0),
        "suspended_count": int(suspended_count or 0),
        "total_pending_amount": money_str(pending_total or ZERO),
    }


# =============================================================================
# ONBOARDING & ADMIN OVERRIDES
# =============================================================================

def ensure_subscription(seller_id: int, now: datetime | None = None) -> SellerSubscription:
    """
    Create the seller's subscription if missing (idempotent).

    New sellers get new_seller_free_months * 30 fee-free days; the first
    deduction is due when the free period ends, or one day out without one.
    """
    existing = get_subscription(seller_id)
    if existing is not None:
        return existing

    now = now or utcnow()
    free_months = settings_service.get_int("new_seller_free_months")
    free_days = free_months * DAYS_PER_FREE_MONTH

    sub = SellerSubscription(
        seller_id=seller_id,
        plan_type=PLAN_DAILY,
        is_active=True,
        payment_pending=False,
        pending_amount=ZERO,
        total_fees_paid=ZERO,
        free_months=free_months,
        account_suspended=False,
        created_at=now,
    )
    if free_days > 0:
        sub.is_in_free_period = True
        sub.free_period_start = now
        sub.free_period_end = now + timedelta(days=free_days)
        sub.next_deduction_at = sub.free_period_end
    else:
        sub.is_in_free_period = False
        sub.next_deduction_at = now + _period(PLAN_DAILY)

    db.session.add(sub)
    db.session.commit()
    current_app.logger.info("Subscription created for seller %s (%s free days)", seller_id, free_days)
    return sub


def update_seller_subscription(seller_id: int, changes: dict) -> SellerSubscription:
    """
    Admin override of a seller's fee, plan or active flag.

    Recognized keys: custom_daily_fee (null/"" clears), plan_type, is_active.
    Creates the subscription first if the seller has none.
    """
    if db.session.get(User, seller_id) is None:
        raise SubscriptionError("Seller not found")
    changes = changes or {}

    if "plan_type" in changes and changes["plan_type"] not in PLAN_MULTIPLIERS:
        raise SubscriptionError(f"Invalid plan: {changes['plan_type']}. Must be one of {VALID_PLANS}")

    custom_fee = None
    if changes.get("custom_daily_fee") not in (None, ""):
        try:
            custom_fee = to_money(changes["custom_daily_fee"], field="custom_daily_fee")
        except ValueError as exc:
            raise SubscriptionError(str(exc))
        if custom_fee < 0:
            raise SubscriptionError("custom_daily_fee cannot be negative")

    ensure_subscription(seller_id)

    def _op():
        sub = lock_for_update(db.session.query(SellerSubscription).filter_by(seller_id=seller_id)).first()
        if "custom_daily_fee" in changes:
            sub.custom_daily_fee = custom_fee
        if "plan_type" in changes:
            sub.plan_type = changes["plan_type"]
        if "is_active" in changes:
            sub.is_active = bool(changes["is_active"])
        db.session.commit()
        return sub

    return run_with_retry(_op)


def get_fee_settings() -> dict:
    return {
        "per_day_platform_fee": money_str(settings_service.get_decimal("per_day_platform_fee")),
        "new_seller_free_months": settings_service.get_int("new_seller_free_months"),
    }


def update_fee_settings(values: dict, admin_id: int) -> dict:
    allowed = {"per_day_platform_fee", "new_seller_free_months"}
    unknown = set(values or {}) - allowed
    if unknown:
        raise SubscriptionError(f"Unknown fee settings: {', '.join(sorted(unknown))}")
    settings_service.update_settings(values, updated_by_user_id=admin_id)
    return get_fee_settings()


# =============================================================================
# PLAN CHANGES
# =============================================================================

def request_plan_change(seller_id: int, new_plan: str) -> PlanChangeRequest:
    if new_plan not in PLAN_MULTIPLIERS:
        raise SubscriptionError(f"Invalid plan: {new_plan}. Must be one of {VALID_PLANS}")

    sub = get_subscription(seller_id)
    if sub is None:
        raise SubscriptionError("Subscription not found")
    if sub.plan_type == new_plan:
        raise SubscriptionError("You are already on this plan")
    if has_pending_plan_change(seller_id):
        raise SubscriptionError("You already have a pending plan change request")

    req = PlanChangeRequest(
        seller_id=seller_id,
        current_plan=sub.plan_type,
        requested_plan=new_plan,
        status=REQUEST_PENDING,
        created_at=utcnow(),
    )
    db.session.add(req)
    db.session.commit()
    return req


def _get_pending_request(request_id: int) -> PlanChangeRequest:
    req = db.session.get(PlanChangeRequest, request_id)
    if req is None:
        raise SubscriptionError("Plan change request not found")
    if req.status != REQUEST_PENDING:
        raise SubscriptionError(f"Plan change request is already {req.status}")
    return req


def approve_plan_change(request_id: int, admin_id: int, admin_notes: str | None = None) -> PlanChangeRequest:
    """Switch the seller's plan. Takes effect from the next deduction."""
    def _op():
        req = _get_pending_request(request_id)
        sub = lock_for_update(
            db.session.query(SellerSubscription).filter_by(seller_id=req.seller_id)
        ).first()
        if sub is None:
            raise SubscriptionError("Subscription not found")
        sub.plan_type = req.requested_plan
        req.status = REQUEST_APPROVED
        req.admin_notes = admin_notes
        req.processed_by = admin_id
        req.processed_at = utcnow()
        db.session.commit()
        return req

    return run_with_retry(_op)


def reject_plan_change(request_id: int, admin_id: int, admin_notes: str | None = None) -> PlanChangeRequest:
    req = _get_pending_request(request_id)
    req.status = REQUEST_REJECTED
    req.admin_notes = admin_notes
    req.processed_by = admin_id
    req.processed_at = utcnow()
    db.session.commit()
    return req


# =============================================================================
# DEDUCTIONS (sole writer of billing state)
# =============================================================================

def _log(sub, amount, deduction_type, status, before, after, failure_reason=None, now=None):
    db.session.add(SubscriptionDeductionLog(
        seller_id=sub.seller_id,
        subscription_id=sub.id,
        amount=to_money(amount),
        deduction_type=deduction_type,
        status=status,
        failure_reason=failure_reason,
        wallet_balance_before=before,
        wallet_balance_after=after,
        created_at=now or utcnow(),
    ))


def _collect(sub, amount: Decimal, description: str) -> None:
    ledger_service.post_entry(
        seller_id=sub.seller_id,
        transaction_type=ENTRY_COMMISSION_DEDUCTION,
        net_amount=-amount,
        gross_amount=amount,
        description=description,
    )
    ledger_service.credit_platform(
        PLATFORM_SUBSCRIPTION,
        amount,
        seller_id=sub.seller_id,
        description=description,
    )


def process_subscription_deduction(
    seller_id: int,
    deduction_type: str | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Charge one billing period (plus arrears) against the seller's wallet.

    Returns {success, message, amount?, next_deduction?, pending_amount?}.
    A failed charge is still committed: the failed log, arrears and possible
    suspension are the outcome, not an error.
    """
    now = now or utcnow()

    def _op():
        sub = lock_for_update(
            db.session.query(SellerSubscription).filter_by(seller_id=seller_id)
        ).first()
        if sub is None:
            return {"success": False, "message": "Subscription not found"}
        if not sub.is_active:
            return {"success": False, "message": "Subscription is not active"}

        if sub.is_in_free_period:
            if sub.free_period_end is not None and now < sub.free_period_end:
                sub.next_deduction_at = sub.free_period_end
                db.session.commit()
                return {
                    "success": True,
                    "message": f"Free period active: {days_until(sub.free_period_end, now)} days left",
                    "amount": money_str(ZERO),
                    "next_deduction": to_utc_z(sub.next_deduction_at),
                }
            sub.is_in_free_period = False

        fee = effective_fee(per_day_fee(sub), sub.plan_type)
        arrears = Decimal(sub.pending_amount or ZERO)
        due = fee + arrears
        kind = deduction_type or sub.plan_type

        sub.last_deduction_at = now
        sub.next_deduction_at = now + _period(sub.plan_type)

        if due <= 0:
            db.session.commit()
            return {
                "success": True,
                "message": "No fee due",
                "amount": money_str(ZERO),
                "next_deduction": to_utc_z(sub.next_deduction_at),
            }

        before = ledger_service.get_balance(seller_id)

        if before >= due:
            _collect(sub, due, f"Subscription fee ({kind})")
            _log(sub, due, kind, LOG_SUCCESS, before, before - due, now=now)
            sub.total_fees_paid = Decimal(sub.total_fees_paid or ZERO) + due
            sub.payment_pending = False
            sub.pending_amount = ZERO
            if sub.account_suspended:
                sub.account_suspended = False
                sub.reactivated_at = now
            db.session.commit()
            return {
                "success": True,
                "message": f"Subscription fee of {format_pkr(due)} deducted",
                "amount": money_str(due),
                "next_deduction": to_utc_z(sub.next_deduction_at),
            }

        previously_failed = bool(sub.payment_pending)
        _log(
            sub, due, kind, LOG_FAILED, before, before,
            failure_reason="Insufficient wallet balance",
            now=now,
        )
        sub.payment_pending = True
        sub.pending_amount = due
        if previously_failed and not sub.account_suspended:
            sub.account_suspended = True
            sub.suspended_at = now
        db.session.commit()
        return {
            "success": False,
            "message": "Insufficient wallet balance for subscription fee",
            "amount": money_str(due),
            "next_deduction": to_utc_z(sub.next_deduction_at),
            "pending_amount": money_str(due),
        }

    result = run_with_retry(_op)
    log = current_app.logger.info if result["success"] else current_app.logger.warning
    log("Subscription deduction for seller %s: %s", seller_id, result["message"])
    return result


def trigger_manual_deduction(seller_id: int) -> dict:
    """Admin-initiated deduction outside the schedule."""
    return process_subscription_deduction(seller_id, deduction_type=DEDUCTION_MANUAL)


def settle_pending_fees(seller_id: int, now: datetime | None = None) -> dict:
    """
    Pay outstanding arrears from the wallet and lift a suspension.

    Called after every wallet credit. Does not move the deduction schedule.
    """
    now = now or utcnow()

    def _op():
        sub = lock_for_update(
            db.session.query(SellerSubscription).filter_by(seller_id=seller_id)
        ).first()
        if sub is None or not sub.payment_pending or Decimal(sub.pending_amount or ZERO) <= 0:
            return {"success": True, "message": "No pending fees", "amount": money_str(ZERO)}

        due = Decimal(sub.pending_amount)
        before = ledger_service.get_balance(seller_id)
        if before < due:
            return {
                "success": False,
                "message": "Insufficient wallet balance to settle pending fees",
                "pending_amount": money_str(due),
            }

        _collect(sub, due, "Subscription arrears settlement")
        _log(sub, due, DEDUCTION_SETTLEMENT, LOG_SUCCESS, before, before - due, now=now)
        sub.total_fees_paid = Decimal(sub.total_fees_paid or ZERO) + due
        sub.payment_pending = False
        sub.pending_amount = ZERO
        reactivated = bool(sub.account_suspended)
        if reactivated:
            sub.account_suspended = False
            sub.reactivated_at = now
        db.session.commit()
        return {
            "success": True,
            "message": "Pending fees settled" + (" and account reactivated" if reactivated else ""),
            "amount": money_str(due),
        }

    result = run_with_retry(_op)
    if result.get("amount") not in (None, money_str(ZERO)):
        current_app.logger.info("Seller %s: %s", seller_id, result["message"])
    return result


def process_due_subscriptions(now: datetime | None = None) -> dict:
    """
    Scheduled sweep: deduct every active subscription whose next deduction is due.

    A failure for one seller is recorded in details and never stops the sweep.
    """
    now = now or utcnow()
    seller_ids = [
        seller_id for (seller_id,) in db.session.query(SellerSubscription.seller_id)
        .filter(
            SellerSubscription.is_active.is_(True),
            SellerSubscription.next_deduction_at <= now,
        )
        .order_by(SellerSubscription.next_deduction_at, SellerSubscription.id)
        .all()
    ]

    current_app.logger.info("Found %s subscriptions due for deduction", len(seller_ids))

    results = {"processed": 0, "successful": 0, "failed": 0, "details": []}
    for seller_id in seller_ids:
        try:
            outcome = process_subscription_deduction(seller_id, now=now)
            success = bool(outcome.get("success"))
            message = outcome.get("message") or "Unknown result"
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception("Deduction failed for seller %s", seller_id)
            success = False
            message = str(exc)

        results["processed"] += 1
        if success:
            results["successful"] += 1
        else:
            results["failed"] += 1
        results["details"].append({"seller_id": seller_id, "success": success, "message": message})

    current_app.logger.info(
        "Deduction sweep complete: %s processed, %s successful, %s failed",
        results["processed"], results["successful"], results["failed"],
    )
    return results
