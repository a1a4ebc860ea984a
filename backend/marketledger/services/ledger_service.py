"""
Seller Wallet & Ledger Service

LEDGER INVARIANTS (authoritative):
- wallet.current_balance == sum(net_amount) of the seller's ledger entries.
- post_entry is the only code path that changes a wallet balance; it appends
  the entry and applies its signed amount under a row lock in one flush.
- Entries are append-only; corrections are new `adjustment` entries.
- Wallets are created lazily on first posting and never deleted.
- post_entry never commits; the calling operation owns the transaction.

Platform fees collected from sellers are mirrored into the single-row
platform wallet so revenue totals never need re-aggregation.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import (
    SellerWallet,
    WalletTransaction,
    PayoutRequest,
    SellerCommission,
    PlatformWallet,
    PlatformWalletTransaction,
    CustomerWallet,
    CustomerWalletTransaction,
    User,
)
from ..money import ZERO, to_money, money_str, percentage_of
from . import settings_service
from .concurrency import insert_unique, lock_for_update, run_with_retry
from marketledger.time_utils import add_months, utcnow


class LedgerError(Exception):
    """Raised for wallet and ledger operation errors."""
    pass


# =============================================================================
# ENTRY TYPES (CONSTANTS)
# =============================================================================

ENTRY_EARNING = "earning"
ENTRY_COMMISSION_DEDUCTION = "commission_deduction"
ENTRY_WITHDRAWAL = "withdrawal"
ENTRY_REFUND_DEDUCTION = "refund_deduction"
ENTRY_ADJUSTMENT = "adjustment"

CREDIT_ENTRY_TYPES = {ENTRY_EARNING}
DEBIT_ENTRY_TYPES = {ENTRY_COMMISSION_DEDUCTION, ENTRY_WITHDRAWAL, ENTRY_REFUND_DEDUCTION}
VALID_ENTRY_TYPES = CREDIT_ENTRY_TYPES | DEBIT_ENTRY_TYPES | {ENTRY_ADJUSTMENT}

# Platform revenue streams
PLATFORM_COMMISSION = "commission"
PLATFORM_SUBSCRIPTION = "subscription"
PLATFORM_FLASH_SALE_FEE = "flash_sale_fee"

PLATFORM_TOTAL_COLUMNS = {
    PLATFORM_COMMISSION: "total_commission_earnings",
    PLATFORM_SUBSCRIPTION: "total_subscription_earnings",
    PLATFORM_FLASH_SALE_FEE: "total_flash_sale_earnings",
}

ADJUST_CREDIT = "credit"
ADJUST_DEBIT = "debit"


# =============================================================================
# WALLET READS
# =============================================================================

def get_wallet(seller_id: int) -> SellerWallet | None:
    return db.session.query(SellerWallet).filter_by(seller_id=seller_id).first()


def get_balance(seller_id: int) -> Decimal:
    wallet = get_wallet(seller_id)
    return Decimal(wallet.current_balance) if wallet else ZERO


def min_payout_amount() -> Decimal:
    return settings_service.get_decimal("min_payout_amount")


def wallet_snapshot(seller_id: int) -> dict:
    """
    Balance and totals for display.

    A seller without a wallet row gets a zero snapshot (exists=False),
    not an error.
    """
    wallet = get_wallet(seller_id)
    minimum = min_payout_amount()
    if wallet is None:
        return {
            "exists": False,
            "seller_id": seller_id,
            "current_balance": money_str(ZERO),
            "total_earnings": money_str(ZERO),
            "total_withdrawn": money_str(ZERO),
            "pending_clearance": money_str(ZERO),
            "min_payout_amount": money_str(minimum),
            "can_request_payout": False,
            "has_pending_payout": has_pending_payout(seller_id),
        }

    data = wallet.to_dict()
    data.update({
        "exists": True,
        "min_payout_amount": money_str(minimum),
        "can_request_payout": Decimal(wallet.current_balance) >= minimum,
        "has_pending_payout": has_pending_payout(seller_id),
    })
    return data


def list_transactions(
    seller_id: int,
    limit: int = 50,
    transaction_type: str | None = None,
) -> list[WalletTransaction]:
    """Ledger history, newest first."""
    query = db.session.query(WalletTransaction).filter_by(seller_id=seller_id)
    if transaction_type:
        if transaction_type not in VALID_ENTRY_TYPES:
            raise LedgerError(f"Invalid transaction type: {transaction_type}")
        query = query.filter_by(transaction_type=transaction_type)
    return (
        query.order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .limit(limit)
        .all()
    )


def can_request_payout(seller_id: int) -> bool:
    """True when the balance reaches the minimum payout amount."""
    wallet = get_wallet(seller_id)
    if wallet is None:
        return False
    return Decimal(wallet.current_balance) >= min_payout_amount()


def has_pending_payout(seller_id: int) -> bool:
    return db.session.query(PayoutRequest.id).filter(
        PayoutRequest.seller_id == seller_id,
        PayoutRequest.status.in_(["pending", "approved"]),
    ).first() is not None


def verify_wallet(seller_id: int) -> dict:
    """Recompute the balance from the ledger and compare it with the stored one."""
    wallet = get_wallet(seller_id)
    ledger_sum = db.session.query(
        db.func.coalesce(db.func.sum(WalletTransaction.net_amount), 0)
    ).filter(WalletTransaction.seller_id == seller_id).scalar()
    ledger_sum = to_money(ledger_sum, field="ledger_sum")
    balance = Decimal(wallet.current_balance) if wallet else ZERO
    return {
        "seller_id": seller_id,
        "balance": money_str(balance),
        "ledger_sum": money_str(ledger_sum),
        "consistent": balance == ledger_sum,
    }


def list_wallets(limit: int = 100) -> list[dict]:
    """All seller wallets, largest balance first (admin finance view)."""
    rows = (
        db.session.query(SellerWallet, User)
        .join(User, User.id == SellerWallet.seller_id)
        .order_by(SellerWallet.current_balance.desc(), SellerWallet.id)
        .limit(limit)
        .all()
    )
    out = []
    for wallet, user in rows:
        data = wallet.to_dict()
        data["seller_email"] = user.email
        data["seller_name"] = user.full_name
        out.append(data)
    return out


# =============================================================================
# POSTING (the only balance mutator)
# =============================================================================

def _get_or_create_wallet_locked(seller_id: int) -> SellerWallet:
    wallet = lock_for_update(
        db.session.query(SellerWallet).filter_by(seller_id=seller_id)
    ).first()
    if wallet is None:
        wallet = SellerWallet(
            seller_id=seller_id,
            current_balance=ZERO,
            total_earnings=ZERO,
            total_withdrawn=ZERO,
            pending_clearance=ZERO,
        )
        insert_unique(wallet)
    return wallet


def post_entry(
    *,
    seller_id: int,
    transaction_type: str,
    net_amount: Decimal,
    gross_amount: Decimal | None = None,
    commission_amount: Decimal = ZERO,
    commission_percentage: Decimal = ZERO,
    order_reference: str | None = None,
    description: str | None = None,
    created_by_user_id: int | None = None,
    allow_negative_balance: bool = False,
) -> WalletTransaction:
    """
    Append a ledger entry and apply its signed net_amount to the wallet.

    Sign rules: earning > 0; commission_deduction, withdrawal and
    refund_deduction < 0; adjustment either way but never zero.

    Flushes, does not commit.

    Raises:
        LedgerError: invalid type/sign, or a debit the balance can't cover
    """
    if transaction_type not in VALID_ENTRY_TYPES:
        raise LedgerError(f"Invalid transaction type: {transaction_type}")

    net = to_money(net_amount, field="net_amount")
    if net == 0:
        raise LedgerError("Ledger entry amount cannot be zero")
    if transaction_type in CREDIT_ENTRY_TYPES and net < 0:
        raise LedgerError(f"{transaction_type} entries must be positive")
    if transaction_type in DEBIT_ENTRY_TYPES and net > 0:
        raise LedgerError(f"{transaction_type} entries must be negative")

    wallet = _get_or_create_wallet_locked(seller_id)
    new_balance = Decimal(wallet.current_balance) + net
    if new_balance < 0 and not allow_negative_balance:
        raise LedgerError("Insufficient balance")

    wallet.current_balance = new_balance
    if transaction_type == ENTRY_EARNING:
        wallet.total_earnings = Decimal(wallet.total_earnings) + net
    elif transaction_type == ENTRY_WITHDRAWAL:
        wallet.total_withdrawn = Decimal(wallet.total_withdrawn) - net

    entry = WalletTransaction(
        wallet_id=wallet.id,
        seller_id=seller_id,
        order_reference=order_reference,
        transaction_type=transaction_type,
        gross_amount=to_money(gross_amount if gross_amount is not None else abs(net), field="gross_amount"),
        commission_amount=to_money(commission_amount, field="commission_amount"),
        commission_percentage=to_money(commission_percentage, field="commission_percentage"),
        net_amount=net,
        description=description,
        created_by_user_id=created_by_user_id,
        created_at=utcnow(),
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def credit_platform(
    transaction_type: str,
    amount: Decimal,
    *,
    seller_id: int | None = None,
    description: str | None = None,
) -> PlatformWalletTransaction:
    """Record platform revenue. Flushes, does not commit."""
    column = PLATFORM_TOTAL_COLUMNS.get(transaction_type)
    if column is None:
        raise LedgerError(f"Invalid platform transaction type: {transaction_type}")
    amount = to_money(amount)

    platform = lock_for_update(
        db.session.query(PlatformWallet).order_by(PlatformWallet.id)
    ).first()
    if platform is None:
        platform = PlatformWallet(
            total_balance=ZERO,
            total_subscription_earnings=ZERO,
            total_commission_earnings=ZERO,
            total_flash_sale_earnings=ZERO,
        )
        db.session.add(platform)
        db.session.flush()

    platform.total_balance = Decimal(platform.total_balance) + amount
    setattr(platform, column, Decimal(getattr(platform, column)) + amount)

    txn = PlatformWalletTransaction(
        transaction_type=transaction_type,
        amount=amount,
        seller_id=seller_id,
        description=description,
        created_at=utcnow(),
    )
    db.session.add(txn)
    db.session.flush()
    return txn


def platform_wallet_snapshot(limit: int = 20) -> dict:
    platform = db.session.query(PlatformWallet).order_by(PlatformWallet.id).first()
    recent = (
        db.session.query(PlatformWalletTransaction)
        .order_by(PlatformWalletTransaction.created_at.desc(), PlatformWalletTransaction.id.desc())
        .limit(limit)
        .all()
    )
    if platform is None:
        data = {
            "total_balance": money_str(ZERO),
            "total_subscription_earnings": money_str(ZERO),
            "total_commission_earnings": money_str(ZERO),
            "total_flash_sale_earnings": money_str(ZERO),
        }
    else:
        data = platform.to_dict()
    data["recent_transactions"] = [t.to_dict() for t in recent]
    return data


# =============================================================================
# COMMISSION
# =============================================================================

def get_commission_rate(seller_id: int, now: datetime | None = None) -> Decimal:
    """
    Commission percentage applied to a seller's order earnings.

    grace rate while the grace window is open > custom rate > global rate.
    """
    now = now or utcnow()
    override = db.session.query(SellerCommission).filter_by(seller_id=seller_id).first()
    if override is not None:
        if override.grace_period_months and override.grace_start_date:
            grace_end = add_months(override.grace_start_date, override.grace_period_months)
            if now < grace_end:
                return Decimal(override.grace_commission_percentage)
        if override.custom_commission_percentage is not None:
            return Decimal(override.custom_commission_percentage)
    return settings_service.get_decimal("global_commission_percentage")


def _percentage(value, field: str) -> Decimal:
    try:
        pct = to_money(value, field=field)
    except ValueError as exc:
        raise LedgerError(str(exc))
    if pct < 0 or pct > 100:
        raise LedgerError(f"{field} must be between 0 and 100")
    return pct


def set_seller_commission(
    seller_id: int,
    *,
    custom_commission_percentage=None,
    grace_period_months: int = 0,
    grace_commission_percentage=0,
    notes: str | None = None,
) -> SellerCommission:
    """
    Upsert a seller's commission override.

    The grace window starts the first time grace months are enabled and is
    cleared when they are set back to zero.
    """
    custom = None
    if custom_commission_percentage not in (None, ""):
        custom = _percentage(custom_commission_percentage, "custom_commission_percentage")
    grace_pct = _percentage(grace_commission_percentage or 0, "grace_commission_percentage")
    try:
        months = int(grace_period_months or 0)
    except (TypeError, ValueError):
        raise LedgerError("grace_period_months must be an integer")
    if months < 0:
        raise LedgerError("grace_period_months cannot be negative")

    if db.session.get(User, seller_id) is None:
        raise LedgerError("Seller not found")

    override = db.session.query(SellerCommission).filter_by(seller_id=seller_id).first()
    if override is None:
        override = SellerCommission(seller_id=seller_id)
        db.session.add(override)

    override.custom_commission_percentage = custom
    override.grace_period_months = months
    override.grace_commission_percentage = grace_pct
    override.notes = notes
    if months > 0:
        if override.grace_start_date is None:
            override.grace_start_date = utcnow()
    else:
        override.grace_start_date = None

    db.session.commit()
    return override


# =============================================================================
# BALANCE-AFFECTING OPERATIONS
# =============================================================================

def record_order_earning(seller_id: int, order_reference: str, sale_amount) -> WalletTransaction:
    """
    Credit a seller for a delivered order, net of platform commission.

    commission = sale_amount * rate / 100; the commission goes to the
    platform wallet. One earning per (seller, order).
    """
    try:
        sale = to_money(sale_amount, field="sale_amount")
    except ValueError as exc:
        raise LedgerError(str(exc))
    if sale <= 0:
        raise LedgerError("Sale amount must be positive")
    if not order_reference:
        raise LedgerError("order_reference is required")

    def _op():
        # wallet lock serializes the duplicate check per seller
        _get_or_create_wallet_locked(seller_id)
        duplicate = db.session.query(WalletTransaction.id).filter_by(
            seller_id=seller_id,
            order_reference=order_reference,
            transaction_type=ENTRY_EARNING,
        ).first()
        if duplicate:
            raise LedgerError(f"Earnings already recorded for order {order_reference}")

        rate = get_commission_rate(seller_id)
        commission = percentage_of(sale, rate)
        net = sale - commission

        entry = post_entry(
            seller_id=seller_id,
            transaction_type=ENTRY_EARNING,
            net_amount=net,
            gross_amount=sale,
            commission_amount=commission,
            commission_percentage=rate,
            order_reference=order_reference,
            description=f"Earnings from order {order_reference}",
        )
        if commission > 0:
            credit_platform(
                PLATFORM_COMMISSION,
                commission,
                seller_id=seller_id,
                description=f"Commission on order {order_reference}",
            )
        db.session.commit()
        return entry

    return run_with_retry(_op)


def record_refund_deduction(seller_id: int, order_reference: str, amount) -> WalletTransaction:
    """
    Claw back a refunded order from the seller.

    The refund stands even if the seller already withdrew the funds, so this
    debit may take the balance below zero.
    """
    try:
        value = to_money(amount)
    except ValueError as exc:
        raise LedgerError(str(exc))
    if value <= 0:
        raise LedgerError("Refund amount must be positive")

    def _op():
        entry = post_entry(
            seller_id=seller_id,
            transaction_type=ENTRY_REFUND_DEDUCTION,
            net_amount=-value,
            gross_amount=value,
            order_reference=order_reference,
            description=f"Refund deduction for order {order_reference}",
            allow_negative_balance=True,
        )
        db.session.commit()
        return entry

    return run_with_retry(_op)


def adjust_seller_balance(
    seller_id: int,
    adjustment_type: str,
    amount,
    reason: str,
    admin_id: int,
) -> dict:
    """
    Admin credit/debit with a mandatory reason.

    Returns {success, message, new_balance}. A debit may not overdraw the
    wallet. A credit settles outstanding subscription arrears afterwards.
    """
    if adjustment_type not in (ADJUST_CREDIT, ADJUST_DEBIT):
        return {"success": False, "message": "Adjustment type must be credit or debit"}
    try:
        value = to_money(amount)
    except ValueError as exc:
        return {"success": False, "message": str(exc)}
    if value <= 0:
        return {"success": False, "message": "Amount must be greater than zero"}
    reason = (reason or "").strip()
    if not reason:
        return {"success": False, "message": "A reason is required"}
    if db.session.get(User, seller_id) is None:
        return {"success": False, "message": "Seller not found"}

    signed = value if adjustment_type == ADJUST_CREDIT else -value

    def _op():
        post_entry(
            seller_id=seller_id,
            transaction_type=ENTRY_ADJUSTMENT,
            net_amount=signed,
            gross_amount=value,
            description=f"Admin {adjustment_type}: {reason}",
            created_by_user_id=admin_id,
        )
        db.session.commit()

    try:
        run_with_retry(_op)
    except LedgerError as exc:
        return {"success": False, "message": str(exc)}

    current_app.logger.info(
        "Wallet %s for seller %s: %s by admin %s", adjustment_type, seller_id, value, admin_id
    )

    if adjustment_type == ADJUST_CREDIT:
        from .subscription_service import settle_pending_fees
        settle_pending_fees(seller_id)

    return {
        "success": True,
        "message": "Balance adjusted",
        "new_balance": money_str(get_balance(seller_id)),
    }


# =============================================================================
# CUSTOMER WALLETS
# =============================================================================

def get_customer_wallet(customer_id: int) -> CustomerWallet | None:
    return db.session.query(CustomerWallet).filter_by(customer_id=customer_id).first()


def customer_wallet_snapshot(customer_id: int) -> dict:
    wallet = get_customer_wallet(customer_id)
    if wallet is None:
        return {
            "exists": False,
            "customer_id": customer_id,
            "balance": money_str(ZERO),
            "total_deposited": money_str(ZERO),
        }
    data = wallet.to_dict()
    data["exists"] = True
    return data


def post_customer_entry(
    customer_id: int,
    transaction_type: str,
    amount: Decimal,
    description: str | None = None,
) -> CustomerWalletTransaction:
    """Signed customer wallet posting. Flushes, does not commit."""
    amount = to_money(amount)
    wallet = lock_for_update(
        db.session.query(CustomerWallet).filter_by(customer_id=customer_id)
    ).first()
    if wallet is None:
        wallet = insert_unique(CustomerWallet(customer_id=customer_id, balance=ZERO, total_deposited=ZERO))

    new_balance = Decimal(wallet.balance) + amount
    if new_balance < 0:
        raise LedgerError("Insufficient balance")
    wallet.balance = new_balance
    if transaction_type == "deposit":
        wallet.total_deposited = Decimal(wallet.total_deposited) + amount

    txn = CustomerWalletTransaction(
        wallet_id=wallet.id,
        customer_id=customer_id,
        transaction_type=transaction_type,
        amount=amount,
        description=description,
        created_at=utcnow(),
    )
    db.session.add(txn)
    db.session.flush()
    return txn


def adjust_customer_balance(
    customer_id: int,
    adjustment_type: str,
    amount,
    reason: str,
    admin_id: int,
) -> dict:
    """Customer counterpart of adjust_seller_balance."""
    if adjustment_type not in (ADJUST_CREDIT, ADJUST_DEBIT):
        return {"success": False, "message": "Adjustment type must be credit or debit"}
    try:
        value = to_money(amount)
    except ValueError as exc:
        return {"success": False, "message": str(exc)}
    if value <= 0:
        return {"success": False, "message": "Amount must be greater than zero"}
    reason = (reason or "").strip()
    if not reason:
        return {"success": False, "message": "A reason is required"}
    if db.session.get(User, customer_id) is None:
        return {"success": False, "message": "Customer not found"}

    signed = value if adjustment_type == ADJUST_CREDIT else -value

    def _op():
        post_customer_entry(
            customer_id,
            "adjustment",
            signed,
            description=f"Admin {adjustment_type} by {admin_id}: {reason}",
        )
        db.session.commit()

    try:
        run_with_retry(_op)
    except LedgerError as exc:
        return {"success": False, "message": str(exc)}

    wallet = get_customer_wallet(customer_id)
    return {
        "success": True,
        "message": "Balance adjusted",
        "new_balance": money_str(wallet.balance),
    }
