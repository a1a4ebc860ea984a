"""
Flash-Sale Nomination Service

WORKFLOW:
- seller nominates a product (pending); fee is checked but not charged
- admin approves: the flash-sale product row is inserted, the fee is
  deducted from the seller wallet and the nomination is marked approved,
  all in ONE transaction (any failure rolls back every write)
- admin rejects: status only, no balance effect
- purchases bump sold_count with a single guarded UPDATE, never a
  read-modify-write, so concurrent buyers cannot oversell stock_limit
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import FlashSale, FlashSaleNomination, FlashSaleProduct, Product, SellerSubscription, User
from ..money import ZERO, to_money
from . import ledger_service, settings_service, subscription_service
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import ENTRY_COMMISSION_DEDUCTION, PLATFORM_FLASH_SALE_FEE, LedgerError
from marketledger.time_utils import parse_iso_datetime, utcnow


class FlashSaleError(Exception):
    """Raised for flash-sale validation and workflow errors."""
    pass


STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
VALID_STATUSES = [STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED]

INSUFFICIENT_FEE_MESSAGE = "Insufficient wallet balance for flash sale fee"


def _money(value, field: str) -> Decimal:
    try:
        return to_money(value, field=field)
    except ValueError as exc:
        raise FlashSaleError(str(exc))


def _datetime(value, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise FlashSaleError(f"{field} must be an ISO-8601 datetime")
    if parsed is None:
        raise FlashSaleError(f"{field} is required")
    return parsed


def _positive_int(value, field: str) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise FlashSaleError(f"{field} must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise FlashSaleError(f"{field} must be a positive integer")
    if number <= 0:
        raise FlashSaleError(f"{field} must be a positive integer")
    return number


def meets_minimum_discount(proposed_price: Decimal, original_price: Decimal, min_percentage: Decimal) -> bool:
    """
    True when the proposed price is at least min_percentage below the original.

    Exactly the minimum passes: 800 against 1000 is a 20% discount.
    """
    return Decimal(proposed_price) * 100 <= Decimal(original_price) * (100 - Decimal(min_percentage))


# =============================================================================
# CAMPAIGNS
# =============================================================================

def create_flash_sale(
    campaign_name: str,
    start_date,
    end_date,
    fee_per_product=0,
    application_deadline=None,
    is_active: bool = True,
) -> FlashSale:
    name = (campaign_name or "").strip()
    if not name:
        raise FlashSaleError("campaign_name is required")
    start = _datetime(start_date, "start_date")
    end = _datetime(end_date, "end_date")
    if end <= start:
        raise FlashSaleError("end_date must be after start_date")
    fee = _money(fee_per_product or 0, "fee_per_product")
    if fee < 0:
        raise FlashSaleError("fee_per_product cannot be negative")
    deadline = _datetime(application_deadline, "application_deadline") if application_deadline else None

    sale = FlashSale(
        campaign_name=name,
        start_date=start,
        end_date=end,
        fee_per_product=fee,
        application_deadline=deadline,
        is_active=bool(is_active),
    )
    db.session.add(sale)
    db.session.commit()
    return sale


def list_flash_sales(active_only: bool = False) -> list[FlashSale]:
    query = db.session.query(FlashSale)
    if active_only:
        query = query.filter(FlashSale.is_active.is_(True))
    return query.order_by(FlashSale.start_date.desc(), FlashSale.id.desc()).all()


def list_active_flash_sale_products(now: datetime | None = None) -> list[dict]:
    """Live listings: active campaigns whose window contains now, sellers not suspended."""
    now = now or utcnow()
    rows = (
        db.session.query(FlashSaleProduct, FlashSale, Product)
        .join(FlashSale, FlashSale.id == FlashSaleProduct.flash_sale_id)
        .join(Product, Product.id == FlashSaleProduct.product_id)
        .outerjoin(SellerSubscription, SellerSubscription.seller_id == Product.seller_id)
        .filter(
            FlashSale.is_active.is_(True),
            FlashSale.start_date <= now,
            FlashSale.end_date >= now,
            Product.is_active.is_(True),
            db.or_(SellerSubscription.id.is_(None), SellerSubscription.account_suspended.is_(False)),
        )
        .order_by(FlashSale.end_date, FlashSaleProduct.id)
        .all()
    )
    out = []
    for listing, sale, product in rows:
        data = listing.to_dict()
        data["product"] = product.to_dict()
        data["flash_sale"] = sale.to_dict()
        out.append(data)
    return out


# =============================================================================
# NOMINATIONS
# =============================================================================

def create_nomination(
    seller_id: int,
    product_id: int,
    proposed_price,
    original_price,
    stock_limit,
    time_slot_start,
    time_slot_end,
    total_fee=None,
    flash_sale_id: int | None = None,
) -> FlashSaleNomination:
    """
    Submit a nomination for admin review. No fee is charged here.

    Raises:
        FlashSaleError: suspended seller, foreign product, insufficient
            balance for the fee, discount below the minimum, bad input
    """
    if subscription_service.is_seller_suspended(seller_id):
        raise FlashSaleError("Your account is suspended due to unpaid subscription fees")

    product = db.session.get(Product, product_id) if product_id else None
    if product is None or product.seller_id != seller_id:
        raise FlashSaleError("Product not found")

    proposed = _money(proposed_price, "proposed_price")
    original = _money(original_price, "original_price")
    if proposed <= 0 or original <= 0:
        raise FlashSaleError("Prices must be greater than zero")
    limit = _positive_int(stock_limit, "stock_limit")
    start = _datetime(time_slot_start, "time_slot_start")
    end = _datetime(time_slot_end, "time_slot_end")
    if end <= start:
        raise FlashSaleError("time_slot_end must be after time_slot_start")

    sale = None
    if flash_sale_id is not None:
        sale = db.session.get(FlashSale, flash_sale_id)
        if sale is None or not sale.is_active:
            raise FlashSaleError("Flash sale not found")
        if sale.application_deadline and utcnow() > sale.application_deadline:
            raise FlashSaleError("Applications for this flash sale have closed")

    if total_fee is None:
        fee = Decimal(sale.fee_per_product) if sale is not None else ZERO
    else:
        fee = _money(total_fee, "total_fee")
    if fee < 0:
        raise FlashSaleError("total_fee cannot be negative")

    if ledger_service.get_balance(seller_id) < fee:
        raise FlashSaleError(INSUFFICIENT_FEE_MESSAGE)

    min_pct = settings_service.get_decimal("flash_sale_min_discount_percentage")
    if not meets_minimum_discount(proposed, original, min_pct):
        raise FlashSaleError(f"Flash sale discount must be at least {min_pct.normalize():f}%")

    nomination = FlashSaleNomination(
        seller_id=seller_id,
        product_id=product.id,
        flash_sale_id=sale.id if sale else None,
        proposed_price=proposed,
        original_price=original,
        stock_limit=limit,
        time_slot_start=start,
        time_slot_end=end,
        status=STATUS_PENDING,
        total_fee=fee,
        fee_deducted=False,
        created_at=utcnow(),
    )
    db.session.add(nomination)
    db.session.commit()
    return nomination


def delete_nomination(seller_id: int, nomination_id: int) -> None:
    """Sellers may withdraw their own nominations while pending."""
    nomination = db.session.get(FlashSaleNomination, nomination_id)
    if nomination is None or nomination.seller_id != seller_id:
        raise FlashSaleError("Nomination not found")
    if nomination.status != STATUS_PENDING:
        raise FlashSaleError("Only pending nominations can be deleted")
    db.session.delete(nomination)
    db.session.commit()


def get_nomination(nomination_id: int) -> FlashSaleNomination | None:
    return db.session.get(FlashSaleNomination, nomination_id)


def list_seller_nominations(seller_id: int) -> list[FlashSaleNomination]:
    return (
        db.session.query(FlashSaleNomination)
        .filter_by(seller_id=seller_id)
        .order_by(FlashSaleNomination.created_at.desc(), FlashSaleNomination.id.desc())
        .all()
    )


def list_nominations(status: str | None = None) -> list[dict]:
    query = db.session.query(FlashSaleNomination, User).join(User, User.id == FlashSaleNomination.seller_id)
    if status:
        if status not in VALID_STATUSES:
            raise FlashSaleError(f"Invalid status: {status}")
        query = query.filter(FlashSaleNomination.status == status)
    out = []
    for nomination, seller in query.order_by(
        FlashSaleNomination.created_at.desc(), FlashSaleNomination.id.desc()
    ).all():
        data = nomination.to_dict()
        data["seller_email"] = seller.email
        data["seller_name"] = seller.full_name
        out.append(data)
    return out


def approve_nomination(nomination_id: int, flash_sale_id: int, admin_id: int) -> FlashSaleProduct:
    """
    Publish a nomination into a flash sale and charge its fee, atomically.

    Either the listing exists, the fee is in the ledger and the nomination
    is approved, or none of those happened.
    """
    def _op():
        nomination = lock_for_update(
            db.session.query(FlashSaleNomination).filter_by(id=nomination_id)
        ).first()
        if nomination is None:
            raise FlashSaleError("Nomination not found")
        if nomination.status != STATUS_PENDING:
            raise FlashSaleError(f"Nomination is already {nomination.status}")

        sale = db.session.get(FlashSale, flash_sale_id) if flash_sale_id else None
        if sale is None:
            raise FlashSaleError("Flash sale not found")

        exists = db.session.query(FlashSaleProduct.id).filter_by(
            flash_sale_id=sale.id, product_id=nomination.product_id
        ).first()
        if exists:
            raise FlashSaleError("Product is already in this flash sale")

        listing = FlashSaleProduct(
            flash_sale_id=sale.id,
            product_id=nomination.product_id,
            nomination_id=nomination.id,
            flash_price=nomination.proposed_price,
            original_price=nomination.original_price,
            stock_limit=nomination.stock_limit,
            sold_count=0,
        )
        db.session.add(listing)
        db.session.flush()

        now = utcnow()
        fee = Decimal(nomination.total_fee or ZERO)
        if fee > 0:
            description = f"Flash sale fee: {sale.campaign_name}"
            try:
                ledger_service.post_entry(
                    seller_id=nomination.seller_id,
                    transaction_type=ENTRY_COMMISSION_DEDUCTION,
                    net_amount=-fee,
                    gross_amount=fee,
                    description=description,
                    created_by_user_id=admin_id,
                )
            except LedgerError:
                raise FlashSaleError(INSUFFICIENT_FEE_MESSAGE)
            ledger_service.credit_platform(
                PLATFORM_FLASH_SALE_FEE, fee, seller_id=nomination.seller_id, description=description
            )
            nomination.fee_deducted = True
            nomination.fee_deducted_at = now

        nomination.status = STATUS_APPROVED
        nomination.flash_sale_id = sale.id
        db.session.commit()
        return listing

    try:
        listing = run_with_retry(_op)
    except IntegrityError:
        raise FlashSaleError("Product is already in this flash sale")

    current_app.logger.info(
        "Nomination %s approved into flash sale %s by admin %s", nomination_id, flash_sale_id, admin_id
    )
    return listing


def reject_nomination(nomination_id: int, admin_notes: str | None = None) -> FlashSaleNomination:
    nomination = db.session.get(FlashSaleNomination, nomination_id)
    if nomination is None:
        raise FlashSaleError("Nomination not found")
    if nomination.status != STATUS_PENDING:
        raise FlashSaleError(f"Nomination is already {nomination.status}")
    nomination.status = STATUS_REJECTED
    nomination.admin_notes = (admin_notes or "").strip() or None
    db.session.commit()
    return nomination


def increment_flash_sale_sold(flash_sale_id: int, product_id: int, quantity) -> bool:
    """
    Atomically add `quantity` to sold_count unless it would exceed stock_limit.

    Returns False when the listing doesn't exist or stock is exhausted.
    """
    qty = _positive_int(quantity, "quantity")

    def _op():
        result = db.session.execute(
            update(FlashSaleProduct)
            .where(
                FlashSaleProduct.flash_sale_id == flash_sale_id,
                FlashSaleProduct.product_id == product_id,
                FlashSaleProduct.sold_count + qty <= FlashSaleProduct.stock_limit,
            )
            .values(sold_count=FlashSaleProduct.sold_count + qty)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount == 1

    return run_with_retry(_op)
