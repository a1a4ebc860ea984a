"""
Flash-sale nomination tests.

Verifies:
- Minimum discount rule (exactly the minimum passes)
- Fee affordability and suspension checks at nomination time
- Approval publishes the listing and charges the fee in one transaction
- A failed approval leaves no listing, no charge and a pending nomination
- The sold_count guard never exceeds stock_limit
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from marketledger.extensions import db
from marketledger.models import FlashSaleNomination, FlashSaleProduct
from marketledger.services import flash_sale_service, ledger_service, subscription_service
from marketledger.services.flash_sale_service import FlashSaleError
from marketledger.time_utils import utcnow

from conftest import fund_wallet


SLOT_START = "2026-11-01T10:00:00Z"
SLOT_END = "2026-11-01T22:00:00Z"


@pytest.fixture
def flash_sale(db_session):
    now = utcnow()
    return flash_sale_service.create_flash_sale(
        "11.11 Mega Sale",
        start_date=now - timedelta(hours=1),
        end_date=now + timedelta(days=1),
        fee_per_product="500",
    )


def nominate(seller, product, **overrides):
    fields = dict(
        seller_id=seller.id,
        product_id=product.id,
        proposed_price="800",
        original_price="1000",
        stock_limit=3,
        time_slot_start=SLOT_START,
        time_slot_end=SLOT_END,
    )
    fields.update(overrides)
    return flash_sale_service.create_nomination(**fields)


class TestDiscountRule:
    @pytest.mark.parametrize(
        "proposed,original,ok",
        [
            ("800", "1000", True),
            ("799.99", "1000", True),
            ("800.01", "1000", False),
            ("850", "1000", False),
        ],
    )
    def test_boundary(self, proposed, original, ok):
        assert flash_sale_service.meets_minimum_discount(
            Decimal(proposed), Decimal(original), Decimal("20")
        ) is ok

    def test_small_discount_rejected(self, seller, product):
        with pytest.raises(FlashSaleError, match="Flash sale discount must be at least 20%"):
            nominate(seller, product, proposed_price="850")

    def test_exact_minimum_accepted(self, seller, product):
        nomination = nominate(seller, product)
        assert nomination.status == "pending"
        assert nomination.fee_deducted is False

    @pytest.mark.parametrize("field", ["proposed_price", "original_price", "total_fee"])
    def test_oversized_price_rejected(self, seller, product, field):
        with pytest.raises(FlashSaleError, match="too large"):
            nominate(seller, product, **{field: "1e30"})


class TestNominationChecks:
    def test_fee_must_be_affordable(self, seller, product, flash_sale):
        fund_wallet(seller.id, "100")
        with pytest.raises(FlashSaleError, match="Insufficient wallet balance for flash sale fee"):
            nominate(seller, product, flash_sale_id=flash_sale.id)

    def test_fee_not_charged_on_nomination(self, seller, product, flash_sale):
        fund_wallet(seller.id, "600")
        nomination = nominate(seller, product, flash_sale_id=flash_sale.id)
        assert Decimal(nomination.total_fee) == Decimal("500.00")
        assert ledger_service.get_balance(seller.id) == Decimal("600.00")

    def test_suspended_seller_blocked(self, seller, product):
        sub = subscription_service.get_subscription(seller.id)
        sub.account_suspended = True
        db.session.commit()
        with pytest.raises(FlashSaleError, match="suspended"):
            nominate(seller, product)

    def test_foreign_product(self, other_seller, product):
        with pytest.raises(FlashSaleError, match="Product not found"):
            nominate(other_seller, product)

    def test_deadline_passed(self, seller, product):
        now = utcnow()
        sale = flash_sale_service.create_flash_sale(
            "Closed Sale",
            start_date=now + timedelta(days=1),
            end_date=now + timedelta(days=2),
            application_deadline=now - timedelta(hours=1),
        )
        with pytest.raises(FlashSaleError, match="closed"):
            nominate(seller, product, flash_sale_id=sale.id)

    def test_slot_order(self, seller, product):
        with pytest.raises(FlashSaleError, match="time_slot_end must be after"):
            nominate(seller, product, time_slot_start=SLOT_END, time_slot_end=SLOT_START)

    def test_delete_only_while_pending(self, seller, product, admin_user, flash_sale):
        first = nominate(seller, product, total_fee="0")
        flash_sale_service.delete_nomination(seller.id, first.id)
        assert db.session.get(FlashSaleNomination, first.id) is None

        second = nominate(seller, product, total_fee="0")
        flash_sale_service.approve_nomination(second.id, flash_sale.id, admin_user.id)
        with pytest.raises(FlashSaleError, match="Only pending"):
            flash_sale_service.delete_nomination(seller.id, second.id)


class TestApproval:
    def test_approve_charges_fee(self, seller, product, admin_user, flash_sale):
        fund_wallet(seller.id, "600")
        nomination = nominate(seller, product, flash_sale_id=flash_sale.id)

        listing = flash_sale_service.approve_nomination(nomination.id, flash_sale.id, admin_user.id)

        assert listing.flash_price == Decimal("800.00")
        assert listing.stock_limit == 3
        assert listing.sold_count == 0
        assert ledger_service.get_balance(seller.id) == Decimal("100.00")

        nomination = db.session.get(FlashSaleNomination, nomination.id)
        assert nomination.status == "approved"
        assert nomination.fee_deducted is True
        assert nomination.fee_deducted_at is not None

        platform = ledger_service.platform_wallet_snapshot()
        assert platform["total_flash_sale_earnings"] == "500.00"
        assert platform["recent_transactions"][0]["transaction_type"] == "flash_sale_fee"

    def test_failed_charge_rolls_back(self, seller, product, admin_user, flash_sale):
        fund_wallet(seller.id, "600")
        nomination = nominate(seller, product, flash_sale_id=flash_sale.id)
        fund_wallet(seller.id, "-200")

        with pytest.raises(FlashSaleError, match="Insufficient wallet balance for flash sale fee"):
            flash_sale_service.approve_nomination(nomination.id, flash_sale.id, admin_user.id)

        assert db.session.query(FlashSaleProduct).count() == 0
        nomination = db.session.get(FlashSaleNomination, nomination.id)
        assert nomination.status == "pending"
        assert nomination.fee_deducted is False
        assert ledger_service.get_balance(seller.id) == Decimal("400.00")

    def test_cannot_approve_twice(self, seller, product, admin_user, flash_sale):
        nomination = nominate(seller, product, total_fee="0")
        flash_sale_service.approve_nomination(nomination.id, flash_sale.id, admin_user.id)
        with pytest.raises(FlashSaleError, match="already approved"):
            flash_sale_service.approve_nomination(nomination.id, flash_sale.id, admin_user.id)

    def test_reject_has_no_balance_effect(self, seller, product, flash_sale):
        fund_wallet(seller.id, "600")
        nomination = nominate(seller, product, flash_sale_id=flash_sale.id)
        rejected = flash_sale_service.reject_nomination(nomination.id, "Slot full")
        assert rejected.status == "rejected"
        assert rejected.admin_notes == "Slot full"
        assert ledger_service.get_balance(seller.id) == Decimal("600.00")


class TestSoldCounter:
    def test_guard_stops_at_stock_limit(self, seller, product, admin_user, flash_sale):
        nomination = nominate(seller, product, total_fee="0")
        flash_sale_service.approve_nomination(nomination.id, flash_sale.id, admin_user.id)

        assert flash_sale_service.increment_flash_sale_sold(flash_sale.id, product.id, 2) is True
        assert flash_sale_service.increment_flash_sale_sold(flash_sale.id, product.id, 2) is False
        assert flash_sale_service.increment_flash_sale_sold(flash_sale.id, product.id, 1) is True
        assert flash_sale_service.increment_flash_sale_sold(flash_sale.id, product.id, 1) is False

        listing = db.session.query(FlashSaleProduct).one()
        db.session.refresh(listing)
        assert listing.sold_count == 3

    def test_unknown_listing(self, flash_sale):
        assert flash_sale_service.increment_flash_sale_sold(flash_sale.id, 9999, 1) is False

    def test_quantity_must_be_positive(self, flash_sale, product):
        with pytest.raises(FlashSaleError):
            flash_sale_service.increment_flash_sale_sold(flash_sale.id, product.id, 0)


class TestFlashSaleRoutes:
    def test_nominate_and_approve(self, client, seller, product, flash_sale, seller_headers, admin_headers):
        fund_wallet(seller.id, "600")
        resp = client.post("/api/flash-sales/nominations", json={
            "product_id": product.id,
            "proposed_price": "800",
            "original_price": "1000",
            "stock_limit": 5,
            "time_slot_start": SLOT_START,
            "time_slot_end": SLOT_END,
            "flash_sale_id": flash_sale.id,
        }, headers=seller_headers)
        assert resp.status_code == 201
        nomination_id = resp.json["nomination"]["id"]

        resp = client.post(f"/api/flash-sales/nominations/{nomination_id}/approve", headers=seller_headers)
        assert resp.status_code == 403

        resp = client.post(f"/api/flash-sales/nominations/{nomination_id}/approve", json={}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["flash_sale_product"]["stock_limit"] == 5

        resp = client.get("/api/flash-sales/live")
        assert resp.status_code == 200
        assert len(resp.json["products"]) == 1

    def test_small_discount_route(self, client, product, seller_headers):
        resp = client.post("/api/flash-sales/nominations", json={
            "product_id": product.id,
            "proposed_price": "850",
            "original_price": "1000",
            "stock_limit": 5,
            "time_slot_start": SLOT_START,
            "time_slot_end": SLOT_END,
        }, headers=seller_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Flash sale discount must be at least 20%"

    def test_sold_route_conflict(self, client, seller, product, admin_user, flash_sale, admin_headers):
        nomination = nominate(seller, product, total_fee="0", stock_limit=1)
        flash_sale_service.approve_nomination(nomination.id, flash_sale.id, admin_user.id)

        url = f"/api/flash-sales/{flash_sale.id}/products/{product.id}/sold"
        assert client.post(url, json={"quantity": 1}, headers=admin_headers).status_code == 200
        resp = client.post(url, json={"quantity": 1}, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json["incremented"] is False
