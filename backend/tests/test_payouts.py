"""
Payout workflow tests.

Verifies:
- Validation order and messages on request
- One open payout per seller
- process_payout debits the wallet and completes atomically
- Rejection and completed payouts are terminal
"""

from decimal import Decimal

import pytest

from marketledger.services import payout_service, ledger_service
from marketledger.services.payout_service import PayoutError

from conftest import fund_wallet


BANK = {"bank_name": "Meezan Bank", "account_title": "Seller One", "iban": "pk36 scbl 0000 0011 2345 6702"}


class TestRequestPayout:
    def test_wallet_missing(self, seller):
        with pytest.raises(PayoutError, match="Wallet not found"):
            payout_service.request_payout(seller.id, "1500", BANK)

    def test_below_minimum(self, seller):
        fund_wallet(seller.id, "5000")
        with pytest.raises(PayoutError) as exc:
            payout_service.request_payout(seller.id, "999.99", BANK)
        assert str(exc.value) == "Minimum payout amount is Rs. 1,000"

    def test_over_balance(self, seller):
        fund_wallet(seller.id, "1200")
        with pytest.raises(PayoutError, match="Insufficient balance"):
            payout_service.request_payout(seller.id, "1500", BANK)

    def test_bank_details_required(self, seller):
        fund_wallet(seller.id, "2000")
        with pytest.raises(PayoutError, match="iban is required"):
            payout_service.request_payout(seller.id, "1500", {"bank_name": "HBL", "account_title": "S"})

    def test_creates_pending_request_without_moving_balance(self, seller):
        fund_wallet(seller.id, "2000")
        payout = payout_service.request_payout(seller.id, "1500", BANK)

        assert payout.status == "pending"
        assert payout.iban == "PK36SCBL0000001123456702"
        assert ledger_service.get_balance(seller.id) == Decimal("2000.00")
        assert ledger_service.has_pending_payout(seller.id) is True

    def test_one_open_request_per_seller(self, seller):
        fund_wallet(seller.id, "5000")
        payout_service.request_payout(seller.id, "1500", BANK)
        with pytest.raises(PayoutError, match="already have a pending payout"):
            payout_service.request_payout(seller.id, "1000", BANK)

    def test_exact_minimum_allowed(self, seller):
        fund_wallet(seller.id, "1000")
        payout = payout_service.request_payout(seller.id, "1000", BANK)
        assert payout.amount == Decimal("1000.00")


class TestProcessPayout:
    def test_completes_and_debits(self, seller, admin_user):
        fund_wallet(seller.id, "3000")
        payout = payout_service.request_payout(seller.id, "2000", BANK)

        assert payout_service.process_payout(payout.id, "FT-001", admin_user.id) is True

        payout = payout_service.get_payout(payout.id)
        assert payout.status == "completed"
        assert payout.transaction_reference == "FT-001"
        assert payout.processed_by == admin_user.id
        assert payout.processed_at is not None

        wallet = ledger_service.get_wallet(seller.id)
        assert Decimal(wallet.current_balance) == Decimal("1000.00")
        assert Decimal(wallet.total_withdrawn) == Decimal("2000.00")
        entry = ledger_service.list_transactions(seller.id, transaction_type="withdrawal")[0]
        assert entry.net_amount == Decimal("-2000.00")
        assert ledger_service.verify_wallet(seller.id)["consistent"] is True

    def test_reference_required(self, seller, admin_user):
        fund_wallet(seller.id, "3000")
        payout = payout_service.request_payout(seller.id, "2000", BANK)
        with pytest.raises(PayoutError, match="Transaction reference is required"):
            payout_service.process_payout(payout.id, "  ", admin_user.id)

    def test_balance_dropped_since_request(self, seller, admin_user):
        fund_wallet(seller.id, "3000")
        payout = payout_service.request_payout(seller.id, "2500", BANK)
        ledger_service.record_refund_deduction(seller.id, "ORD-1", "1000")

        assert payout_service.process_payout(payout.id, "FT-002", admin_user.id) is False
        assert payout_service.get_payout(payout.id).status == "pending"
        assert ledger_service.get_balance(seller.id) == Decimal("2000.00")

    def test_cannot_process_twice(self, seller, admin_user):
        fund_wallet(seller.id, "3000")
        payout = payout_service.request_payout(seller.id, "1000", BANK)
        assert payout_service.process_payout(payout.id, "FT-003", admin_user.id) is True
        assert payout_service.process_payout(payout.id, "FT-003", admin_user.id) is False
        assert ledger_service.get_balance(seller.id) == Decimal("2000.00")

    def test_approved_can_still_be_processed(self, seller, admin_user):
        fund_wallet(seller.id, "3000")
        payout = payout_service.request_payout(seller.id, "1000", BANK)
        payout_service.approve_payout(payout.id, admin_user.id, "Queued for transfer")
        assert payout_service.get_payout(payout.id).status == "approved"
        # still blocks a second request
        with pytest.raises(PayoutError):
            payout_service.request_payout(seller.id, "1000", BANK)

        assert payout_service.process_payout(payout.id, "FT-004", admin_user.id) is True
        assert payout_service.get_payout(payout.id).status == "completed"

    def test_receipt_only_on_completed(self, seller, admin_user):
        fund_wallet(seller.id, "3000")
        payout = payout_service.request_payout(seller.id, "1000", BANK)
        with pytest.raises(PayoutError, match="completed payouts"):
            payout_service.attach_receipt(payout.id, "https://cdn.example.com/r.png")

        payout_service.process_payout(payout.id, "FT-005", admin_user.id)
        payout = payout_service.attach_receipt(payout.id, "https://cdn.example.com/r.png")
        assert payout.receipt_url == "https://cdn.example.com/r.png"


class TestRejectPayout:
    def test_reject_keeps_balance(self, seller, admin_user):
        fund_wallet(seller.id, "3000")
        payout = payout_service.request_payout(seller.id, "1000", BANK)

        payout = payout_service.reject_payout(payout.id, "IBAN mismatch", admin_user.id)

        assert payout.status == "rejected"
        assert payout.admin_notes == "IBAN mismatch"
        assert ledger_service.get_balance(seller.id) == Decimal("3000.00")
        assert ledger_service.has_pending_payout(seller.id) is False

    def test_reason_required(self, seller, admin_user):
        fund_wallet(seller.id, "3000")
        payout = payout_service.request_payout(seller.id, "1000", BANK)
        with pytest.raises(PayoutError, match="reason is required"):
            payout_service.reject_payout(payout.id, "", admin_user.id)

    def test_completed_is_terminal(self, seller, admin_user):
        fund_wallet(seller.id, "3000")
        payout = payout_service.request_payout(seller.id, "1000", BANK)
        payout_service.process_payout(payout.id, "FT-006", admin_user.id)
        with pytest.raises(PayoutError, match="already completed"):
            payout_service.reject_payout(payout.id, "Too late", admin_user.id)


class TestPayoutRoutes:
    def test_seller_request_and_admin_process(self, client, seller, seller_headers, admin_headers):
        fund_wallet(seller.id, "4000")

        resp = client.post("/api/payouts/", json={"amount": "1500", **BANK}, headers=seller_headers)
        assert resp.status_code == 201
        payout_id = resp.json["payout"]["id"]

        resp = client.get("/api/payouts/summary", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["pending_count"] == 1
        assert resp.json["pending_amount"] == "1500.00"

        resp = client.post(f"/api/payouts/{payout_id}/process", json={}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.post(
            f"/api/payouts/{payout_id}/process",
            json={"transaction_reference": "FT-100"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["payout"]["status"] == "completed"

        resp = client.post(
            f"/api/payouts/{payout_id}/process",
            json={"transaction_reference": "FT-100"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "Failed to process payout"

    def test_below_minimum_message(self, client, seller, seller_headers):
        fund_wallet(seller.id, "4000")
        resp = client.post("/api/payouts/", json={"amount": "500", **BANK}, headers=seller_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Minimum payout amount is Rs. 1,000"

    def test_seller_cannot_process(self, client, seller, seller_headers):
        resp = client.post("/api/payouts/1/process", json={"transaction_reference": "x"}, headers=seller_headers)
        assert resp.status_code == 403

    @pytest.mark.parametrize("amount", ["1e30", "1e13"])
    def test_oversized_amount_rejected(self, client, seller, seller_headers, amount):
        fund_wallet(seller.id, "4000")
        resp = client.post("/api/payouts/", json={"amount": amount, **BANK}, headers=seller_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "amount is too large"
        assert payout_service.list_seller_payouts(seller.id) == []
