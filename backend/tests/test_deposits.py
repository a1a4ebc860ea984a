"""
Deposit workflow tests.

Verifies:
- Request validation (amount, payment method, screenshot)
- Approval credits the right wallet exactly once
- Seller approvals settle subscription arrears and lift suspension
- Rejection requires a reason and never touches balances
- Approval email is best-effort
- Deposit availability follows cod_only_mode / manual_deposits_enabled
"""

import json
from decimal import Decimal

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from marketledger.extensions import db
from marketledger.services import deposit_service, ledger_service, settings_service, subscription_service
from marketledger.services import notification_service
from marketledger.services.deposit_service import DepositError


PROOF = "https://cdn.example.com/proofs/tid-1.png"


def make_deposit(user, payment_method, amount="2000", requester_type="seller"):
    return deposit_service.create_deposit(
        user_id=user.id,
        requester_type=requester_type,
        payment_method_id=payment_method.id,
        amount=amount,
        screenshot_url=PROOF,
        transaction_reference="TID-1",
    )


class TestCreateDeposit:
    def test_pending_without_balance_effect(self, seller, payment_method):
        deposit = make_deposit(seller, payment_method)
        assert deposit.status == "pending"
        assert deposit.amount == Decimal("2000.00")
        assert ledger_service.get_balance(seller.id) == Decimal("0.00")

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", "1e30", "1e13"])
    def test_bad_amount(self, seller, payment_method, amount):
        with pytest.raises(DepositError):
            make_deposit(seller, payment_method, amount=amount)

    def test_screenshot_required(self, seller, payment_method):
        with pytest.raises(DepositError, match="screenshot is required"):
            deposit_service.create_deposit(seller.id, "seller", payment_method.id, "100", "  ")

    def test_inactive_payment_method(self, seller, payment_method):
        deposit_service.update_payment_method(payment_method.id, {"is_active": False})
        with pytest.raises(DepositError, match="Payment method not available"):
            make_deposit(seller, payment_method)

    def test_requester_type_checked(self, seller, payment_method):
        with pytest.raises(DepositError, match="Invalid requester type"):
            make_deposit(seller, payment_method, requester_type="vendor")


class TestApproveDeposit:
    def test_seller_deposit_credits_ledger(self, seller, admin_user, payment_method):
        deposit = make_deposit(seller, payment_method)
        result = deposit_service.approve_deposit_request(deposit.id, admin_user.id, "Verified")

        assert result["success"] is True
        assert result["amount"] == "2000.00"
        assert result["email_sent"] is False
        assert ledger_service.get_balance(seller.id) == Decimal("2000.00")

        entry = ledger_service.list_transactions(seller.id)[0]
        assert entry.transaction_type == "adjustment"
        assert entry.created_by_user_id == admin_user.id

        deposit = deposit_service.get_deposit(deposit.id)
        assert deposit.status == "approved"
        assert deposit.processed_by == admin_user.id
        assert deposit.admin_notes == "Verified"

    def test_customer_deposit_credits_customer_wallet(self, customer, admin_user, payment_method):
        deposit = make_deposit(customer, payment_method, amount="750", requester_type="customer")
        deposit_service.approve_deposit_request(deposit.id, admin_user.id)

        wallet = ledger_service.customer_wallet_snapshot(customer.id)
        assert wallet["exists"] is True
        assert wallet["balance"] == "750.00"
        assert wallet["total_deposited"] == "750.00"

    def test_double_approval(self, seller, admin_user, payment_method):
        deposit = make_deposit(seller, payment_method)
        deposit_service.approve_deposit_request(deposit.id, admin_user.id)

        again = deposit_service.approve_deposit_request(deposit.id, admin_user.id)

        assert again == {"success": False, "message": "Deposit request already approved"}
        assert ledger_service.get_balance(seller.id) == Decimal("2000.00")

    def test_missing_deposit(self, admin_user):
        result = deposit_service.approve_deposit_request(9999, admin_user.id)
        assert result["message"] == "Deposit request not found"

    def test_settles_arrears_and_reactivates(self, seller, admin_user, payment_method):
        sub = subscription_service.get_subscription(seller.id)
        sub.is_in_free_period = False
        sub.payment_pending = True
        sub.pending_amount = Decimal("50.00")
        sub.account_suspended = True
        db.session.commit()

        deposit = make_deposit(seller, payment_method, amount="100")
        result = deposit_service.approve_deposit_request(deposit.id, admin_user.id)

        assert result["fees_settled"] == "50.00"
        assert ledger_service.get_balance(seller.id) == Decimal("50.00")
        sub = subscription_service.get_subscription(seller.id)
        assert sub.account_suspended is False
        assert sub.payment_pending is False

    def test_settlement_failure_keeps_approval(self, app, monkeypatch, seller, admin_user, payment_method):
        sub = subscription_service.get_subscription(seller.id)
        sub.is_in_free_period = False
        sub.payment_pending = True
        sub.pending_amount = Decimal("50.00")
        db.session.commit()

        def locked(seller_id, now=None):
            raise OperationalError("UPDATE seller_subscriptions", {}, Exception("database is locked"))

        monkeypatch.setattr(subscription_service, "settle_pending_fees", locked)
        monkeypatch.setitem(app.config, "EMAIL_DISPATCH_URL", "http://mailer.test/send")
        monkeypatch.setattr(notification_service.httpx, "Client", _UnreachableClient)

        deposit = make_deposit(seller, payment_method, amount="100")
        result = deposit_service.approve_deposit_request(deposit.id, admin_user.id)

        assert result["success"] is True
        assert result["fees_settled"] == "0.00"
        assert result["email_sent"] is False
        assert deposit_service.get_deposit(deposit.id).status == "approved"
        assert ledger_service.get_balance(seller.id) == Decimal("100.00")
        assert subscription_service.get_subscription(seller.id).pending_amount == Decimal("50.00")


class TestRejectDeposit:
    def test_reason_required(self, seller, admin_user, payment_method):
        deposit = make_deposit(seller, payment_method)
        result = deposit_service.reject_deposit_request(deposit.id, admin_user.id, "   ")
        assert result["success"] is False
        assert deposit_service.get_deposit(deposit.id).status == "pending"

    def test_reject_then_approve_fails(self, seller, admin_user, payment_method):
        deposit = make_deposit(seller, payment_method)
        assert deposit_service.reject_deposit_request(deposit.id, admin_user.id, "Blurry proof")["success"] is True

        result = deposit_service.approve_deposit_request(deposit.id, admin_user.id)

        assert result["success"] is False
        assert result["message"] == "Deposit request already rejected"
        assert ledger_service.get_balance(seller.id) == Decimal("0.00")
        assert deposit_service.get_deposit(deposit.id).admin_notes == "Blurry proof"


class _UnreachableClient:
    def __init__(self, *args, **kwargs):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def post(self, *args, **kwargs):
        raise httpx.ConnectError("connection refused")


class TestApprovalEmail:
    def test_send_failure_does_not_block(self, app, monkeypatch, seller, admin_user, payment_method):
        monkeypatch.setitem(app.config, "EMAIL_DISPATCH_URL", "http://mailer.test/send")
        monkeypatch.setattr(notification_service.httpx, "Client", _UnreachableClient)

        deposit = make_deposit(seller, payment_method)
        result = deposit_service.approve_deposit_request(deposit.id, admin_user.id)

        assert result["success"] is True
        assert result["email_sent"] is False
        assert deposit_service.get_deposit(deposit.id).status == "approved"

    def test_payload(self, app, monkeypatch, seller, admin_user, payment_method):
        sent = []

        def handler(request):
            sent.append((request.headers.get("Authorization"), json.loads(request.content)))
            return httpx.Response(202, json={"queued": True})

        real_client = httpx.Client
        monkeypatch.setitem(app.config, "EMAIL_DISPATCH_URL", "http://mailer.test/send")
        monkeypatch.setitem(app.config, "EMAIL_DISPATCH_TOKEN", "secret")
        monkeypatch.setattr(
            notification_service.httpx,
            "Client",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
        )

        deposit = make_deposit(seller, payment_method, amount="1500")
        result = deposit_service.approve_deposit_request(deposit.id, admin_user.id)

        assert result["email_sent"] is True
        auth, payload = sent[0]
        assert auth == "Bearer secret"
        assert payload["type"] == "deposit_approved"
        assert payload["userEmail"] == seller.email
        assert payload["depositAmount"] == 1500.0


class TestDepositsEnabled:
    @pytest.mark.parametrize(
        "manual,cod_only,expected",
        [
            (True, False, True),
            (False, False, False),
            (True, True, False),
            (False, True, False),
        ],
    )
    def test_combinations(self, manual, cod_only, expected):
        settings_service.set_setting("manual_deposits_enabled", manual)
        settings_service.set_setting("cod_only_mode", cod_only)
        assert deposit_service.deposits_enabled() is expected


class TestPaymentMethods:
    def test_create_requires_names(self):
        with pytest.raises(DepositError, match="method_name is required"):
            deposit_service.create_payment_method({"account_name": "Market Ltd"})

    def test_inactive_hidden_from_form(self, payment_method):
        deposit_service.create_payment_method({"method_name": "EasyPaisa", "account_name": "Market Ltd", "is_active": False})
        names = [m.method_name for m in deposit_service.list_payment_methods()]
        assert names == ["JazzCash"]
        assert len(deposit_service.list_payment_methods(active_only=False)) == 2

    def test_delete_blocked_when_in_use(self, seller, payment_method):
        make_deposit(seller, payment_method)
        with pytest.raises(DepositError, match="deactivate it instead"):
            deposit_service.delete_payment_method(payment_method.id)

    def test_delete_unused(self, payment_method):
        deposit_service.delete_payment_method(payment_method.id)
        assert deposit_service.list_payment_methods(active_only=False) == []


class TestDepositRoutes:
    def test_seller_submits_into_seller_wallet(self, client, seller, payment_method, seller_headers):
        resp = client.post("/api/deposits/", json={
            "payment_method_id": payment_method.id,
            "amount": "2000",
            "screenshot_url": PROOF,
        }, headers=seller_headers)
        assert resp.status_code == 201
        assert resp.json["deposit"]["requester_type"] == "seller"

    def test_customer_submits_into_customer_wallet(self, client, customer, payment_method, customer_headers):
        resp = client.post("/api/deposits/", json={
            "payment_method_id": payment_method.id,
            "amount": "500",
            "screenshot_url": PROOF,
            "requester_type": "seller",
        }, headers=customer_headers)
        assert resp.status_code == 201
        assert resp.json["deposit"]["requester_type"] == "customer"

    def test_admin_review(self, client, seller, payment_method, admin_headers, seller_headers):
        deposit = make_deposit(seller, payment_method)

        assert client.post(f"/api/deposits/{deposit.id}/approve", headers=seller_headers).status_code == 403

        resp = client.get("/api/deposits/pending-count", headers=admin_headers)
        assert resp.json["pending_count"] == 1

        resp = client.post(f"/api/deposits/{deposit.id}/reject", json={}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.post(f"/api/deposits/{deposit.id}/approve", json={"admin_notes": "ok"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["success"] is True

        resp = client.post(f"/api/deposits/{deposit.id}/approve", json={}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Deposit request already approved"

    def test_enabled_flag(self, client, seller_headers):
        settings_service.set_setting("cod_only_mode", True)
        resp = client.get("/api/deposits/enabled", headers=seller_headers)
        assert resp.json == {"enabled": False}

    def test_approved_despite_email_failure_visible_in_lists(
        self, app, monkeypatch, client, seller, payment_method, admin_headers, seller_headers
    ):
        monkeypatch.setitem(app.config, "EMAIL_DISPATCH_URL", "http://mailer.test/send")
        monkeypatch.setattr(notification_service.httpx, "Client", _UnreachableClient)
        deposit = make_deposit(seller, payment_method, amount="1200")

        resp = client.post(f"/api/deposits/{deposit.id}/approve", json={}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["success"] is True
        assert resp.json["email_sent"] is False

        resp = client.get("/api/deposits/me", headers=seller_headers)
        assert resp.status_code == 200
        mine = {d["id"]: d for d in resp.json["deposits"]}
        assert mine[deposit.id]["status"] == "approved"

        resp = client.get("/api/deposits/?status=approved", headers=admin_headers)
        assert resp.status_code == 200
        assert [d["id"] for d in resp.json["deposits"]] == [deposit.id]
        assert resp.json["deposits"][0]["amount"] == "1200.00"

        resp = client.get("/api/deposits/?status=pending", headers=admin_headers)
        assert resp.json["deposits"] == []
