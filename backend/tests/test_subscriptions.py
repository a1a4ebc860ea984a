"""
Subscription billing tests.

Verifies:
- Plan fee arithmetic (daily x1, half_monthly x15, monthly x30)
- Free period countdown and its boundary
- Successful deduction: ledger debit, platform credit, success log
- Failed deduction: arrears recorded, second consecutive failure suspends
- Arrears settle automatically after a credit and lift the suspension
- Plan change requests and the due-deduction sweep
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from marketledger.extensions import db
from marketledger.models import SubscriptionDeductionLog, PlatformWalletTransaction
from marketledger.services import subscription_service, settings_service, ledger_service
from marketledger.services.auth_service import create_user
from marketledger.services.subscription_service import SubscriptionError

from conftest import PASSWORD, fund_wallet


NOW = datetime(2024, 3, 1, 9, 0, 0)


@pytest.fixture
def billed_seller(setup_roles):
    """Seller onboarded with no free period, first deduction due one day out."""
    settings_service.set_setting("new_seller_free_months", 0)
    user = create_user("billed@example.com", PASSWORD, role_name="seller")
    subscription_service.ensure_subscription(user.id, now=NOW)
    return user


class TestFeeArithmetic:
    @pytest.mark.parametrize(
        "plan,expected",
        [
            ("daily", Decimal("25.00")),
            ("half_monthly", Decimal("375.00")),
            ("monthly", Decimal("750.00")),
        ],
    )
    def test_effective_fee(self, plan, expected):
        assert subscription_service.effective_fee(Decimal("25"), plan) == expected

    def test_unknown_plan(self):
        with pytest.raises(SubscriptionError, match="Invalid plan"):
            subscription_service.effective_fee(Decimal("25"), "weekly")

    def test_custom_daily_fee_overrides_setting(self, billed_seller):
        subscription_service.update_seller_subscription(billed_seller.id, {"custom_daily_fee": "10"})
        sub = subscription_service.get_subscription(billed_seller.id)
        assert subscription_service.per_day_fee(sub) == Decimal("10.00")

        subscription_service.update_seller_subscription(billed_seller.id, {"custom_daily_fee": None})
        sub = subscription_service.get_subscription(billed_seller.id)
        assert subscription_service.per_day_fee(sub) == Decimal("25")


class TestOnboarding:
    def test_free_period_from_settings(self, setup_roles):
        settings_service.set_setting("new_seller_free_months", 2)
        user = create_user("new@example.com", PASSWORD, role_name="seller")
        sub = subscription_service.ensure_subscription(user.id, now=NOW)

        assert sub.is_in_free_period is True
        assert sub.free_months == 2
        assert sub.free_period_end == NOW + timedelta(days=60)
        assert sub.next_deduction_at == sub.free_period_end
        assert subscription_service.free_period_days_left(sub, NOW) == 60

    def test_ensure_is_idempotent(self, seller):
        first = subscription_service.get_subscription(seller.id)
        again = subscription_service.ensure_subscription(seller.id)
        assert again.id == first.id

    def test_free_days_round_up_and_hit_zero_at_end(self, setup_roles):
        user = create_user("free@example.com", PASSWORD, role_name="seller")
        sub = subscription_service.ensure_subscription(user.id, now=NOW)
        end = sub.free_period_end

        assert subscription_service.free_period_days_left(sub, end - timedelta(hours=1)) == 1
        assert subscription_service.free_period_days_left(sub, end) == 0
        assert subscription_service.free_period_days_left(sub, end + timedelta(days=3)) == 0


class TestDeduction:
    def test_free_period_skips_charge(self, setup_roles):
        user = create_user("free2@example.com", PASSWORD, role_name="seller")
        sub = subscription_service.ensure_subscription(user.id, now=NOW)
        fund_wallet(user.id, "500")

        result = subscription_service.process_subscription_deduction(user.id, now=NOW + timedelta(days=10))

        assert result["success"] is True
        assert result["amount"] == "0.00"
        assert result["message"] == "Free period active: 20 days left"
        assert ledger_service.get_balance(user.id) == Decimal("500.00")
        assert db.session.query(SubscriptionDeductionLog).count() == 0

    def test_charge_after_free_period_ends(self, setup_roles):
        user = create_user("free3@example.com", PASSWORD, role_name="seller")
        sub = subscription_service.ensure_subscription(user.id, now=NOW)
        fund_wallet(user.id, "500")

        result = subscription_service.process_subscription_deduction(user.id, now=sub.free_period_end)

        assert result["success"] is True
        assert result["amount"] == "25.00"
        sub = subscription_service.get_subscription(user.id)
        assert sub.is_in_free_period is False

    def test_success_path(self, billed_seller):
        fund_wallet(billed_seller.id, "1000")
        subscription_service.update_seller_subscription(billed_seller.id, {"plan_type": "half_monthly"})
        when = NOW + timedelta(days=1)

        result = subscription_service.process_subscription_deduction(billed_seller.id, now=when)

        assert result["success"] is True
        assert result["amount"] == "375.00"
        assert ledger_service.get_balance(billed_seller.id) == Decimal("625.00")

        sub = subscription_service.get_subscription(billed_seller.id)
        assert sub.last_deduction_at == when
        assert sub.next_deduction_at == when + timedelta(days=15)
        assert Decimal(sub.total_fees_paid) == Decimal("375.00")

        log = subscription_service.list_deduction_logs(billed_seller.id)[0]
        assert log.status == "success"
        assert log.deduction_type == "half_monthly"
        assert Decimal(log.wallet_balance_before) == Decimal("1000.00")
        assert Decimal(log.wallet_balance_after) == Decimal("625.00")

        platform = ledger_service.platform_wallet_snapshot()
        assert platform["total_subscription_earnings"] == "375.00"

    def test_failure_then_suspension(self, billed_seller):
        fund_wallet(billed_seller.id, "10")

        first = subscription_service.process_subscription_deduction(billed_seller.id, now=NOW + timedelta(days=1))
        assert first["success"] is False
        assert first["message"] == "Insufficient wallet balance for subscription fee"
        assert first["pending_amount"] == "25.00"
        sub = subscription_service.get_subscription(billed_seller.id)
        assert sub.payment_pending is True
        assert sub.account_suspended is False

        second = subscription_service.process_subscription_deduction(billed_seller.id, now=NOW + timedelta(days=2))
        assert second["success"] is False
        # arrears carried into the amount due
        assert second["pending_amount"] == "50.00"
        sub = subscription_service.get_subscription(billed_seller.id)
        assert sub.account_suspended is True
        assert sub.suspended_at == NOW + timedelta(days=2)
        assert subscription_service.is_seller_suspended(billed_seller.id) is True

        # failed attempts never move money
        assert ledger_service.get_balance(billed_seller.id) == Decimal("10.00")
        statuses = [log.status for log in subscription_service.list_deduction_logs(billed_seller.id)]
        assert statuses == ["failed", "failed"]

    def test_success_clears_arrears_and_reactivates(self, billed_seller):
        subscription_service.process_subscription_deduction(billed_seller.id, now=NOW + timedelta(days=1))
        subscription_service.process_subscription_deduction(billed_seller.id, now=NOW + timedelta(days=2))
        assert subscription_service.is_seller_suspended(billed_seller.id) is True

        fund_wallet(billed_seller.id, "200")
        result = subscription_service.process_subscription_deduction(billed_seller.id, now=NOW + timedelta(days=3))

        assert result["success"] is True
        assert result["amount"] == "75.00"
        sub = subscription_service.get_subscription(billed_seller.id)
        assert sub.payment_pending is False
        assert Decimal(sub.pending_amount) == Decimal("0.00")
        assert sub.account_suspended is False
        assert sub.reactivated_at == NOW + timedelta(days=3)

    def test_inactive_subscription_not_charged(self, billed_seller):
        subscription_service.update_seller_subscription(billed_seller.id, {"is_active": False})
        result = subscription_service.process_subscription_deduction(billed_seller.id, now=NOW + timedelta(days=1))
        assert result == {"success": False, "message": "Subscription is not active"}

    def test_manual_deduction_type(self, billed_seller):
        fund_wallet(billed_seller.id, "100")
        result = subscription_service.trigger_manual_deduction(billed_seller.id)
        assert result["success"] is True
        assert subscription_service.list_deduction_logs(billed_seller.id)[0].deduction_type == "manual"


class TestSettlement:
    def test_settle_after_credit(self, billed_seller):
        subscription_service.process_subscription_deduction(billed_seller.id, now=NOW + timedelta(days=1))
        subscription_service.process_subscription_deduction(billed_seller.id, now=NOW + timedelta(days=2))

        fund_wallet(billed_seller.id, "60")
        result = subscription_service.settle_pending_fees(billed_seller.id, now=NOW + timedelta(days=2, hours=5))

        assert result["success"] is True
        assert result["amount"] == "50.00"
        assert ledger_service.get_balance(billed_seller.id) == Decimal("10.00")
        sub = subscription_service.get_subscription(billed_seller.id)
        assert sub.account_suspended is False
        # schedule untouched by settlement
        assert sub.next_deduction_at == NOW + timedelta(days=3)

    def test_settle_with_insufficient_balance(self, billed_seller):
        subscription_service.process_subscription_deduction(billed_seller.id, now=NOW + timedelta(days=1))
        fund_wallet(billed_seller.id, "5")
        result = subscription_service.settle_pending_fees(billed_seller.id)
        assert result["success"] is False
        assert subscription_service.get_subscription(billed_seller.id).payment_pending is True

    def test_nothing_pending(self, billed_seller):
        result = subscription_service.settle_pending_fees(billed_seller.id)
        assert result["message"] == "No pending fees"


class TestPlanChanges:
    def test_request_and_approve(self, billed_seller, admin_user):
        req = subscription_service.request_plan_change(billed_seller.id, "monthly")
        assert req.status == "pending"
        assert req.current_plan == "daily"

        with pytest.raises(SubscriptionError, match="already have a pending plan change"):
            subscription_service.request_plan_change(billed_seller.id, "half_monthly")

        subscription_service.approve_plan_change(req.id, admin_user.id, "ok")
        assert subscription_service.get_subscription(billed_seller.id).plan_type == "monthly"

        with pytest.raises(SubscriptionError, match="already approved"):
            subscription_service.reject_plan_change(req.id, admin_user.id)

    def test_same_plan_rejected(self, billed_seller):
        with pytest.raises(SubscriptionError, match="already on this plan"):
            subscription_service.request_plan_change(billed_seller.id, "daily")

    def test_reject_keeps_plan(self, billed_seller, admin_user):
        req = subscription_service.request_plan_change(billed_seller.id, "monthly")
        subscription_service.reject_plan_change(req.id, admin_user.id, "Not now")
        assert subscription_service.get_subscription(billed_seller.id).plan_type == "daily"
        assert subscription_service.has_pending_plan_change(billed_seller.id) is False


class TestSweep:
    def test_processes_only_due_subscriptions(self, billed_seller, seller):
        fund_wallet(billed_seller.id, "100")
        results = subscription_service.process_due_subscriptions(now=NOW + timedelta(days=1))

        # `seller` was onboarded on the real clock, so its first charge is not due yet
        assert results["processed"] == 1
        assert results["successful"] == 1
        assert results["failed"] == 0
        assert results["details"][0]["seller_id"] == billed_seller.id

        again = subscription_service.process_due_subscriptions(now=NOW + timedelta(days=1, hours=1))
        assert again["processed"] == 0

    def test_failures_counted_not_raised(self, billed_seller, other_seller):
        sub = subscription_service.get_subscription(other_seller.id)
        sub.is_in_free_period = False
        sub.next_deduction_at = NOW
        db.session.commit()
        fund_wallet(other_seller.id, "100")

        results = subscription_service.process_due_subscriptions(now=NOW + timedelta(days=1))

        assert results["processed"] == 2
        assert results["successful"] == 1
        assert results["failed"] == 1
        failed = [d for d in results["details"] if not d["success"]][0]
        assert failed["seller_id"] == billed_seller.id

    def test_platform_credit_per_success(self, billed_seller):
        fund_wallet(billed_seller.id, "100")
        subscription_service.process_due_subscriptions(now=NOW + timedelta(days=1))
        txns = db.session.query(PlatformWalletTransaction).filter_by(transaction_type="subscription").all()
        assert len(txns) == 1
        assert txns[0].amount == Decimal("25.00")


class TestSubscriptionRoutes:
    def test_overview(self, client, seller, seller_headers):
        resp = client.get("/api/subscriptions/me", headers=seller_headers)
        assert resp.status_code == 200
        assert resp.json["per_day_fee"] == "25.00"
        assert resp.json["plan_fees"]["half_monthly"] == "375.00"
        assert resp.json["free_period_days_left"] == 30

    def test_plan_change_request_route(self, client, seller, seller_headers):
        resp = client.post("/api/subscriptions/me/plan-change", json={"plan_type": "monthly"}, headers=seller_headers)
        assert resp.status_code == 201
        resp = client.post("/api/subscriptions/me/plan-change", json={"plan_type": "monthly"}, headers=seller_headers)
        assert resp.status_code == 400

    def test_fee_settings_admin_only(self, client, seller_headers, admin_headers):
        resp = client.put("/api/subscriptions/fee-settings", json={"per_day_platform_fee": "30"}, headers=seller_headers)
        assert resp.status_code == 403

        resp = client.put("/api/subscriptions/fee-settings", json={"per_day_platform_fee": "30"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["per_day_platform_fee"] == "30.00"

        resp = client.put("/api/subscriptions/fee-settings", json={"per_day_platform_fee": "-1"}, headers=admin_headers)
        assert resp.status_code == 400
