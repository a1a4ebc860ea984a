# backend/marketledger/routes/subscriptions.py
"""
Subscription Billing API routes

Seller: overview card, plan change requests.
Admin: subscription list/summary, per-seller overrides, plan change
decisions, manual deductions, the due-deduction sweep, fee settings.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import subscription_service
from ..services.subscription_service import SubscriptionError
from ..services.settings_service import SettingsError
from ..decorators import require_auth, require_permission


subscriptions_bp = Blueprint("subscriptions", __name__, url_prefix="/api/subscriptions")


def _bool_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.lower() in ("1", "true", "yes")


# =============================================================================
# SELLER
# =============================================================================

@subscriptions_bp.get("/me")
@require_auth
@require_permission("VIEW_OWN_SUBSCRIPTION")
def my_subscription_route():
    """Plan, fees, free-period countdown, recent deductions and plan change requests."""
    try:
        return jsonify(subscription_service.subscription_overview(g.current_user.id)), 200
    except Exception:
        current_app.logger.exception("Failed to load subscription")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.post("/me/plan-change")
@require_auth
@require_permission("REQUEST_PLAN_CHANGE")
def request_plan_change_route():
    """
    Ask to move to another billing plan.

    Request body: {"plan_type": "monthly"}   (daily | half_monthly | monthly)

    Returns:
    - 201: Request created (pending admin review)
    - 400: Invalid plan, same plan, or a request already pending
    """
    try:
        data = request.get_json(silent=True) or {}
        change = subscription_service.request_plan_change(g.current_user.id, data.get("plan_type"))
        return jsonify({"request": change.to_dict()}), 201
    except SubscriptionError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to request plan change")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ADMIN
# =============================================================================

@subscriptions_bp.get("/")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def list_subscriptions_route():
    """Query params: suspended, payment_pending (true/false)."""
    try:
        rows = subscription_service.list_subscriptions(
            suspended=_bool_arg("suspended"),
            payment_pending=_bool_arg("payment_pending"),
        )
        return jsonify({"subscriptions": rows}), 200
    except Exception:
        current_app.logger.exception("Failed to list subscriptions")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.get("/summary")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def subscription_summary_route():
    try:
        return jsonify(subscription_service.admin_summary()), 200
    except Exception:
        current_app.logger.exception("Failed to summarize subscriptions")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.get("/sellers/<int:seller_id>")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def seller_subscription_route(seller_id: int):
    try:
        return jsonify(subscription_service.subscription_overview(seller_id)), 200
    except Exception:
        current_app.logger.exception("Failed to load seller subscription")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.patch("/sellers/<int:seller_id>")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def update_seller_subscription_route(seller_id: int):
    """
    Override a seller's fee, plan or active flag.

    Request body (all optional):
    {
        "custom_daily_fee": "10.00",   (null clears the override)
        "plan_type": "monthly",
        "is_active": true
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        sub = subscription_service.update_seller_subscription(seller_id, data)
        return jsonify({"subscription": sub.to_dict()}), 200
    except SubscriptionError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update seller subscription")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.post("/sellers/<int:seller_id>/deduct")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def manual_deduction_route(seller_id: int):
    """
    Charge one billing period now.

    Returns 200 with {success, message, ...}; a failed charge (insufficient
    balance) is a normal outcome and is reported with success=false.
    """
    try:
        result = subscription_service.trigger_manual_deduction(seller_id)
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to run manual deduction")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.post("/process-due")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def process_due_route():
    """Run the scheduled deduction sweep now. Returns processed/successful/failed/details."""
    try:
        return jsonify(subscription_service.process_due_subscriptions()), 200
    except Exception:
        current_app.logger.exception("Failed to process due subscriptions")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.get("/plan-changes")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def list_plan_changes_route():
    try:
        requests_ = subscription_service.list_plan_change_requests(status=request.args.get("status"))
        return jsonify({"requests": [r.to_dict() for r in requests_]}), 200
    except Exception:
        current_app.logger.exception("Failed to list plan change requests")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.post("/plan-changes/<int:request_id>/approve")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def approve_plan_change_route(request_id: int):
    try:
        data = request.get_json(silent=True) or {}
        change = subscription_service.approve_plan_change(request_id, g.current_user.id, data.get("admin_notes"))
        return jsonify({"request": change.to_dict()}), 200
    except SubscriptionError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to approve plan change")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.post("/plan-changes/<int:request_id>/reject")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def reject_plan_change_route(request_id: int):
    try:
        data = request.get_json(silent=True) or {}
        change = subscription_service.reject_plan_change(request_id, g.current_user.id, data.get("admin_notes"))
        return jsonify({"request": change.to_dict()}), 200
    except SubscriptionError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reject plan change")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.get("/fee-settings")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def get_fee_settings_route():
    try:
        return jsonify(subscription_service.get_fee_settings()), 200
    except Exception:
        current_app.logger.exception("Failed to load fee settings")
        return jsonify({"error": "Internal server error"}), 500


@subscriptions_bp.put("/fee-settings")
@require_auth
@require_permission("MANAGE_SUBSCRIPTIONS")
def update_fee_settings_route():
    """Request body: {"per_day_platform_fee": "15", "new_seller_free_months": 2}"""
    try:
        data = request.get_json(silent=True) or {}
        return jsonify(subscription_service.update_fee_settings(data, g.current_user.id)), 200
    except (SubscriptionError, SettingsError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update fee settings")
        return jsonify({"error": "Internal server error"}), 500
