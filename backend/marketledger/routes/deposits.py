# backend/marketledger/routes/deposits.py
"""
Deposit API routes

- Sellers/customers submit a deposit with payment proof
- Admins approve (credits the wallet) or reject
- Admins manage the payment methods shown on the deposit form
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import deposit_service
from ..services.deposit_service import DepositError, REQUESTER_CUSTOMER, REQUESTER_SELLER
from ..decorators import require_auth, require_permission


deposits_bp = Blueprint("deposits", __name__, url_prefix="/api/deposits")


def _requester_type() -> str:
    """Sellers deposit into their seller wallet; everyone else into a customer wallet."""
    requested = request.args.get("requester_type") or (request.get_json(silent=True) or {}).get("requester_type")
    if requested in (REQUESTER_CUSTOMER, REQUESTER_SELLER) and g.session_context.has_role(requested):
        return requested
    return REQUESTER_SELLER if g.session_context.has_role("seller") else REQUESTER_CUSTOMER


@deposits_bp.get("/enabled")
@require_auth
def deposits_enabled_route():
    """Whether the deposit form should be shown (cod_only_mode / manual_deposits_enabled)."""
    try:
        return jsonify({"enabled": deposit_service.deposits_enabled()}), 200
    except Exception:
        current_app.logger.exception("Failed to read deposit settings")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.get("/payment-methods")
@require_auth
def list_active_payment_methods_route():
    try:
        methods = deposit_service.list_payment_methods(active_only=True)
        return jsonify({"payment_methods": [m.to_dict() for m in methods]}), 200
    except Exception:
        current_app.logger.exception("Failed to list payment methods")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.post("/")
@require_auth
@require_permission("CREATE_DEPOSIT")
def create_deposit_route():
    """
    Submit a deposit request.

    Requires: CREATE_DEPOSIT permission

    Request body:
    {
        "payment_method_id": 1,
        "amount": "2000.00",
        "screenshot_url": "https://.../proof.png",
        "transaction_reference": "TID-889911"   (optional)
    }

    Returns:
    - 201: Pending deposit request
    - 400: Bad amount, inactive payment method, or missing screenshot
    """
    try:
        data = request.get_json(silent=True) or {}
        deposit = deposit_service.create_deposit(
            user_id=g.current_user.id,
            requester_type=_requester_type(),
            payment_method_id=data.get("payment_method_id"),
            amount=data.get("amount"),
            screenshot_url=data.get("screenshot_url"),
            transaction_reference=data.get("transaction_reference"),
        )
        return jsonify({"deposit": deposit.to_dict()}), 201
    except DepositError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create deposit request")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.get("/me")
@require_auth
@require_permission("CREATE_DEPOSIT")
def my_deposits_route():
    try:
        deposits = deposit_service.list_user_deposits(g.current_user.id)
        return jsonify({"deposits": [d.to_dict() for d in deposits]}), 200
    except Exception:
        current_app.logger.exception("Failed to list deposits")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.get("/")
@require_auth
@require_permission("MANAGE_DEPOSITS")
def list_deposits_route():
    """Query params: requester_type (customer | seller), status."""
    try:
        deposits = deposit_service.list_deposits(
            requester_type=request.args.get("requester_type"),
            status=request.args.get("status"),
        )
        return jsonify({"deposits": deposits}), 200
    except DepositError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list deposit requests")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.get("/pending-count")
@require_auth
@require_permission("MANAGE_DEPOSITS")
def pending_count_route():
    try:
        return jsonify({
            "pending_count": deposit_service.pending_count(request.args.get("requester_type")),
        }), 200
    except Exception:
        current_app.logger.exception("Failed to count pending deposits")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.post("/<int:deposit_id>/approve")
@require_auth
@require_permission("MANAGE_DEPOSITS")
def approve_deposit_route(deposit_id: int):
    """
    Approve and credit the wallet.

    Returns:
    - 200: {success, message, amount, email_sent, fees_settled?}
    - 400: Not found / already processed
    """
    try:
        data = request.get_json(silent=True) or {}
        result = deposit_service.approve_deposit_request(deposit_id, g.current_user.id, data.get("admin_notes"))
        if not result.get("success"):
            return jsonify({"error": result.get("message") or "Failed to approve deposit"}), 400
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to approve deposit")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.post("/<int:deposit_id>/reject")
@require_auth
@require_permission("MANAGE_DEPOSITS")
def reject_deposit_route(deposit_id: int):
    """Request body: {"reason": "Screenshot does not show the transfer"}"""
    try:
        data = request.get_json(silent=True) or {}
        result = deposit_service.reject_deposit_request(deposit_id, g.current_user.id, data.get("reason"))
        if not result.get("success"):
            return jsonify({"error": result.get("message") or "Failed to reject deposit"}), 400
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to reject deposit")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENT METHODS (admin)
# =============================================================================

@deposits_bp.get("/admin/payment-methods")
@require_auth
@require_permission("MANAGE_PAYMENT_METHODS")
def list_all_payment_methods_route():
    try:
        methods = deposit_service.list_payment_methods(active_only=False)
        return jsonify({"payment_methods": [m.to_dict() for m in methods]}), 200
    except Exception:
        current_app.logger.exception("Failed to list payment methods")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.post("/admin/payment-methods")
@require_auth
@require_permission("MANAGE_PAYMENT_METHODS")
def create_payment_method_route():
    try:
        method = deposit_service.create_payment_method(request.get_json(silent=True) or {})
        return jsonify({"payment_method": method.to_dict()}), 201
    except DepositError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create payment method")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.patch("/admin/payment-methods/<int:method_id>")
@require_auth
@require_permission("MANAGE_PAYMENT_METHODS")
def update_payment_method_route(method_id: int):
    try:
        method = deposit_service.update_payment_method(method_id, request.get_json(silent=True) or {})
        return jsonify({"payment_method": method.to_dict()}), 200
    except DepositError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update payment method")
        return jsonify({"error": "Internal server error"}), 500


@deposits_bp.delete("/admin/payment-methods/<int:method_id>")
@require_auth
@require_permission("MANAGE_PAYMENT_METHODS")
def delete_payment_method_route(method_id: int):
    try:
        deposit_service.delete_payment_method(method_id)
        return jsonify({"deleted": True}), 200
    except DepositError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to delete payment method")
        return jsonify({"error": "Internal server error"}), 500
