# backend/marketledger/routes/wallet.py
"""
Wallet & Ledger API routes

Seller side: own wallet snapshot and transaction history.
Admin side: wallet list, balance adjustments, commission overrides,
platform wallet, ledger verification, order earning/refund postings.
Customer side: own wallet; admin adjustment.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import ledger_service
from ..services.ledger_service import LedgerError
from ..decorators import require_auth, require_permission


wallet_bp = Blueprint("wallet", __name__, url_prefix="/api/wallet")


def _limit(default: int = 50, maximum: int = 500) -> int:
    try:
        value = int(request.args.get("limit", default))
    except (TypeError, ValueError):
        return default
    return max(1, min(value, maximum))


# =============================================================================
# SELLER
# =============================================================================

@wallet_bp.get("/me")
@require_auth
@require_permission("VIEW_OWN_WALLET")
def my_wallet_route():
    """Balance, totals and payout eligibility for the current seller."""
    try:
        return jsonify(ledger_service.wallet_snapshot(g.current_user.id)), 200
    except Exception:
        current_app.logger.exception("Failed to load wallet")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.get("/me/transactions")
@require_auth
@require_permission("VIEW_OWN_WALLET")
def my_transactions_route():
    """
    Ledger history, newest first.

    Query params:
    - type: earning | commission_deduction | withdrawal | refund_deduction | adjustment
    - limit: default 50
    """
    try:
        rows = ledger_service.list_transactions(
            g.current_user.id,
            limit=_limit(),
            transaction_type=request.args.get("type"),
        )
        return jsonify({"transactions": [t.to_dict() for t in rows]}), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list wallet transactions")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ADMIN
# =============================================================================

@wallet_bp.get("/admin/wallets")
@require_auth
@require_permission("VIEW_FINANCE")
def list_wallets_route():
    try:
        return jsonify({"wallets": ledger_service.list_wallets(limit=_limit(100))}), 200
    except Exception:
        current_app.logger.exception("Failed to list wallets")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.get("/admin/sellers/<int:seller_id>")
@require_auth
@require_permission("VIEW_FINANCE")
def seller_wallet_route(seller_id: int):
    try:
        return jsonify({
            "wallet": ledger_service.wallet_snapshot(seller_id),
            "transactions": [t.to_dict() for t in ledger_service.list_transactions(seller_id, limit=_limit())],
            "commission_rate": str(ledger_service.get_commission_rate(seller_id)),
        }), 200
    except Exception:
        current_app.logger.exception("Failed to load seller wallet")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.get("/admin/sellers/<int:seller_id>/verify")
@require_auth
@require_permission("VIEW_FINANCE")
def verify_wallet_route(seller_id: int):
    """Compare stored balance against the sum of ledger entries."""
    try:
        return jsonify(ledger_service.verify_wallet(seller_id)), 200
    except Exception:
        current_app.logger.exception("Failed to verify wallet")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.post("/admin/sellers/<int:seller_id>/adjust")
@require_auth
@require_permission("ADJUST_WALLETS")
def adjust_seller_route(seller_id: int):
    """
    Credit or debit a seller wallet.

    Request body:
    {
        "adjustment_type": "credit",   (credit | debit)
        "amount": "500.00",
        "reason": "Courier refund reversal"
    }

    Returns:
    - 200: {success, message, new_balance}
    - 400: validation failure or insufficient balance for a debit
    """
    try:
        data = request.get_json(silent=True) or {}
        result = ledger_service.adjust_seller_balance(
            seller_id,
            data.get("adjustment_type"),
            data.get("amount"),
            data.get("reason"),
            admin_id=g.current_user.id,
        )
        if not result.get("success"):
            return jsonify({"error": result.get("message") or "Failed to adjust balance"}), 400
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to adjust seller balance")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.put("/admin/sellers/<int:seller_id>/commission")
@require_auth
@require_permission("MANAGE_COMMISSIONS")
def set_commission_route(seller_id: int):
    """
    Upsert a seller's commission override.

    Request body:
    {
        "custom_commission_percentage": "8",   (null = use global rate)
        "grace_period_months": 3,
        "grace_commission_percentage": "0",
        "notes": "Launch partner"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        override = ledger_service.set_seller_commission(
            seller_id,
            custom_commission_percentage=data.get("custom_commission_percentage"),
            grace_period_months=data.get("grace_period_months", 0),
            grace_commission_percentage=data.get("grace_commission_percentage", 0),
            notes=data.get("notes"),
        )
        return jsonify({
            "commission": override.to_dict(),
            "effective_rate": str(ledger_service.get_commission_rate(seller_id)),
        }), 200
    except LedgerError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to set seller commission")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.post("/admin/sellers/<int:seller_id>/earnings")
@require_auth
@require_permission("RECORD_ORDER_EARNINGS")
def record_earning_route(seller_id: int):
    """
    Post a delivered order's earning (net of commission).

    Request body: {"order_reference": "ORD-1001", "sale_amount": "2500.00"}
    """
    try:
        data = request.get_json(silent=True) or {}
        txn = ledger_service.record_order_earning(seller_id, data.get("order_reference"), data.get("sale_amount"))
        return jsonify({"transaction": txn.to_dict()}), 201
    except LedgerError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record order earning")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.post("/admin/sellers/<int:seller_id>/refunds")
@require_auth
@require_permission("RECORD_ORDER_EARNINGS")
def record_refund_route(seller_id: int):
    """Request body: {"order_reference": "ORD-1001", "amount": "2500.00"}"""
    try:
        data = request.get_json(silent=True) or {}
        txn = ledger_service.record_refund_deduction(seller_id, data.get("order_reference"), data.get("amount"))
        return jsonify({"transaction": txn.to_dict()}), 201
    except LedgerError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record refund deduction")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.get("/admin/platform")
@require_auth
@require_permission("VIEW_FINANCE")
def platform_wallet_route():
    try:
        return jsonify(ledger_service.platform_wallet_snapshot(limit=_limit(20))), 200
    except Exception:
        current_app.logger.exception("Failed to load platform wallet")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# CUSTOMER
# =============================================================================

@wallet_bp.get("/customer/me")
@require_auth
@require_permission("VIEW_OWN_WALLET")
def my_customer_wallet_route():
    try:
        return jsonify(ledger_service.customer_wallet_snapshot(g.current_user.id)), 200
    except Exception:
        current_app.logger.exception("Failed to load customer wallet")
        return jsonify({"error": "Internal server error"}), 500


@wallet_bp.post("/admin/customers/<int:customer_id>/adjust")
@require_auth
@require_permission("ADJUST_WALLETS")
def adjust_customer_route(customer_id: int):
    try:
        data = request.get_json(silent=True) or {}
        result = ledger_service.adjust_customer_balance(
            customer_id,
            data.get("adjustment_type"),
            data.get("amount"),
            data.get("reason"),
            admin_id=g.current_user.id,
        )
        if not result.get("success"):
            return jsonify({"error": result.get("message") or "Failed to adjust balance"}), 400
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to adjust customer balance")
        return jsonify({"error": "Internal server error"}), 500
