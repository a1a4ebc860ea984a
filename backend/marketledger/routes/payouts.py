# backend/marketledger/routes/payouts.py
"""
Payout API routes

Sellers request withdrawals; admins approve, complete (debiting the
wallet) or reject them.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import payout_service
from ..services.payout_service import PayoutError
from ..decorators import require_auth, require_permission


payouts_bp = Blueprint("payouts", __name__, url_prefix="/api/payouts")


@payouts_bp.post("/")
@require_auth
@require_permission("REQUEST_PAYOUT")
def request_payout_route():
    """
    Request a withdrawal.

    Requires: REQUEST_PAYOUT permission

    Request body:
    {
        "amount": "5000.00",
        "bank_name": "Meezan Bank",
        "account_title": "Shop Owner",
        "iban": "PK36SCBL0000001123456702"
    }

    Returns:
    - 201: Payout request created
    - 400: Below minimum, insufficient balance, missing bank details,
           or another request still open
    """
    try:
        data = request.get_json(silent=True) or {}
        payout = payout_service.request_payout(
            g.current_user.id,
            data.get("amount"),
            {field: data.get(field) for field in payout_service.BANK_FIELDS},
        )
        return jsonify({"payout": payout.to_dict()}), 201
    except PayoutError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to request payout")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.get("/me")
@require_auth
@require_permission("REQUEST_PAYOUT")
def my_payouts_route():
    try:
        payouts = payout_service.list_seller_payouts(g.current_user.id)
        return jsonify({"payouts": [p.to_dict() for p in payouts]}), 200
    except Exception:
        current_app.logger.exception("Failed to list payouts")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.get("/")
@require_auth
@require_permission("MANAGE_PAYOUTS")
def list_payouts_route():
    """Query params: status (pending | approved | rejected | completed)."""
    try:
        payouts = payout_service.list_payouts(status=request.args.get("status"))
        return jsonify({"payouts": [p.to_dict() for p in payouts]}), 200
    except PayoutError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list payouts")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.get("/summary")
@require_auth
@require_permission("MANAGE_PAYOUTS")
def payout_summary_route():
    try:
        return jsonify(payout_service.payout_summary()), 200
    except Exception:
        current_app.logger.exception("Failed to summarize payouts")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.post("/<int:payout_id>/approve")
@require_auth
@require_permission("MANAGE_PAYOUTS")
def approve_payout_route(payout_id: int):
    try:
        data = request.get_json(silent=True) or {}
        payout = payout_service.approve_payout(payout_id, g.current_user.id, data.get("admin_notes"))
        return jsonify({"payout": payout.to_dict()}), 200
    except PayoutError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to approve payout")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.post("/<int:payout_id>/process")
@require_auth
@require_permission("MANAGE_PAYOUTS")
def process_payout_route(payout_id: int):
    """
    Mark the transfer done and debit the seller wallet.

    Request body: {"transaction_reference": "FT-2024-000123"}

    Returns:
    - 200: Payout completed
    - 400: Missing reference, request not open, or balance too low
    """
    try:
        data = request.get_json(silent=True) or {}
        processed = payout_service.process_payout(
            payout_id,
            data.get("transaction_reference"),
            g.current_user.id,
        )
        if not processed:
            return jsonify({"error": "Failed to process payout"}), 400
        return jsonify({"payout": payout_service.get_payout(payout_id).to_dict()}), 200
    except PayoutError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to process payout")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.post("/<int:payout_id>/reject")
@require_auth
@require_permission("MANAGE_PAYOUTS")
def reject_payout_route(payout_id: int):
    """Request body: {"reason": "IBAN does not match account title"}"""
    try:
        data = request.get_json(silent=True) or {}
        payout = payout_service.reject_payout(payout_id, data.get("reason"), g.current_user.id)
        return jsonify({"payout": payout.to_dict()}), 200
    except PayoutError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reject payout")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.post("/<int:payout_id>/receipt")
@require_auth
@require_permission("MANAGE_PAYOUTS")
def attach_receipt_route(payout_id: int):
    try:
        data = request.get_json(silent=True) or {}
        payout = payout_service.attach_receipt(payout_id, data.get("receipt_url"))
        return jsonify({"payout": payout.to_dict()}), 200
    except PayoutError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to attach payout receipt")
        return jsonify({"error": "Internal server error"}), 500
