# backend/marketledger/routes/flash_sales.py
"""
Flash Sale API routes

Campaigns (admin), seller nominations, admin review, live listings and
the sold-count counter used at checkout.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import flash_sale_service
from ..services.flash_sale_service import FlashSaleError
from ..decorators import require_auth, require_permission


flash_sales_bp = Blueprint("flash_sales", __name__, url_prefix="/api/flash-sales")


# =============================================================================
# CAMPAIGNS
# =============================================================================

@flash_sales_bp.get("/")
@require_auth
def list_flash_sales_route():
    """Query params: active_only (default true)."""
    try:
        active_only = request.args.get("active_only", "true").lower() != "false"
        sales = flash_sale_service.list_flash_sales(active_only=active_only)
        return jsonify({"flash_sales": [s.to_dict() for s in sales]}), 200
    except Exception:
        current_app.logger.exception("Failed to list flash sales")
        return jsonify({"error": "Internal server error"}), 500


@flash_sales_bp.post("/")
@require_auth
@require_permission("MANAGE_FLASH_SALES")
def create_flash_sale_route():
    """
    Create a campaign.

    Request body:
    {
        "campaign_name": "11.11 Mega Sale",
        "start_date": "2024-11-11T00:00:00Z",
        "end_date": "2024-11-12T00:00:00Z",
        "fee_per_product": "500",
        "application_deadline": "2024-11-08T00:00:00Z"   (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = flash_sale_service.create_flash_sale(
            campaign_name=data.get("campaign_name"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            fee_per_product=data.get("fee_per_product", 0),
            application_deadline=data.get("application_deadline"),
            is_active=data.get("is_active", True),
        )
        return jsonify({"flash_sale": sale.to_dict()}), 201
    except FlashSaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create flash sale")
        return jsonify({"error": "Internal server error"}), 500


@flash_sales_bp.get("/live")
def live_products_route():
    """Public: products in currently running campaigns (suspended sellers hidden)."""
    try:
        return jsonify({"products": flash_sale_service.list_active_flash_sale_products()}), 200
    except Exception:
        current_app.logger.exception("Failed to list live flash sale products")
        return jsonify({"error": "Internal server error"}), 500


@flash_sales_bp.post("/<int:flash_sale_id>/products/<int:product_id>/sold")
@require_auth
@require_permission("RECORD_FLASH_SALE_ORDERS")
def increment_sold_route(flash_sale_id: int, product_id: int):
    """
    Reserve flash-sale stock for an order.

    Request body: {"quantity": 1}

    Returns:
    - 200: {"incremented": true}
    - 409: Stock limit reached or listing not found
    """
    try:
        data = request.get_json(silent=True) or {}
        ok = flash_sale_service.increment_flash_sale_sold(flash_sale_id, product_id, data.get("quantity", 1))
        if not ok:
            return jsonify({"incremented": False, "error": "Flash sale stock exhausted"}), 409
        return jsonify({"incremented": True}), 200
    except FlashSaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to increment flash sale sold count")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# NOMINATIONS
# =============================================================================

@flash_sales_bp.post("/nominations")
@require_auth
@require_permission("NOMINATE_FLASH_SALE")
def create_nomination_route():
    """
    Nominate one of the seller's products.

    Request body:
    {
        "product_id": 12,
        "flash_sale_id": 3,            (optional)
        "original_price": "1000",
        "proposed_price": "800",
        "stock_limit": 50,
        "time_slot_start": "2024-11-11T10:00:00Z",
        "time_slot_end": "2024-11-11T14:00:00Z",
        "total_fee": "500"             (optional, defaults to the campaign fee)
    }

    Returns:
    - 201: Pending nomination
    - 400: Suspended account, discount below minimum, insufficient balance
           for the fee, or invalid input
    """
    try:
        data = request.get_json(silent=True) or {}
        nomination = flash_sale_service.create_nomination(
            seller_id=g.current_user.id,
            product_id=data.get("product_id"),
            proposed_price=data.get("proposed_price"),
            original_price=data.get("original_price"),
            stock_limit=data.get("stock_limit"),
            time_slot_start=data.get("time_slot_start"),
            time_slot_end=data.get("time_slot_end"),
            total_fee=data.get("total_fee"),
            flash_sale_id=data.get("flash_sale_id"),
        )
        return jsonify({"nomination": nomination.to_dict()}), 201
    except FlashSaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create flash sale nomination")
        return jsonify({"error": "Internal server error"}), 500


@flash_sales_bp.get("/nominations/me")
@require_auth
@require_permission("NOMINATE_FLASH_SALE")
def my_nominations_route():
    try:
        nominations = flash_sale_service.list_seller_nominations(g.current_user.id)
        return jsonify({"nominations": [n.to_dict() for n in nominations]}), 200
    except Exception:
        current_app.logger.exception("Failed to list nominations")
        return jsonify({"error": "Internal server error"}), 500


@flash_sales_bp.delete("/nominations/<int:nomination_id>")
@require_auth
@require_permission("NOMINATE_FLASH_SALE")
def delete_nomination_route(nomination_id: int):
    try:
        flash_sale_service.delete_nomination(g.current_user.id, nomination_id)
        return jsonify({"deleted": True}), 200
    except FlashSaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to delete nomination")
        return jsonify({"error": "Internal server error"}), 500


@flash_sales_bp.get("/nominations")
@require_auth
@require_permission("MANAGE_FLASH_SALES")
def list_nominations_route():
    """Query params: status (pending | approved | rejected)."""
    try:
        return jsonify({"nominations": flash_sale_service.list_nominations(request.args.get("status"))}), 200
    except FlashSaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list nominations")
        return jsonify({"error": "Internal server error"}), 500


@flash_sales_bp.post("/nominations/<int:nomination_id>/approve")
@require_auth
@require_permission("MANAGE_FLASH_SALES")
def approve_nomination_route(nomination_id: int):
    """
    Publish into a flash sale and charge the fee (single transaction).

    Request body: {"flash_sale_id": 3}   (defaults to the nominated campaign)
    """
    try:
        data = request.get_json(silent=True) or {}
        flash_sale_id = data.get("flash_sale_id")
        if flash_sale_id is None:
            nomination = flash_sale_service.get_nomination(nomination_id)
            flash_sale_id = nomination.flash_sale_id if nomination else None
        listing = flash_sale_service.approve_nomination(nomination_id, flash_sale_id, g.current_user.id)
        return jsonify({"flash_sale_product": listing.to_dict()}), 200
    except FlashSaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to approve nomination")
        return jsonify({"error": "Internal server error"}), 500


@flash_sales_bp.post("/nominations/<int:nomination_id>/reject")
@require_auth
@require_permission("MANAGE_FLASH_SALES")
def reject_nomination_route(nomination_id: int):
    try:
        data = request.get_json(silent=True) or {}
        nomination = flash_sale_service.reject_nomination(nomination_id, data.get("admin_notes"))
        return jsonify({"nomination": nomination.to_dict()}), 200
    except FlashSaleError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reject nomination")
        return jsonify({"error": "Internal server error"}), 500
