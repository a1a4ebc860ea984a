# backend/marketledger/routes/catalog.py
"""
Catalog API routes (minimal product listings used by flash-sale nominations).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import catalog_service
from ..services.catalog_service import CatalogError
from ..decorators import require_auth, require_permission


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.post("/products")
@require_auth
@require_permission("MANAGE_OWN_PRODUCTS")
def create_product_route():
    """
    Request body: {"title": "Lawn Suit", "price": "3500", "stock_count": 20}

    Returns:
    - 201: Product created
    - 400: Invalid input or account suspended
    """
    try:
        data = request.get_json(silent=True) or {}
        product = catalog_service.create_product(
            g.current_user.id,
            data.get("title"),
            data.get("price"),
            data.get("stock_count", 0),
        )
        return jsonify({"product": product.to_dict()}), 201
    except CatalogError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products/me")
@require_auth
@require_permission("MANAGE_OWN_PRODUCTS")
def my_products_route():
    try:
        products = catalog_service.list_seller_products(g.current_user.id)
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products")
def storefront_route():
    """Public storefront listing; products of suspended sellers are hidden."""
    try:
        products = catalog_service.list_storefront_products()
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except Exception:
        current_app.logger.exception("Failed to list storefront products")
        return jsonify({"error": "Internal server error"}), 500
