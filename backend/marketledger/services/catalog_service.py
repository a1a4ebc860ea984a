from __future__ import annotations

from ..extensions import db
from ..models import Product, SellerSubscription
from ..money import to_money
from . import subscription_service


class CatalogError(Exception):
    pass


def create_product(seller_id: int, title: str, price, stock_count=0) -> Product:
    """New listing. Refused while the seller's account is suspended."""
    if subscription_service.is_seller_suspended(seller_id):
        raise CatalogError("Your account is suspended due to unpaid subscription fees")

    title = (title or "").strip()
    if not title:
        raise CatalogError("title is required")
    try:
        value = to_money(price, field="price")
    except ValueError as exc:
        raise CatalogError(str(exc))
    if value <= 0:
        raise CatalogError("price must be greater than zero")
    try:
        stock = int(stock_count or 0)
    except (TypeError, ValueError):
        raise CatalogError("stock_count must be an integer")
    if stock < 0:
        raise CatalogError("stock_count cannot be negative")

    product = Product(seller_id=seller_id, title=title, price=value, stock_count=stock, is_active=True)
    db.session.add(product)
    db.session.commit()
    return product


def list_seller_products(seller_id: int) -> list[Product]:
    return db.session.query(Product).filter_by(seller_id=seller_id).order_by(Product.id.desc()).all()


def list_storefront_products(limit: int = 100) -> list[Product]:
    """Active products, minus those of suspended sellers."""
    return (
        db.session.query(Product)
        .outerjoin(SellerSubscription, SellerSubscription.seller_id == Product.seller_id)
        .filter(
            Product.is_active.is_(True),
            db.or_(SellerSubscription.id.is_(None), SellerSubscription.account_suspended.is_(False)),
        )
        .order_by(Product.id.desc())
        .limit(limit)
        .all()
    )
