from __future__ import annotations

from ..extensions import db
from marketledger.money import money_str
from marketledger.time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Seller listing.

    Only the fields the billing gate needs: listings of suspended sellers are
    hidden from the storefront and new ones are refused.
    """
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(14, 2), nullable=False)
    stock_count = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "title": self.title,
            "price": money_str(self.price),
            "stock_count": self.stock_count,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
