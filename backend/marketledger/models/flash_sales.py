from __future__ import annotations

from ..extensions import db
from marketledger.money import money_str
from marketledger.time_utils import to_utc_z, utcnow


class FlashSale(db.Model):
    """Time-boxed campaign that approved nominations are published into."""
    __tablename__ = "flash_sales"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    campaign_name = db.Column(db.String(255), nullable=False)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    fee_per_product = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    application_deadline = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "campaign_name": self.campaign_name,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "fee_per_product": money_str(self.fee_per_product),
            "application_deadline": to_utc_z(self.application_deadline) if self.application_deadline else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class FlashSaleNomination(db.Model):
    """
    Seller proposal to list a product at a discounted, time-boxed price.

    RULES (enforced in flash_sale_service.create_nomination):
    - discount >= flash_sale_min_discount_percentage (20%)
    - wallet balance covers total_fee at submission
    - seller not suspended

    The fee is deducted only on approval (fee_deducted / fee_deducted_at).
    """
    __tablename__ = "flash_sale_nominations"
    __table_args__ = (
        db.Index("ix_flash_nominations_seller_status", "seller_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    flash_sale_id = db.Column(db.Integer, db.ForeignKey("flash_sales.id"), nullable=True, index=True)

    proposed_price = db.Column(db.Numeric(14, 2), nullable=False)
    original_price = db.Column(db.Numeric(14, 2), nullable=False)
    stock_limit = db.Column(db.Integer, nullable=False)

    time_slot_start = db.Column(db.DateTime(timezone=True), nullable=False)
    time_slot_end = db.Column(db.DateTime(timezone=True), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    total_fee = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    fee_deducted = db.Column(db.Boolean, nullable=False, default=False)
    fee_deducted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    admin_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "product_id": self.product_id,
            "product_title": self.product.title if self.product else None,
            "flash_sale_id": self.flash_sale_id,
            "proposed_price": money_str(self.proposed_price),
            "original_price": money_str(self.original_price),
            "stock_limit": self.stock_limit,
            "time_slot_start": to_utc_z(self.time_slot_start),
            "time_slot_end": to_utc_z(self.time_slot_end),
            "status": self.status,
            "total_fee": money_str(self.total_fee),
            "fee_deducted": self.fee_deducted,
            "fee_deducted_at": to_utc_z(self.fee_deducted_at) if self.fee_deducted_at else None,
            "admin_notes": self.admin_notes,
            "created_at": to_utc_z(self.created_at),
        }


class FlashSaleProduct(db.Model):
    """
    Live flash-sale listing.

    sold_count is only ever changed by increment_flash_sale_sold, a single
    guarded UPDATE (never read-modify-write).
    """
    __tablename__ = "flash_sale_products"
    __table_args__ = (
        db.UniqueConstraint("flash_sale_id", "product_id", name="uq_flash_sale_products"),
        db.CheckConstraint("sold_count >= 0", name="ck_flash_sale_products_sold_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    flash_sale_id = db.Column(db.Integer, db.ForeignKey("flash_sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    nomination_id = db.Column(db.Integer, db.ForeignKey("flash_sale_nominations.id"), nullable=True)

    flash_price = db.Column(db.Numeric(14, 2), nullable=False)
    original_price = db.Column(db.Numeric(14, 2), nullable=False)
    stock_limit = db.Column(db.Integer, nullable=False)
    sold_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    flash_sale = db.relationship("FlashSale", backref=db.backref("products", lazy=True))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "flash_sale_id": self.flash_sale_id,
            "product_id": self.product_id,
            "nomination_id": self.nomination_id,
            "flash_price": money_str(self.flash_price),
            "original_price": money_str(self.original_price),
            "stock_limit": self.stock_limit,
            "sold_count": self.sold_count,
            "remaining": max(self.stock_limit - self.sold_count, 0),
        }
