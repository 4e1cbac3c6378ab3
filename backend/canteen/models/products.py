from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Sellable item.

    options holds the option schema as JSON:
    [{"id", "name", "required", "multiple",
      "choices": [{"id", "label", "priceDelta"}]}]
    It is parsed and validated by services.options_service before use.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_products_product_id"),
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    barcode = db.Column(db.String(64), nullable=True, index=True)
    category = db.Column(db.String(128), nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    discount_percent_bps = db.Column(db.Integer, nullable=True)
    discount_flat_cents = db.Column(db.Integer, nullable=True)

    options = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "barcode": self.barcode,
            "category": self.category,
            "active": self.active,
            "discount_percent_bps": self.discount_percent_bps,
            "discount_flat_cents": self.discount_flat_cents,
            "options": self.options or [],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
