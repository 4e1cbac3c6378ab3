from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class CustomerType(db.Model):
    """
    Customer category (e.g. staff, student) carrying a default discount.

    A customer inherits the type's percent and/or flat discount for each field
    it does not override itself.
    """
    __tablename__ = "customer_types"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_customer_types_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)

    discount_percent_bps = db.Column(db.Integer, nullable=True)
    discount_flat_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "discount_percent_bps": self.discount_percent_bps,
            "discount_flat_cents": self.discount_flat_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Customer(db.Model):
    """
    Prepaid account holder.

    customer_id is the 4-digit natural key printed on the customer's card. It
    never changes and is what transactions reference, so it survives
    export/import without remapping surrogate ids.

    INVARIANT: balance_cents equals the sum of amount_cents over the
    customer's non-voided transactions.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("customer_id", name="uq_customers_customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.String(4), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=True)

    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    # NULL means "no override": fall back to the customer type
    discount_percent_bps = db.Column(db.Integer, nullable=True)
    discount_flat_cents = db.Column(db.Integer, nullable=True)

    type_id = db.Column(db.Integer, db.ForeignKey("customer_types.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer_type = db.relationship("CustomerType", backref=db.backref("customers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "name": self.name,
            "balance_cents": self.balance_cents,
            "discount_percent_bps": self.discount_percent_bps,
            "discount_flat_cents": self.discount_flat_cents,
            "type_id": self.type_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
