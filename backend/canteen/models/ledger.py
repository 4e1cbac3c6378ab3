from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy import event

from ..errors import ImmutableFieldError
from ..extensions import db
from ..time_utils import to_utc_z


TYPE_PURCHASE = "purchase"
TYPE_DEPOSIT = "deposit"
TYPE_WITHDRAWAL = "withdrawal"
TYPE_ADJUSTMENT = "adjustment"

TRANSACTION_TYPES = (TYPE_PURCHASE, TYPE_DEPOSIT, TYPE_WITHDRAWAL, TYPE_ADJUSTMENT)
BALANCE_DELTA_TYPES = (TYPE_DEPOSIT, TYPE_WITHDRAWAL, TYPE_ADJUSTMENT)

# Only voided, voided_at, void_note and edit_parent_transaction_id may change
WRITE_ONCE_FIELDS = (
    "transaction_id",
    "customer_id",
    "type",
    "product_id",
    "product_name",
    "product_price_cents",
    "amount_cents",
    "balance_after_cents",
    "note",
    "options",
    "timestamp",
    "staff_id",
)


class LedgerTransaction(db.Model):
    """
    One balance-affecting event for a customer.

    IMMUTABLE CORE: rows are inserted once by the ledger writer and never
    deleted. Corrections only flip the void fields or link a replacement
    through edit_parent_transaction_id.

    balance_after_cents is a point-in-time snapshot. It is not recomputed
    when an earlier or unrelated transaction is voided later.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", name="uq_transactions_transaction_id"),
        db.CheckConstraint(
            "type IN ('purchase', 'deposit', 'withdrawal', 'adjustment')",
            name="ck_transactions_type",
        ),
        db.Index("ix_transactions_customer_timestamp", "customer_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(64), nullable=False)
    customer_id = db.Column(db.String(4), db.ForeignKey("customers.customer_id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False, index=True)

    # Product snapshot (purchases only)
    product_id = db.Column(db.String(64), nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=True)
    product_price_cents = db.Column(db.Integer, nullable=True)

    # Signed: negative for purchases/withdrawals, positive for deposits
    amount_cents = db.Column(db.Integer, nullable=False)
    balance_after_cents = db.Column(db.Integer, nullable=False)

    note = db.Column(db.Text, nullable=True)
    options = db.Column(db.JSON, nullable=True)

    voided = db.Column(db.Boolean, nullable=False, default=False, index=True)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    void_note = db.Column(db.Text, nullable=True)

    edit_parent_transaction_id = db.Column(
        db.String(64),
        db.ForeignKey("transactions.transaction_id"),
        nullable=True,
        index=True,
    )

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    staff_id = db.Column(db.String(64), nullable=True)

    customer = db.relationship(
        "Customer",
        primaryjoin="LedgerTransaction.customer_id == Customer.customer_id",
        backref=db.backref("transactions", lazy="dynamic"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "customer_id": self.customer_id,
            "type": self.type,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_price_cents": self.product_price_cents,
            "amount_cents": self.amount_cents,
            "balance_after_cents": self.balance_after_cents,
            "note": self.note,
            "options": self.options or [],
            "voided": bool(self.voided),
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "void_note": self.void_note,
            "edit_parent_transaction_id": self.edit_parent_transaction_id,
            "timestamp": to_utc_z(self.timestamp),
            "staff_id": self.staff_id,
        }


@event.listens_for(LedgerTransaction, "before_update")
def _reject_core_field_changes(mapper, connection, target):
    state = sa.inspect(target)
    changed = [name for name in WRITE_ONCE_FIELDS if state.attrs[name].history.has_changes()]
    if changed:
        raise ImmutableFieldError(changed)
