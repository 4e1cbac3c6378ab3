# Overview: Read-side ledger queries; listings, export rows, stats, invariant check.

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, LedgerTransaction
from ..models.ledger import TRANSACTION_TYPES


@dataclass(frozen=True)
class BalanceDrift:
    customer_id: str
    balance_cents: int
    ledger_sum_cents: int

    @property
    def difference_cents(self) -> int:
        return self.balance_cents - self.ledger_sum_cents

    def to_dict(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "balance_cents": self.balance_cents,
            "ledger_sum_cents": self.ledger_sum_cents,
            "difference_cents": self.difference_cents,
        }


def _newest_first(q):
    return q.order_by(LedgerTransaction.timestamp.desc(), LedgerTransaction.id.desc())


def get_customer_transactions(customer_id: str, limit: int = 20) -> list[LedgerTransaction]:
    """Most recent transactions for one customer, voided rows included."""
    q = db.session.query(LedgerTransaction).filter_by(customer_id=customer_id)
    return _newest_first(q).limit(limit).all()


def count_transactions() -> int:
    return db.session.query(func.count(LedgerTransaction.id)).scalar() or 0


def list_all_transactions(limit: int | None = None) -> list[dict]:
    """
    Export rows across all customers, newest first.

    Each row is the transaction plus the customer's current name.
    """
    q = (
        db.session.query(LedgerTransaction, Customer.name)
        .outerjoin(Customer, Customer.customer_id == LedgerTransaction.customer_id)
    )
    q = _newest_first(q)
    if limit is not None:
        q = q.limit(limit)

    rows = []
    for tx, customer_name in q.all():
        row = tx.to_dict()
        row["customer_name"] = customer_name
        rows.append(row)
    return rows


def get_transaction_stats_summary() -> dict:
    by_type = {t: {"count": 0, "total_cents": 0} for t in TRANSACTION_TYPES}
    rows = (
        db.session.query(
            LedgerTransaction.type,
            func.count(LedgerTransaction.id),
            func.coalesce(func.sum(LedgerTransaction.amount_cents), 0),
        )
        .filter(LedgerTransaction.voided.is_(False))
        .group_by(LedgerTransaction.type)
        .all()
    )
    for tx_type, count, total in rows:
        by_type[tx_type] = {"count": int(count), "total_cents": int(total)}

    voided_count = (
        db.session.query(func.count(LedgerTransaction.id))
        .filter(LedgerTransaction.voided.is_(True))
        .scalar()
    ) or 0
    customer_count, balance_total = db.session.query(
        func.count(Customer.id),
        func.coalesce(func.sum(Customer.balance_cents), 0),
    ).one()

    return {
        "transaction_count": sum(v["count"] for v in by_type.values()) + int(voided_count),
        "voided_count": int(voided_count),
        "by_type": by_type,
        "customer_count": int(customer_count),
        "total_balance_cents": int(balance_total),
    }


def verify_balances(customer_id: str | None = None) -> list[BalanceDrift]:
    """
    Check the ledger invariant: each balance equals the sum of the customer's
    non-voided amounts. Returns the customers where it does not hold.
    """
    sums = (
        db.session.query(
            LedgerTransaction.customer_id.label("customer_id"),
            func.sum(LedgerTransaction.amount_cents).label("total"),
        )
        .filter(LedgerTransaction.voided.is_(False))
        .group_by(LedgerTransaction.customer_id)
        .subquery()
    )
    q = (
        db.session.query(Customer.customer_id, Customer.balance_cents, func.coalesce(sums.c.total, 0))
        .outerjoin(sums, sums.c.customer_id == Customer.customer_id)
    )
    if customer_id is not None:
        q = q.filter(Customer.customer_id == customer_id)

    drifts = []
    for cid, balance, total in q.order_by(Customer.customer_id).all():
        if int(balance) != int(total):
            drifts.append(BalanceDrift(cid, int(balance), int(total)))
    return drifts
