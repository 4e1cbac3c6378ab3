# Overview: Point-in-time store export and wholesale import used by backup/restore.

"""
Snapshot export / import

The snapshot is a plain JSON-serializable dict keyed by natural ids
(customer_id, product_id, transaction_id, customer type name), so it can be
loaded into an empty database without remapping surrogate keys.

- export holds the write lock while reading, so the snapshot is consistent
  with itself even while cashiers keep working
- import replaces the whole store inside one write transaction and checks the
  balance invariant before committing
"""

from __future__ import annotations

import logging

from ..errors import ConstraintViolation, ValidationError
from ..extensions import db
from ..models import AppSettings, Customer, CustomerType, LedgerTransaction, Product
from ..models.ledger import TRANSACTION_TYPES
from ..models.settings import APP_SETTINGS_ID
from ..time_utils import parse_iso_datetime, to_utc_z, utcnow
from ..validation import require_cents
from .concurrency import begin_write, run_atomic
from .pricing_service import MAX_PERCENT_BPS
from .reporting_service import verify_balances

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = "canteen-ledger-snapshot"
SNAPSHOT_VERSION = 1


def _customer_type_row(t: CustomerType) -> dict:
    return {
        "name": t.name,
        "discount_percent_bps": t.discount_percent_bps,
        "discount_flat_cents": t.discount_flat_cents,
    }


def _customer_row(c: Customer) -> dict:
    return {
        "customer_id": c.customer_id,
        "name": c.name,
        "balance_cents": c.balance_cents,
        "discount_percent_bps": c.discount_percent_bps,
        "discount_flat_cents": c.discount_flat_cents,
        "type_name": c.customer_type.name if c.customer_type else None,
        "created_at": to_utc_z(c.created_at),
    }


def _product_row(p: Product) -> dict:
    return {
        "product_id": p.product_id,
        "name": p.name,
        "price_cents": p.price_cents,
        "barcode": p.barcode,
        "category": p.category,
        "active": bool(p.active),
        "discount_percent_bps": p.discount_percent_bps,
        "discount_flat_cents": p.discount_flat_cents,
        "options": p.options,
    }


def _transaction_row(tx: LedgerTransaction) -> dict:
    row = tx.to_dict()
    row.pop("id", None)
    row["options"] = tx.options
    return row


def export_snapshot() -> dict:
    """Read the whole store under the write lock; nothing is modified."""
    try:
        begin_write()
        settings = db.session.get(AppSettings, APP_SETTINGS_ID)
        snapshot = {
            "format": SNAPSHOT_FORMAT,
            "version": SNAPSHOT_VERSION,
            "exported_at": to_utc_z(utcnow()),
            "settings": {
                "brand_name": settings.brand_name if settings else None,
                "global_discount_percent_bps": settings.global_discount_percent_bps if settings else 0,
                "global_discount_flat_cents": settings.global_discount_flat_cents if settings else 0,
            },
            "customer_types": [
                _customer_type_row(t)
                for t in db.session.query(CustomerType).order_by(CustomerType.id).all()
            ],
            "customers": [
                _customer_row(c)
                for c in db.session.query(Customer).order_by(Customer.id).all()
            ],
            "products": [
                _product_row(p)
                for p in db.session.query(Product).order_by(Product.id).all()
            ],
            "transactions": [
                _transaction_row(tx)
                for tx in db.session.query(LedgerTransaction).order_by(LedgerTransaction.id).all()
            ],
        }
    finally:
        db.session.rollback()

    logger.info(
        "Exported snapshot: %d customers, %d products, %d transactions",
        len(snapshot["customers"]),
        len(snapshot["products"]),
        len(snapshot["transactions"]),
    )
    return snapshot


def _optional_cents(value, field: str) -> int | None:
    return None if value is None else require_cents(value, field)


def _optional_bps(value, field: str) -> int | None:
    bps = _optional_cents(value, field)
    if bps is not None and not 0 <= bps <= MAX_PERCENT_BPS:
        raise ValidationError(f"{field} must be between 0 and {MAX_PERCENT_BPS}")
    return bps


def _optional_flat(value, field: str) -> int | None:
    cents = _optional_cents(value, field)
    if cents is not None and cents < 0:
        raise ValidationError(f"{field} must not be negative")
    return cents


def _require_bool(value, field: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false")
    return value


def _parse_dt(value, field: str):
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def _check_header(snapshot) -> None:
    if not isinstance(snapshot, dict):
        raise ValidationError("Snapshot must be an object")
    if snapshot.get("format") != SNAPSHOT_FORMAT:
        raise ValidationError("Not a ledger snapshot")
    if snapshot.get("version") != SNAPSHOT_VERSION:
        raise ValidationError(f"Unsupported snapshot version: {snapshot.get('version')}")


def import_snapshot(snapshot: dict) -> dict:
    """
    Replace every customer, product, setting and transaction with the
    snapshot's content. All or nothing: a malformed row or a balance that does
    not match its ledger aborts the import and leaves the store untouched.
    """
    _check_header(snapshot)

    def _op():
        db.session.query(LedgerTransaction).delete()
        db.session.query(Customer).delete()
        db.session.query(CustomerType).delete()
        db.session.query(Product).delete()
        db.session.query(AppSettings).delete()
        db.session.flush()

        s = snapshot.get("settings") or {}
        db.session.add(AppSettings(
            id=APP_SETTINGS_ID,
            brand_name=s.get("brand_name"),
            global_discount_percent_bps=_optional_bps(
                s.get("global_discount_percent_bps", 0), "global_discount_percent_bps"),
            global_discount_flat_cents=_optional_flat(
                s.get("global_discount_flat_cents", 0), "global_discount_flat_cents"),
        ))

        types_by_name = {}
        for row in snapshot.get("customer_types") or []:
            t = CustomerType(
                name=row["name"],
                discount_percent_bps=_optional_bps(row.get("discount_percent_bps"), "discount_percent_bps"),
                discount_flat_cents=_optional_flat(row.get("discount_flat_cents"), "discount_flat_cents"),
            )
            db.session.add(t)
            types_by_name[t.name] = t
        db.session.flush()

        customer_ids = set()
        for row in snapshot.get("customers") or []:
            type_name = row.get("type_name")
            if type_name is not None and type_name not in types_by_name:
                raise ValidationError(f"Unknown customer type: {type_name}")
            db.session.add(Customer(
                customer_id=row["customer_id"],
                name=row.get("name"),
                balance_cents=require_cents(row["balance_cents"], "balance_cents"),
                discount_percent_bps=_optional_bps(row.get("discount_percent_bps"), "discount_percent_bps"),
                discount_flat_cents=_optional_flat(row.get("discount_flat_cents"), "discount_flat_cents"),
                type_id=types_by_name[type_name].id if type_name else None,
            ))
            customer_ids.add(row["customer_id"])

        for row in snapshot.get("products") or []:
            db.session.add(Product(
                product_id=row["product_id"],
                name=row["name"],
                price_cents=require_cents(row["price_cents"], "price_cents"),
                barcode=row.get("barcode"),
                category=row.get("category"),
                active=_require_bool(row.get("active"), "active", True),
                discount_percent_bps=_optional_bps(row.get("discount_percent_bps"), "discount_percent_bps"),
                discount_flat_cents=_optional_flat(row.get("discount_flat_cents"), "discount_flat_cents"),
                options=row.get("options"),
            ))
        db.session.flush()

        # edit parents always precede their replacements in export order
        seen_ids = set()
        for row in snapshot.get("transactions") or []:
            if row.get("type") not in TRANSACTION_TYPES:
                raise ValidationError(f"Unknown transaction type: {row.get('type')}")
            if row["customer_id"] not in customer_ids:
                raise ValidationError(f"Transaction for unknown customer: {row['customer_id']}")
            parent_id = row.get("edit_parent_transaction_id")
            if parent_id is not None and parent_id not in seen_ids:
                raise ValidationError(f"Unknown edit parent transaction: {parent_id}")
            seen_ids.add(row["transaction_id"])
            db.session.add(LedgerTransaction(
                transaction_id=row["transaction_id"],
                customer_id=row["customer_id"],
                type=row["type"],
                product_id=row.get("product_id"),
                product_name=row.get("product_name"),
                product_price_cents=_optional_cents(row.get("product_price_cents"), "product_price_cents"),
                amount_cents=require_cents(row["amount_cents"], "amount_cents"),
                balance_after_cents=require_cents(row["balance_after_cents"], "balance_after_cents"),
                note=row.get("note"),
                options=row.get("options"),
                voided=_require_bool(row.get("voided"), "voided", False),
                voided_at=_parse_dt(row.get("voided_at"), "voided_at"),
                void_note=row.get("void_note"),
                edit_parent_transaction_id=parent_id,
                timestamp=_parse_dt(row.get("timestamp"), "timestamp") or utcnow(),
                staff_id=row.get("staff_id"),
            ))
        db.session.flush()

        drifts = verify_balances()
        if drifts:
            raise ConstraintViolation(
                "Snapshot balances do not match their ledgers",
                {"customers": [d.to_dict() for d in drifts]},
            )

        return {
            "customer_types": len(types_by_name),
            "customers": len(snapshot.get("customers") or []),
            "products": len(snapshot.get("products") or []),
            "transactions": len(snapshot.get("transactions") or []),
        }

    try:
        counts = run_atomic(_op)
    except KeyError as exc:
        raise ValidationError(f"Snapshot row is missing field {exc.args[0]}")
    logger.info("Imported snapshot: %s", counts)
    return counts
