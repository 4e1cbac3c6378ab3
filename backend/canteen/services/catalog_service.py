# Overview: Read-only customer and product lookups used by the ledger writer.

from __future__ import annotations

import re

from ..errors import CustomerNotFound, InactiveProduct, ProductNotFound, ValidationError
from ..extensions import db
from ..models import Customer, Product
from .concurrency import lock_for_update

CUSTOMER_ID_RE = re.compile(r"^\d{4}$")


def normalize_customer_id(value) -> str:
    customer_id = value.strip() if isinstance(value, str) else ""
    if not CUSTOMER_ID_RE.match(customer_id):
        raise ValidationError("Customer ID must be exactly 4 digits", {"customer_id": value})
    return customer_id


def get_customer(customer_id: str, *, for_update: bool = False) -> Customer:
    q = db.session.query(Customer).filter_by(customer_id=customer_id)
    if for_update:
        q = lock_for_update(q)
    customer = q.first()
    if not customer:
        raise CustomerNotFound(customer_id)
    return customer


def find_active_product(*, barcode: str | None = None, product_id: str | None = None) -> Product:
    """
    Resolve the product being purchased. A barcode wins over a product id
    when both are supplied (scanner input is the more specific signal).
    """
    if barcode:
        product = db.session.query(Product).filter_by(barcode=barcode).first()
        if not product:
            raise ProductNotFound(barcode=barcode)
    elif product_id:
        product = db.session.query(Product).filter_by(product_id=product_id).first()
        if not product:
            raise ProductNotFound(product_id=product_id)
    else:
        raise ValidationError("Either barcode or product_id must be provided")

    if not product.active:
        raise InactiveProduct(product.product_id)
    return product
