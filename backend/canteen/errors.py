# Overview: Error taxonomy shared by the ledger services and the HTTP layer.

"""
Every business-rule rejection raised by the ledger is a LedgerError.

They are terminal: nothing in the service layer retries them. Routes translate
them into JSON responses using ``http_status``; anything that is not a
LedgerError is an unexpected failure and becomes a 500.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger rejections."""
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


# =============================================================================
# LOOKUPS
# =============================================================================

class NotFound(LedgerError):
    http_status = 404


class CustomerNotFound(NotFound):
    def __init__(self, customer_id: str):
        super().__init__("Customer not found", {"customer_id": customer_id})


class ProductNotFound(NotFound):
    def __init__(self, *, product_id: str | None = None, barcode: str | None = None):
        details = {}
        if product_id is not None:
            details["product_id"] = product_id
        if barcode is not None:
            details["barcode"] = barcode
        super().__init__("Product not found", details)


class TransactionNotFound(NotFound):
    def __init__(self, transaction_id: str):
        super().__init__("Transaction not found", {"transaction_id": transaction_id})


class EditTargetNotFound(TransactionNotFound):
    """The transaction being edited does not exist."""


class InactiveProduct(LedgerError):
    http_status = 409

    def __init__(self, product_id: str):
        super().__init__("Product is inactive", {"product_id": product_id})


# =============================================================================
# INPUT
# =============================================================================

class ValidationError(LedgerError):
    """400-level input problem."""


class MissingRequiredOptions(ValidationError):
    def __init__(self, group_names: list[str]):
        super().__init__(
            f"Please choose an option for: {', '.join(group_names)}",
            {"missing_required": list(group_names)},
        )
        self.group_names = list(group_names)


class PrecisionError(ValidationError):
    """Amount is not representable in whole cents."""


# =============================================================================
# BUSINESS RULES
# =============================================================================

class InsufficientBalance(LedgerError):
    http_status = 409

    def __init__(self, *, balance_cents: int, required_cents: int):
        super().__init__(
            "Insufficient balance",
            {"balance_cents": balance_cents, "required_cents": required_cents},
        )


class AlreadyVoided(LedgerError):
    http_status = 409

    def __init__(self, transaction_id: str):
        super().__init__("Transaction is already voided", {"transaction_id": transaction_id})


class NotVoided(LedgerError):
    http_status = 409

    def __init__(self, transaction_id: str):
        super().__init__("Transaction is not voided", {"transaction_id": transaction_id})


class ConstraintViolation(LedgerError):
    """Storage-level rejection (uniqueness, stale row, write-once field)."""
    http_status = 409


class ImmutableFieldError(ConstraintViolation):
    def __init__(self, fields: list[str]):
        super().__init__(
            f"Transaction fields are write-once: {', '.join(sorted(fields))}",
            {"fields": sorted(fields)},
        )
