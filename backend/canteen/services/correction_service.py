# Overview: Corrections to the ledger; void, unvoid and edit-as-replace.

"""
Correction Manager

Nothing in the ledger is edited destructively. A correction is always one of:

- void:    mark the row voided and take its amount back out of the live
           balance
- unvoid:  put the amount back and clear the void
- edit:    void the original, then write a fresh purchase or balance delta
           linked to it through edit_parent_transaction_id

Reversal is relative to the customer's current balance, not a replay of the
history. Other rows' balance_after_cents snapshots are left as they were.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import AlreadyVoided, EditTargetNotFound, NotVoided, TransactionNotFound, ValidationError
from ..extensions import db
from ..models import Customer, LedgerTransaction
from ..models.ledger import BALANCE_DELTA_TYPES, TYPE_PURCHASE
from ..money import format_cents
from ..time_utils import utcnow
from ..validation import normalize_note, normalize_optional_str, require_cents
from . import catalog_service
from .concurrency import lock_for_update, run_atomic
from .ledger_service import (
    BalanceChangeResult,
    PurchaseResult,
    _balance_delta_locked,
    _coerce_selections,
    _purchase_locked,
)

logger = logging.getLogger(__name__)

DEFAULT_VOID_NOTE = "Voided"
RESTORED_NOTE = "Restored"


@dataclass(frozen=True)
class CorrectionResult:
    transaction: LedgerTransaction
    balance_after_cents: int

    def to_dict(self) -> dict:
        return {
            "transaction": self.transaction.to_dict(),
            "balance_after_cents": self.balance_after_cents,
        }


@dataclass(frozen=True)
class EditResult:
    original: LedgerTransaction
    replacement: PurchaseResult | BalanceChangeResult

    @property
    def balance_after_cents(self) -> int:
        return self.replacement.balance_after_cents

    def to_dict(self) -> dict:
        return {
            "original": self.original.to_dict(),
            "replacement": self.replacement.to_dict(),
            "balance_after_cents": self.balance_after_cents,
        }


def _get_transaction(transaction_id: str, *, not_found=TransactionNotFound) -> LedgerTransaction:
    tx = lock_for_update(
        db.session.query(LedgerTransaction).filter_by(transaction_id=transaction_id)
    ).first()
    if not tx:
        raise not_found(transaction_id)
    return tx


def _void_locked(tx: LedgerTransaction, customer: Customer, note: str | None) -> None:
    if tx.voided:
        raise AlreadyVoided(tx.transaction_id)

    customer.balance_cents = customer.balance_cents - tx.amount_cents
    tx.voided = True
    tx.voided_at = utcnow()
    tx.void_note = note or DEFAULT_VOID_NOTE
    db.session.flush()


# =============================================================================
# VOID / UNVOID
# =============================================================================

def void_transaction(transaction_id: str, note: str | None = None) -> CorrectionResult:
    """
    Reverse a transaction's balance effect and mark it voided.

    Raises TransactionNotFound, AlreadyVoided.
    """
    note = normalize_note(note)

    def _op():
        tx = _get_transaction(transaction_id)
        customer = catalog_service.get_customer(tx.customer_id, for_update=True)
        _void_locked(tx, customer, note)
        return CorrectionResult(transaction=tx, balance_after_cents=customer.balance_cents)

    result = run_atomic(_op)
    logger.info(
        "Voided %s: customer=%s reversed=%s balance=%s",
        transaction_id,
        result.transaction.customer_id,
        format_cents(-result.transaction.amount_cents),
        format_cents(result.balance_after_cents),
    )
    return result


def unvoid_transaction(transaction_id: str, note: str | None = None) -> CorrectionResult:
    """
    Re-apply a voided transaction's amount to the live balance.

    Raises TransactionNotFound, NotVoided, and ValidationError when the row
    was replaced by an edit that is still active.
    """
    note = normalize_note(note)

    def _op():
        tx = _get_transaction(transaction_id)
        if not tx.voided:
            raise NotVoided(tx.transaction_id)

        replacement = (
            db.session.query(LedgerTransaction)
            .filter_by(edit_parent_transaction_id=tx.transaction_id, voided=False)
            .first()
        )
        if replacement is not None:
            raise ValidationError(
                "Transaction was replaced by an edit; void the replacement first",
                {"replacement_transaction_id": replacement.transaction_id},
            )

        customer = catalog_service.get_customer(tx.customer_id, for_update=True)
        customer.balance_cents = customer.balance_cents + tx.amount_cents
        tx.voided = False
        tx.voided_at = None
        tx.void_note = f"{RESTORED_NOTE}: {note}" if note else RESTORED_NOTE
        db.session.flush()
        return CorrectionResult(transaction=tx, balance_after_cents=customer.balance_cents)

    result = run_atomic(_op)
    logger.info(
        "Restored %s: customer=%s reapplied=%s balance=%s",
        transaction_id,
        result.transaction.customer_id,
        format_cents(result.transaction.amount_cents),
        format_cents(result.balance_after_cents),
    )
    return result


# =============================================================================
# EDIT AS REPLACE
# =============================================================================

def _load_edit_target(transaction_id: str, customer_id: str, allowed_types: tuple[str, ...]) -> tuple[LedgerTransaction, Customer]:
    original = _get_transaction(transaction_id, not_found=EditTargetNotFound)
    if original.voided:
        raise AlreadyVoided(original.transaction_id)
    if original.type not in allowed_types:
        raise ValidationError(
            f"Cannot edit a {original.type} transaction this way",
            {"transaction_id": original.transaction_id, "type": original.type},
        )
    if original.customer_id != customer_id:
        raise ValidationError(
            "Transaction belongs to a different customer",
            {"transaction_id": original.transaction_id, "customer_id": original.customer_id},
        )
    customer = catalog_service.get_customer(original.customer_id, for_update=True)
    return original, customer


def _stamp_replaced(original: LedgerTransaction, replacement: LedgerTransaction, note: str | None) -> None:
    stamp = f"Replaced by {replacement.transaction_id}"
    original.void_note = f"{note} ({stamp})" if note else stamp
    db.session.flush()


def update_purchase_transaction(
    transaction_id: str,
    *,
    customer_id: str,
    product_id: str,
    selected_options=None,
    note: str | None = None,
    staff_id: str | None = None,
) -> EditResult:
    """
    Replace a purchase with a different product/options/note.

    The original is voided and a new purchase linked to it is charged against
    the restored balance, in one atomic unit.
    """
    product_id = normalize_optional_str(product_id, "product_id")
    if not product_id:
        raise ValidationError("product_id is required")
    selections = _coerce_selections(selected_options)
    note = normalize_note(note)

    def _op():
        original, customer = _load_edit_target(transaction_id, customer_id, (TYPE_PURCHASE,))
        _void_locked(original, customer, note)
        replacement = _purchase_locked(
            customer,
            barcode=None,
            product_id=product_id,
            selections=selections,
            note=note,
            staff_id=staff_id,
            edit_parent_transaction_id=original.transaction_id,
        )
        _stamp_replaced(original, replacement.transaction, note)
        return EditResult(original=original, replacement=replacement)

    result = run_atomic(_op)
    logger.info(
        "Edited purchase %s -> %s: customer=%s charged=%s balance=%s",
        transaction_id,
        result.replacement.transaction.transaction_id,
        customer_id,
        format_cents(result.replacement.charged_cents),
        format_cents(result.balance_after_cents),
    )
    return result


def update_balance_delta_transaction(
    transaction_id: str,
    *,
    customer_id: str,
    amount_cents: int,
    note: str | None = None,
    staff_id: str | None = None,
) -> EditResult:
    """
    Replace a deposit/withdrawal/adjustment with a new signed amount.

    The replacement keeps the original's type, so the sign must fit it:
    deposits positive, withdrawals negative, adjustments non-zero.
    """
    require_cents(amount_cents)
    note = normalize_note(note)

    def _op():
        original, customer = _load_edit_target(transaction_id, customer_id, BALANCE_DELTA_TYPES)
        _void_locked(original, customer, note)
        previous = customer.balance_cents
        tx = _balance_delta_locked(
            customer,
            tx_type=original.type,
            amount_cents=amount_cents,
            note=note,
            staff_id=staff_id,
            edit_parent_transaction_id=original.transaction_id,
        )
        _stamp_replaced(original, tx, note)
        return EditResult(
            original=original,
            replacement=BalanceChangeResult(transaction=tx, previous_balance_cents=previous),
        )

    result = run_atomic(_op)
    logger.info(
        "Edited %s %s -> %s: customer=%s amount=%s balance=%s",
        result.original.type,
        transaction_id,
        result.replacement.transaction.transaction_id,
        customer_id,
        format_cents(amount_cents),
        format_cents(result.balance_after_cents),
    )
    return result
