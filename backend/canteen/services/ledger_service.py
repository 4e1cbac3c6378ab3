# Overview: Ledger writer; purchases, deposits, withdrawals and adjustments.

"""
Ledger Writer

Every write follows the same shape:

    resolve (customer, product) -> price -> check -> commit

and the commit is one atomic unit: the customer's balance and the new
transaction row are written together or not at all (see run_atomic).

Ledger invariants (authoritative)

- customer.balance_cents == sum(amount_cents) of the customer's non-voided rows
- amount_cents and balance_after_cents are integer cents, written once
- balance_after_cents is a snapshot of the balance right after this row
- rows are never deleted; corrections live in correction_service
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Iterable

from ..errors import InsufficientBalance, ValidationError
from ..extensions import db
from ..models import Customer, LedgerTransaction, Product
from ..models.ledger import (
    TYPE_ADJUSTMENT,
    TYPE_DEPOSIT,
    TYPE_PURCHASE,
    TYPE_WITHDRAWAL,
)
from ..money import format_cents
from ..time_utils import utcnow
from ..validation import normalize_note, normalize_optional_str, require_cents
from . import catalog_service, settings_service
from .concurrency import run_atomic
from .options_service import (
    OptionSelection,
    evaluate_options,
    parse_option_groups,
    parse_selections,
    require_complete,
)
from .pricing_service import PriceQuote, build_discount_sources, quote_purchase

logger = logging.getLogger(__name__)

# An adjustment that leaves the balance negative is refused once it moves
# more than this amount; small corrections below zero are still allowed.
ADJUSTMENT_NEGATIVE_GUARD_CENTS = 5_000


@dataclass(frozen=True)
class PurchaseResult:
    transaction: LedgerTransaction
    product: Product
    quote: PriceQuote

    @property
    def charged_cents(self) -> int:
        return self.quote.final_total_cents

    @property
    def balance_after_cents(self) -> int:
        return self.transaction.balance_after_cents

    def to_dict(self) -> dict:
        return {
            "transaction": self.transaction.to_dict(),
            "product": self.product.to_dict(),
            "charged_cents": self.charged_cents,
            "balance_after_cents": self.balance_after_cents,
            "pricing": self.quote.to_dict(),
        }


@dataclass(frozen=True)
class BalanceChangeResult:
    transaction: LedgerTransaction
    previous_balance_cents: int

    @property
    def balance_after_cents(self) -> int:
        return self.transaction.balance_after_cents

    def to_dict(self) -> dict:
        return {
            "transaction": self.transaction.to_dict(),
            "previous_balance_cents": self.previous_balance_cents,
            "balance_after_cents": self.balance_after_cents,
        }


def generate_transaction_id() -> str:
    return f"TXN_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _coerce_selections(selected_options) -> list[OptionSelection]:
    if selected_options is None:
        return []
    if isinstance(selected_options, list) and all(isinstance(s, OptionSelection) for s in selected_options):
        return list(selected_options)
    return parse_selections(selected_options)


def _append_transaction(
    customer: Customer,
    *,
    tx_type: str,
    amount_cents: int,
    note: str | None,
    staff_id: str | None,
    product: Product | None = None,
    options: list[dict] | None = None,
    edit_parent_transaction_id: str | None = None,
) -> LedgerTransaction:
    """
    Apply amount_cents to the (already locked) customer and insert the row.

    Caller owns the transaction boundary; nothing is committed here.
    """
    new_balance = customer.balance_cents + amount_cents
    customer.balance_cents = new_balance

    tx = LedgerTransaction(
        transaction_id=generate_transaction_id(),
        customer_id=customer.customer_id,
        type=tx_type,
        product_id=product.product_id if product is not None else None,
        product_name=product.name if product is not None else None,
        product_price_cents=product.price_cents if product is not None else None,
        amount_cents=amount_cents,
        balance_after_cents=new_balance,
        note=note,
        options=options or None,
        voided=False,
        edit_parent_transaction_id=edit_parent_transaction_id,
        timestamp=utcnow(),
        staff_id=staff_id,
    )
    db.session.add(tx)
    db.session.flush()
    return tx


# =============================================================================
# PURCHASE
# =============================================================================

def _purchase_locked(
    customer: Customer,
    *,
    barcode: str | None,
    product_id: str | None,
    selections: Iterable[OptionSelection],
    note: str | None,
    staff_id: str | None,
    edit_parent_transaction_id: str | None = None,
) -> PurchaseResult:
    product = catalog_service.find_active_product(barcode=barcode, product_id=product_id)

    evaluation = evaluate_options(parse_option_groups(product.options), selections)
    require_complete(evaluation)

    sources = build_discount_sources(
        settings_service.get_app_settings(),
        product,
        customer,
        customer.customer_type,
    )
    quote = quote_purchase(product, evaluation, sources)

    if customer.balance_cents < quote.final_total_cents:
        raise InsufficientBalance(
            balance_cents=customer.balance_cents,
            required_cents=quote.final_total_cents,
        )

    amount = -quote.final_total_cents if quote.final_total_cents else 0
    tx = _append_transaction(
        customer,
        tx_type=TYPE_PURCHASE,
        amount_cents=amount,
        note=note,
        staff_id=staff_id,
        product=product,
        options=evaluation.snapshot(),
        edit_parent_transaction_id=edit_parent_transaction_id,
    )
    return PurchaseResult(transaction=tx, product=product, quote=quote)


def process_purchase(
    customer_id: str,
    *,
    barcode: str | None = None,
    product_id: str | None = None,
    selected_options=None,
    note: str | None = None,
    staff_id: str | None = None,
) -> PurchaseResult:
    """
    Charge a customer for one product (with options and discounts).

    Raises CustomerNotFound, ProductNotFound, InactiveProduct,
    MissingRequiredOptions, InsufficientBalance. On any error nothing is
    written.
    """
    barcode = normalize_optional_str(barcode, "barcode")
    product_id = normalize_optional_str(product_id, "product_id")
    if not barcode and not product_id:
        raise ValidationError("Either barcode or product_id must be provided")
    selections = _coerce_selections(selected_options)
    note = normalize_note(note)

    def _op():
        customer = catalog_service.get_customer(customer_id, for_update=True)
        return _purchase_locked(
            customer,
            barcode=barcode,
            product_id=product_id,
            selections=selections,
            note=note,
            staff_id=staff_id,
        )

    result = run_atomic(_op)
    logger.info(
        "Purchase %s: customer=%s product=%s charged=%s balance=%s",
        result.transaction.transaction_id,
        customer_id,
        result.product.product_id,
        format_cents(result.charged_cents),
        format_cents(result.balance_after_cents),
    )
    return result


# =============================================================================
# BALANCE DELTAS
# =============================================================================

def _balance_delta_locked(
    customer: Customer,
    *,
    tx_type: str,
    amount_cents: int,
    note: str | None,
    staff_id: str | None,
    edit_parent_transaction_id: str | None = None,
) -> LedgerTransaction:
    """
    amount_cents is the signed effect on the balance: deposits are positive,
    withdrawals negative, adjustments either.
    """
    if tx_type == TYPE_DEPOSIT:
        if amount_cents <= 0:
            raise ValidationError("Deposit amount must be positive")
    elif tx_type == TYPE_WITHDRAWAL:
        if amount_cents >= 0:
            raise ValidationError("Withdrawal amount must be positive")
        if customer.balance_cents < -amount_cents:
            raise InsufficientBalance(
                balance_cents=customer.balance_cents,
                required_cents=-amount_cents,
            )
    elif tx_type == TYPE_ADJUSTMENT:
        if amount_cents == 0:
            raise ValidationError("Adjustment amount must be non-zero")
        new_balance = customer.balance_cents + amount_cents
        if new_balance < 0 and abs(amount_cents) > ADJUSTMENT_NEGATIVE_GUARD_CENTS:
            raise ValidationError(
                "Adjustment would result in very negative balance",
                {"balance_cents": customer.balance_cents, "amount_cents": amount_cents},
            )
    else:
        raise ValidationError(f"Unsupported balance transaction type: {tx_type}")

    return _append_transaction(
        customer,
        tx_type=tx_type,
        amount_cents=amount_cents,
        note=note,
        staff_id=staff_id,
        edit_parent_transaction_id=edit_parent_transaction_id,
    )


def _process_balance_delta(
    customer_id: str,
    tx_type: str,
    amount_cents: int,
    note: str | None,
    staff_id: str | None,
) -> BalanceChangeResult:
    note = normalize_note(note)

    def _op():
        customer = catalog_service.get_customer(customer_id, for_update=True)
        previous = customer.balance_cents
        tx = _balance_delta_locked(
            customer,
            tx_type=tx_type,
            amount_cents=amount_cents,
            note=note,
            staff_id=staff_id,
        )
        return BalanceChangeResult(transaction=tx, previous_balance_cents=previous)

    result = run_atomic(_op)
    logger.info(
        "%s %s: customer=%s amount=%s balance=%s",
        tx_type.capitalize(),
        result.transaction.transaction_id,
        customer_id,
        format_cents(result.transaction.amount_cents),
        format_cents(result.balance_after_cents),
    )
    return result


def process_deposit(customer_id: str, amount_cents: int, note: str | None = None, staff_id: str | None = None) -> BalanceChangeResult:
    require_cents(amount_cents)
    return _process_balance_delta(customer_id, TYPE_DEPOSIT, amount_cents, note, staff_id)


def process_withdrawal(customer_id: str, amount_cents: int, note: str | None = None, staff_id: str | None = None) -> BalanceChangeResult:
    """Cash out; amount_cents is the positive amount handed to the customer."""
    require_cents(amount_cents)
    if amount_cents <= 0:
        raise ValidationError("Withdrawal amount must be positive")
    return _process_balance_delta(customer_id, TYPE_WITHDRAWAL, -amount_cents, note, staff_id)


def process_adjustment(customer_id: str, amount_cents: int, note: str | None = None, staff_id: str | None = None) -> BalanceChangeResult:
    require_cents(amount_cents)
    return _process_balance_delta(customer_id, TYPE_ADJUSTMENT, amount_cents, note, staff_id)
