# Overview: Purchase pricing; option deltas plus the discount cascade.

"""
Discount Composer

Discount sources are applied in a fixed order to a shrinking running total:

    global% -> global flat -> product% -> product flat ->
    customer% -> customer flat -> customer type% -> customer type flat

Each step discounts what is left after the previous steps, and is capped at
that remaining amount, so the total can reach zero but never go below it.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..money import percent_of
from .options_service import OptionEvaluation

MAX_PERCENT_BPS = 10_000

SOURCE_GLOBAL = "global"
SOURCE_PRODUCT = "product"
SOURCE_CUSTOMER = "customer"
SOURCE_CUSTOMER_TYPE = "customer_type"


@dataclass(frozen=True)
class DiscountSource:
    name: str
    percent_bps: int | None = None
    flat_cents: int | None = None


@dataclass(frozen=True)
class DiscountLine:
    label: str
    amount_cents: int

    def to_dict(self) -> dict:
        return {"label": self.label, "amount_cents": self.amount_cents}


@dataclass(frozen=True)
class PriceQuote:
    base_price_cents: int
    options_delta_cents: int
    subtotal_cents: int
    discounts: tuple[DiscountLine, ...]
    final_total_cents: int

    @property
    def discount_total_cents(self) -> int:
        return sum(line.amount_cents for line in self.discounts)

    def to_dict(self) -> dict:
        return {
            "base_price_cents": self.base_price_cents,
            "options_delta_cents": self.options_delta_cents,
            "subtotal_cents": self.subtotal_cents,
            "discounts": [line.to_dict() for line in self.discounts],
            "discount_total_cents": self.discount_total_cents,
            "final_total_cents": self.final_total_cents,
        }


def compose_discounts(subtotal_cents: int, sources: list[DiscountSource]) -> tuple[list[DiscountLine], int]:
    """Apply the cascade; returns (ordered discount lines, final total)."""
    current = max(0, subtotal_cents)
    lines: list[DiscountLine] = []

    for source in sources:
        bps = source.percent_bps
        if bps is not None and 0 < bps <= MAX_PERCENT_BPS:
            discount = percent_of(current, bps)
            if discount > 0:
                current = max(0, current - discount)
                lines.append(DiscountLine(f"{source.name}_percent", discount))

        flat = source.flat_cents
        if flat is not None and flat > 0:
            discount = min(current, flat)
            if discount > 0:
                current = max(0, current - discount)
                lines.append(DiscountLine(f"{source.name}_flat", discount))

    return lines, current


def build_discount_sources(settings, product, customer, customer_type=None) -> list[DiscountSource]:
    """
    Collect discount sources in cascade order.

    The customer type only fills in the fields the customer leaves NULL.
    """
    type_percent = None
    type_flat = None
    if customer_type is not None:
        if customer.discount_percent_bps is None:
            type_percent = customer_type.discount_percent_bps
        if customer.discount_flat_cents is None:
            type_flat = customer_type.discount_flat_cents

    return [
        DiscountSource(
            SOURCE_GLOBAL,
            settings.global_discount_percent_bps if settings is not None else None,
            settings.global_discount_flat_cents if settings is not None else None,
        ),
        DiscountSource(SOURCE_PRODUCT, product.discount_percent_bps, product.discount_flat_cents),
        DiscountSource(SOURCE_CUSTOMER, customer.discount_percent_bps, customer.discount_flat_cents),
        DiscountSource(SOURCE_CUSTOMER_TYPE, type_percent, type_flat),
    ]


def quote_purchase(product, evaluation: OptionEvaluation, sources: list[DiscountSource]) -> PriceQuote:
    subtotal = product.price_cents + evaluation.total_delta_cents
    lines, final_total = compose_discounts(subtotal, sources)
    return PriceQuote(
        base_price_cents=product.price_cents,
        options_delta_cents=evaluation.total_delta_cents,
        subtotal_cents=max(0, subtotal),
        discounts=tuple(lines),
        final_total_cents=final_total,
    )
