# Overview: Pure pricing arithmetic for cart and invoice lines; no database access.

"""
Pricing Calculator

Money is integer cents, percentages are integer basis points (1800 = 18%).
Arithmetic runs on Decimal and rounds half-up to whole cents exactly once
per component per line:

    line_subtotal = unit_price * quantity                      (exact)
    discount      = round(line_subtotal * discount%)
    taxable       = line_subtotal - discount
    tax           = round((line_subtotal - line_subtotal * discount%) * tax%)
    line_total    = taxable + tax

Tax is taken on the unrounded taxable amount, so line_total stays within one
cent of unit_price * quantity * (1 - d) * (1 + t).

Aggregates are integer sums of the per-line components; the aggregate is
never rounded on its own:

    grand_total = subtotal - discount_total + tax_total
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from ..errors import InvalidInput

BPS_PER_UNIT = 10_000  # 100.00% expressed in basis points
MAX_PERCENT_BPS = BPS_PER_UNIT

_ONE = Decimal("1")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class LinePricing:
    """
    Rounded components of one priced line.

    tax_cents is rounded from the unrounded taxable amount, not from
    taxable_cents, so recomputing tax from taxable_cents can be off by a
    cent (price 5, discount 10%, tax 100%: taxable 4, tax 5, total 9).
    line_total_cents is always taxable_cents + tax_cents.
    """
    line_subtotal_cents: int
    discount_cents: int
    taxable_cents: int
    tax_cents: int
    line_total_cents: int

    def to_dict(self) -> dict:
        return {
            "line_subtotal_cents": self.line_subtotal_cents,
            "discount_cents": self.discount_cents,
            "taxable_cents": self.taxable_cents,
            "tax_cents": self.tax_cents,
            "line_total_cents": self.line_total_cents,
        }


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int = 0
    discount_total_cents: int = 0
    tax_total_cents: int = 0

    @property
    def grand_total_cents(self) -> int:
        return self.subtotal_cents - self.discount_total_cents + self.tax_total_cents

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "discount_total_cents": self.discount_total_cents,
            "tax_total_cents": self.tax_total_cents,
            "grand_total_cents": self.grand_total_cents,
        }


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def _require_int(name: str, value: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an integer", details={"field": name})
    return value


def _require_percent_bps(name: str, value: Any) -> int:
    value = _require_int(name, value)
    if value < 0 or value > MAX_PERCENT_BPS:
        raise InvalidInput(
            f"{name} must be between 0 and 100 percent",
            details={"field": name, "value_bps": value},
        )
    return value


def price_line(
    unit_price_cents: int,
    quantity: int,
    discount_bps: int,
    tax_bps: int,
) -> LinePricing:
    """
    Price one line.

    Raises InvalidInput for a negative price, a quantity below 1, or a
    percentage outside 0-100%. Out-of-range discounts are never clamped
    here; clamping is the cart's job when a cashier overrides a discount.
    """
    unit_price_cents = _require_int("unit_price_cents", unit_price_cents)
    quantity = _require_int("quantity", quantity)
    discount_bps = _require_percent_bps("discount_bps", discount_bps)
    tax_bps = _require_percent_bps("tax_bps", tax_bps)

    if unit_price_cents < 0:
        raise InvalidInput("unit price must be >= 0", details={"unit_price_cents": unit_price_cents})
    if quantity < 1:
        raise InvalidInput("quantity must be a positive integer", details={"quantity": quantity})

    line_subtotal = unit_price_cents * quantity
    discount_exact = Decimal(line_subtotal) * discount_bps / BPS_PER_UNIT
    taxable_exact = Decimal(line_subtotal) - discount_exact
    tax_exact = taxable_exact * tax_bps / BPS_PER_UNIT

    discount = _round_cents(discount_exact)
    tax = _round_cents(tax_exact)
    taxable = line_subtotal - discount

    return LinePricing(
        line_subtotal_cents=line_subtotal,
        discount_cents=discount,
        taxable_cents=taxable,
        tax_cents=tax,
        line_total_cents=taxable + tax,
    )


def sum_totals(lines: Iterable[LinePricing]) -> Totals:
    subtotal = discount = tax = 0
    for line in lines:
        subtotal += line.line_subtotal_cents
        discount += line.discount_cents
        tax += line.tax_cents
    return Totals(subtotal_cents=subtotal, discount_total_cents=discount, tax_total_cents=tax)


def clamp_percent_bps(value: int) -> int:
    """Clamp a manual percentage override into 0-100%."""
    return max(0, min(MAX_PERCENT_BPS, value))


def resolve_tax_bps(product, category) -> int:
    """taxOverride if set (0 counts as set), else category default GST, else 0."""
    if product.tax_override_bps is not None:
        return product.tax_override_bps
    if category is not None and category.default_gst_bps:
        return category.default_gst_bps
    return 0


def resolve_discount_bps(store, category) -> int:
    """Store global discount if non-zero, else category default, else 0."""
    if store is not None and store.global_discount_bps:
        return store.global_discount_bps
    if category is not None and category.default_discount_bps:
        return category.default_discount_bps
    return 0


# --- Boundary conversions -------------------------------------------------


def _to_decimal(name: str, value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{name} must be a number", details={"field": name})
    try:
        # str() keeps float inputs like 19.99 from dragging binary noise along
        dec = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"{name} must be a number", details={"field": name})
    if not dec.is_finite():
        raise InvalidInput(f"{name} must be a finite number", details={"field": name})
    return dec


def to_cents(value: Any, name: str = "amount") -> int:
    """Decimal currency (e.g. 19.99 or "19.99") -> integer cents, half-up."""
    dec = _to_decimal(name, value)
    try:
        return int((dec.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
    except InvalidOperation:
        raise InvalidInput(f"{name} is out of range", details={"field": name})


def percent_to_bps(value: Any, name: str = "percent") -> int:
    """Decimal percent (e.g. 18 or "12.5") -> integer basis points, half-up."""
    dec = _to_decimal(name, value)
    try:
        return int((dec * 100).quantize(_ONE, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise InvalidInput(f"{name} is out of range", details={"field": name})


def cents_to_decimal(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(_CENT)
