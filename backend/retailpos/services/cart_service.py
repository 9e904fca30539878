# Overview: Session-scoped cart aggregate; keeps line pricing consistent on every mutation.

"""
Cart State Manager

A Cart belongs to exactly one register session and is passed around by
reference; there is no module-level cart. It does no I/O.

- Tax and discount percentages are resolved from the catalog once, when a
  product is first added, and stored on the line. Later quantity changes
  reuse the stored values.
- Availability checks here run against the last-known stock snapshot and
  only fail fast. Issuance re-validates against the Stock Ledger
  unconditionally.
- Totals are recomputed from the current lines on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..errors import InvalidInput, OutOfStock
from .invoice_service import CheckoutLine
from .pricing_service import (
    LinePricing,
    Totals,
    clamp_percent_bps,
    price_line,
    resolve_discount_bps,
    resolve_tax_bps,
    sum_totals,
)


@dataclass(frozen=True)
class CartLine:
    product_id: int
    name: str
    unit_price_cents: int
    quantity: int
    applied_tax_bps: int
    applied_discount_bps: int
    known_stock_qty: int
    sku: str | None = None

    @property
    def pricing(self) -> LinePricing:
        return price_line(
            self.unit_price_cents,
            self.quantity,
            self.applied_discount_bps,
            self.applied_tax_bps,
        )

    @property
    def line_total_cents(self) -> int:
        return self.pricing.line_total_cents

    def to_dict(self) -> dict:
        data = {
            "product_id": self.product_id,
            "name": self.name,
            "sku": self.sku,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "applied_tax_bps": self.applied_tax_bps,
            "applied_discount_bps": self.applied_discount_bps,
            "known_stock_qty": self.known_stock_qty,
        }
        data.update(self.pricing.to_dict())
        return data


class Cart:
    """In-progress sale for one store."""

    def __init__(self, store_id: int):
        self.store_id = store_id
        self._lines: list[CartLine] = []

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self) -> str:
        return f"<Cart store_id={self.store_id} lines={len(self._lines)}>"

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def _index_of(self, product_id) -> int:
        for i, line in enumerate(self._lines):
            if line.product_id == product_id:
                return i
        return -1

    def _require_index(self, product_id) -> int:
        idx = self._index_of(product_id)
        if idx < 0:
            raise InvalidInput("Product is not in the cart", details={"product_id": product_id})
        return idx

    def get_line(self, product_id) -> CartLine | None:
        idx = self._index_of(product_id)
        return self._lines[idx] if idx >= 0 else None

    def add_item(self, product, category, store) -> CartLine:
        """
        Add one unit of `product`.

        An existing line gains one unit and keeps its stored percentages.
        A new line resolves tax and discount from product/category/store.
        Raises OutOfStock if the product has no stock or the new quantity
        would exceed the product's stock_qty.
        """
        if product.store_id != self.store_id:
            raise InvalidInput(
                "Product belongs to a different store",
                details={"product_id": product.id, "store_id": product.store_id},
            )
        if product.stock_qty <= 0:
            raise OutOfStock(product.id, product.name, available=0, requested=1)

        idx = self._index_of(product.id)
        if idx >= 0:
            line = self._lines[idx]
            new_qty = line.quantity + 1
            if new_qty > product.stock_qty:
                raise OutOfStock(product.id, product.name, available=product.stock_qty, requested=new_qty)
            line = replace(line, quantity=new_qty, known_stock_qty=product.stock_qty)
            self._lines[idx] = line
            return line

        tax_bps = resolve_tax_bps(product, category)
        discount_bps = resolve_discount_bps(store, category)
        # Raises InvalidInput on a bad catalog price or percentage
        price_line(product.price_cents, 1, discount_bps, tax_bps)

        line = CartLine(
            product_id=product.id,
            name=product.name,
            sku=product.sku,
            unit_price_cents=product.price_cents,
            quantity=1,
            applied_tax_bps=tax_bps,
            applied_discount_bps=discount_bps,
            known_stock_qty=product.stock_qty,
        )
        self._lines.append(line)
        return line

    def change_quantity(self, product_id, delta: int) -> CartLine:
        """Quantity floors at 1; use remove_item to drop a line."""
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise InvalidInput("delta must be an integer", details={"delta": delta})
        idx = self._require_index(product_id)
        line = self._lines[idx]

        new_qty = max(1, line.quantity + delta)
        if delta > 0 and new_qty > line.known_stock_qty:
            raise OutOfStock(line.product_id, line.name, available=line.known_stock_qty, requested=new_qty)

        line = replace(line, quantity=new_qty)
        self._lines[idx] = line
        return line

    def set_line_discount(self, product_id, discount_bps: int) -> CartLine:
        """Manual discount override, clamped to 0-100%. Tax is untouched."""
        if isinstance(discount_bps, bool) or not isinstance(discount_bps, int):
            raise InvalidInput("discount must be an integer number of basis points")
        idx = self._require_index(product_id)
        line = replace(self._lines[idx], applied_discount_bps=clamp_percent_bps(discount_bps))
        self._lines[idx] = line
        return line

    def update_known_stock(self, product_id, stock_qty: int) -> None:
        """Refresh the stock snapshot used by change_quantity."""
        idx = self._index_of(product_id)
        if idx >= 0:
            self._lines[idx] = replace(self._lines[idx], known_stock_qty=stock_qty)

    def remove_item(self, product_id) -> None:
        idx = self._require_index(product_id)
        del self._lines[idx]

    def compute_totals(self) -> Totals:
        return sum_totals(line.pricing for line in self._lines)

    def clear(self) -> None:
        self._lines.clear()

    def to_checkout_lines(self) -> list[CheckoutLine]:
        lines = []
        for line in self._lines:
            lines.append(
                CheckoutLine(
                    product_id=line.product_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    applied_tax_bps=line.applied_tax_bps,
                    applied_discount_bps=line.applied_discount_bps,
                    client_line_total_cents=line.line_total_cents,
                )
            )
        return lines

    def to_dict(self) -> dict:
        return {
            "store_id": self.store_id,
            "items": [line.to_dict() for line in self._lines],
            "totals": self.compute_totals().to_dict(),
        }
