# Overview: Stock Ledger; the only code that mutates Product.stock_qty.

"""
Stock Ledger

Invariants (authoritative):
- Product.stock_qty is the quantity on hand and is never negative.
- stock_qty changes only through decrement_quantity() (inside the invoice
  issuance unit of work) and adjust_quantity() (administrative).
- Every change appends a StockMovement in the same transaction.
- Rows are read with lock_products() before they are changed; locks are
  taken in ascending product id order so two issuances that share products
  cannot deadlock on each other.

Storage backs the invariant with ck_products_stock_non_negative, and the
Product.version_id column turns any lost update into a StaleDataError.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..errors import InsufficientStock, InvalidInput, ProductNotFound
from ..extensions import db
from ..models import Category, Product, StockMovement
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

MOVEMENT_SALE = "SALE"
MOVEMENT_ADJUST = "ADJUST"


def get_quantity(product_id: int) -> int:
    """Current quantity on hand (unlocked read)."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product.stock_qty


def lock_products(product_ids: Iterable[int]) -> dict[int, Product]:
    """
    Load and lock products for update, in ascending id order.

    Missing ids are simply absent from the result. Rows are re-read from the
    database even if the session already holds them.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    query = (
        db.session.query(Product)
        .filter(Product.id.in_(ids))
        .order_by(Product.id)
        .populate_existing()
    )
    return {p.id: p for p in lock_for_update(query).all()}


def decrement_quantity(
    product: Product,
    amount: int,
    *,
    invoice_id: str | None = None,
    note: str | None = None,
    actor_user_id: int | None = None,
) -> StockMovement:
    """
    Decrement a locked product's stock inside the caller's unit of work.

    Must only be called by invoice issuance after lock_products(). Does not
    commit. Raises InsufficientStock if amount exceeds stock_qty.
    """
    if amount <= 0:
        raise InvalidInput("decrement amount must be positive", details={"amount": amount})
    if product.stock_qty < amount:
        raise InsufficientStock(product.id, product.name, available=product.stock_qty, requested=amount)

    product.stock_qty = product.stock_qty - amount
    movement = StockMovement(
        store_id=product.store_id,
        product_id=product.id,
        type=MOVEMENT_SALE,
        quantity_delta=-amount,
        quantity_after=product.stock_qty,
        invoice_id=invoice_id,
        note=note,
        actor_user_id=actor_user_id,
    )
    db.session.add(movement)
    return movement


def adjust_quantity(
    product_id: int,
    delta: int,
    *,
    note: str | None = None,
    actor_user_id: int | None = None,
    attempts: int = 3,
    backoff_base: float = 0.1,
) -> Product:
    """
    Administrative stock adjustment in its own unit of work.

    A delta that would take stock below zero raises InsufficientStock and
    nothing is written.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidInput("delta must be an integer", details={"delta": delta})
    if delta == 0:
        raise InvalidInput("delta must be non-zero", details={"delta": delta})

    def _op():
        begin_write_transaction()
        product = lock_products([product_id]).get(product_id)
        if product is None:
            raise ProductNotFound(product_id)

        new_qty = product.stock_qty + delta
        if new_qty < 0:
            raise InsufficientStock(
                product.id, product.name, available=product.stock_qty, requested=-delta
            )

        product.stock_qty = new_qty
        db.session.add(StockMovement(
            store_id=product.store_id,
            product_id=product.id,
            type=MOVEMENT_ADJUST,
            quantity_delta=delta,
            quantity_after=new_qty,
            note=note,
            actor_user_id=actor_user_id,
        ))
        db.session.commit()
        logger.info("Stock adjusted product_id=%s delta=%+d now=%d", product.id, delta, new_qty)
        return product

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except (InvalidInput, ProductNotFound, InsufficientStock):
        db.session.rollback()
        raise


def list_movements(product_id: int, limit: int = 100) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )


def low_stock_products(store_id: int) -> list[Product]:
    """Products at or below their category's low_stock_threshold."""
    return (
        db.session.query(Product)
        .join(Category, Product.category_id == Category.id)
        .filter(
            Product.store_id == store_id,
            Product.is_active.is_(True),
            Product.stock_qty <= Category.low_stock_threshold,
        )
        .order_by(Product.stock_qty.asc(), Product.name.asc())
        .all()
    )
