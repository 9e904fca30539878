# Overview: Invoice issuance; the only path from a cart to a persisted invoice and stock decrement.

"""
Invoice Issuance

issue_invoice() turns checkout lines into an Invoice inside one unit of work:

1. Validate input (InvalidInput, before any transaction).
2. Price every line from its own frozen values.
3. BEGIN (IMMEDIATE on SQLite); lock every referenced product row in id order.
4. Check each product exists in the store (ProductNotFound) and that stock
   covers the cumulative quantity requested for it (InsufficientStock).
5. Insert the header (unique invoice_number), the frozen lines, and the
   stock decrements with their movements.
6. COMMIT. Any failure rolls the whole unit back.

Lifecycle of one issuance: PENDING -> COMMITTED | ABORTED. Nothing is
visible to other transactions before COMMIT.

Retry policy:
- InvalidInput, ProductNotFound, InsufficientStock: raised at once.
- DuplicateInvoiceNumber: regenerate the number and retry.
- OperationalError / StaleDataError: retry with exponential backoff.
- Exhausted retries or other storage errors: IssuanceFailed.
- Anything else: the session is rolled back and the error propagates.
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Sequence

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload

from ..errors import (
    DuplicateInvoiceNumber,
    InsufficientStock,
    InvalidInput,
    IssuanceFailed,
    ProductNotFound,
)
from ..extensions import db
from ..models import Customer, Invoice, InvoiceLine, PAYMENT_METHODS, Store
from ..validation import MAX_PRICE_CENTS
from retailpos.time_utils import epoch_millis, parse_iso_datetime, utcnow
from .concurrency import TRANSIENT_ERRORS, begin_write_transaction, run_with_retry
from .pricing_service import (
    MAX_PERCENT_BPS,
    LinePricing,
    Totals,
    percent_to_bps,
    price_line,
    sum_totals,
    to_cents,
)
from . import stock_service

logger = logging.getLogger(__name__)

INVOICE_NUMBER_PREFIX = "INV"
INVOICE_SUFFIX_LENGTH = 9
_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase
MAX_LINE_QUANTITY = 100_000
# Largest value a BIGINT column (and SQLite INTEGER) can hold
MAX_DB_INT = 2**63 - 1


@dataclass(frozen=True)
class CheckoutLine:
    """One requested line, frozen at the moment the cashier checked out."""
    product_id: int
    name: str | None
    quantity: int
    unit_price_cents: int
    applied_tax_bps: int = 0
    applied_discount_bps: int = 0
    client_line_total_cents: int | None = None


@dataclass(frozen=True)
class CheckoutRequest:
    store_id: int
    lines: tuple[CheckoutLine, ...]
    payment_method: str = "CASH"
    customer_id: int | None = None
    date: datetime | None = None
    client_totals: dict | None = None


def generate_invoice_number(now: datetime | None = None) -> str:
    """INV-<epoch millis>-<9 random base36 chars>, e.g. INV-1760745600000-4K2QX9ZPA."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(INVOICE_SUFFIX_LENGTH))
    return f"{INVOICE_NUMBER_PREFIX}-{epoch_millis(now)}-{suffix}"


# --- Input parsing / validation --------------------------------------------


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _parse_int(name: str, value: Any) -> int:
    parsed = None
    if isinstance(value, int) and not isinstance(value, bool):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            parsed = None
    if parsed is None:
        raise InvalidInput(f"{name} must be an integer", details={"field": name, "value": value})
    if abs(parsed) > MAX_DB_INT:
        raise InvalidInput(f"{name} is out of range", details={"field": name})
    return parsed


def parse_checkout_payload(payload: Any) -> CheckoutRequest:
    """
    Parse the checkout endpoint body.

    Shape: {storeId, items: [{productId, name, quantity, price,
    appliedTaxPercent, appliedDiscountPercent, lineTotal}], subtotal,
    taxTotal, discountTotal, grandTotal, paymentMethod, customerId?, date?}
    snake_case keys are accepted as well.
    """
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid JSON payload")

    store_id = _pick(payload, "storeId", "store_id")
    items = _pick(payload, "items", default=[])
    if store_id is None or not items:
        raise InvalidInput("Missing required fields", details={"required": ["storeId", "items"]})
    if not isinstance(items, list):
        raise InvalidInput("items must be a list")

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidInput("Each item must be an object", details={"index": index})
        product_id = _pick(item, "productId", "product_id")
        if product_id is None:
            raise InvalidInput("productId is required", details={"index": index})
        price = _pick(item, "price", "unitPrice", "unit_price")
        if price is None:
            raise InvalidInput("price is required", details={"index": index})
        line_total = _pick(item, "lineTotal", "line_total")
        lines.append(CheckoutLine(
            product_id=_parse_int("productId", product_id),
            name=_pick(item, "name"),
            quantity=_parse_int("quantity", _pick(item, "quantity")),
            unit_price_cents=to_cents(price, "price"),
            applied_tax_bps=percent_to_bps(_pick(item, "appliedTaxPercent", "applied_tax_percent", default=0), "appliedTaxPercent"),
            applied_discount_bps=percent_to_bps(_pick(item, "appliedDiscountPercent", "applied_discount_percent", default=0), "appliedDiscountPercent"),
            client_line_total_cents=to_cents(line_total, "lineTotal") if line_total is not None else None,
        ))

    client_totals = {}
    for key, field in (
        ("subtotal", "subtotal_cents"),
        ("taxTotal", "tax_total_cents"),
        ("discountTotal", "discount_total_cents"),
        ("grandTotal", "grand_total_cents"),
    ):
        value = payload.get(key)
        if value is not None:
            client_totals[field] = to_cents(value, key)

    raw_date = _pick(payload, "date")
    date = None
    if raw_date is not None:
        try:
            date = parse_iso_datetime(str(raw_date))
        except ValueError:
            raise InvalidInput("date must be an ISO-8601 datetime", details={"field": "date"})

    customer_id = _pick(payload, "customerId", "customer_id")

    return CheckoutRequest(
        store_id=_parse_int("storeId", store_id),
        lines=tuple(lines),
        payment_method=str(_pick(payload, "paymentMethod", "payment_method", default="CASH")).upper(),
        customer_id=_parse_int("customerId", customer_id) if customer_id is not None else None,
        date=date,
        client_totals=client_totals or None,
    )


def _validate_lines(lines: Sequence[CheckoutLine]) -> None:
    if not lines:
        raise InvalidInput("Cannot issue an invoice with no items")
    for index, line in enumerate(lines):
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity < 1:
            raise InvalidInput(
                "quantity must be a positive integer",
                details={"index": index, "product_id": line.product_id, "quantity": line.quantity},
            )
        if line.quantity > MAX_LINE_QUANTITY:
            raise InvalidInput(
                f"quantity cannot exceed {MAX_LINE_QUANTITY}",
                details={"index": index, "product_id": line.product_id, "quantity": line.quantity},
            )
        if line.unit_price_cents < 0:
            raise InvalidInput("price must be >= 0", details={"index": index, "product_id": line.product_id})
        if line.unit_price_cents > MAX_PRICE_CENTS:
            raise InvalidInput(
                f"price cannot exceed {MAX_PRICE_CENTS / 100:,.2f}",
                details={"index": index, "product_id": line.product_id},
            )
        for field in ("applied_tax_bps", "applied_discount_bps"):
            value = getattr(line, field)
            if value < 0 or value > MAX_PERCENT_BPS:
                raise InvalidInput(
                    "percentages must be between 0 and 100",
                    details={"index": index, "product_id": line.product_id, "field": field},
                )


def requested_quantities(lines: Iterable[CheckoutLine]) -> dict[int, int]:
    """Cumulative quantity per product; a product listed twice is checked once for the sum."""
    totals: dict[int, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


def _warn_on_client_mismatch(
    lines: Sequence[CheckoutLine],
    priced: Sequence[LinePricing],
    totals: Totals,
    client_totals: dict | None,
) -> None:
    for line, pricing in zip(lines, priced):
        if line.client_line_total_cents is None:
            continue
        if abs(line.client_line_total_cents - pricing.line_total_cents) > 1:
            logger.warning(
                "Client line total differs product_id=%s client=%s server=%s",
                line.product_id, line.client_line_total_cents, pricing.line_total_cents,
            )
    if not client_totals:
        return
    server = totals.to_dict()
    tolerance = max(1, len(lines))
    for field, client_value in client_totals.items():
        if abs(client_value - server[field]) > tolerance:
            logger.warning("Client %s differs client=%s server=%s", field, client_value, server[field])


# --- Unit of work ------------------------------------------------------------


def _issue_once(
    *,
    store_id: int,
    lines: Sequence[CheckoutLine],
    priced: Sequence[LinePricing],
    totals: Totals,
    payment_method: str,
    customer_id: int | None,
    date: datetime | None,
    actor_user_id: int | None,
    invoice_number: str,
) -> Invoice:
    begin_write_transaction()

    if db.session.get(Store, store_id) is None:
        raise InvalidInput("Store not found", details={"store_id": store_id})

    if customer_id is not None:
        customer = db.session.get(Customer, customer_id)
        if customer is None or customer.store_id != store_id:
            raise InvalidInput("Customer not found", details={"customer_id": customer_id})

    wanted = requested_quantities(lines)
    products = stock_service.lock_products(wanted.keys())

    for product_id, quantity in wanted.items():
        product = products.get(product_id)
        if product is None or product.store_id != store_id:
            raise ProductNotFound(product_id)
        if product.stock_qty < quantity:
            raise InsufficientStock(product_id, product.name, available=product.stock_qty, requested=quantity)

    invoice = Invoice(
        invoice_number=invoice_number,
        store_id=store_id,
        customer_id=customer_id,
        date=date or utcnow(),
        subtotal_cents=totals.subtotal_cents,
        tax_total_cents=totals.tax_total_cents,
        discount_total_cents=totals.discount_total_cents,
        grand_total_cents=totals.grand_total_cents,
        payment_method=payment_method,
        synced=True,
        created_by_user_id=actor_user_id,
    )
    db.session.add(invoice)
    try:
        db.session.flush()
    except IntegrityError:
        raise DuplicateInvoiceNumber(invoice_number)

    for number, (line, pricing) in enumerate(zip(lines, priced), start=1):
        db.session.add(InvoiceLine(
            invoice_id=invoice.id,
            line_number=number,
            product_id=line.product_id,
            product_name=line.name or products[line.product_id].name,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            applied_tax_bps=line.applied_tax_bps,
            applied_discount_bps=line.applied_discount_bps,
            discount_cents=pricing.discount_cents,
            tax_cents=pricing.tax_cents,
            line_total_cents=pricing.line_total_cents,
        ))

    for product_id, quantity in wanted.items():
        stock_service.decrement_quantity(
            products[product_id],
            quantity,
            invoice_id=invoice.id,
            note=f"Invoice {invoice_number}",
            actor_user_id=actor_user_id,
        )

    db.session.commit()
    return invoice


def issue_invoice(
    store_id: int,
    lines: Sequence[CheckoutLine],
    payment_method: str = "CASH",
    *,
    customer_id: int | None = None,
    date: datetime | None = None,
    actor_user_id: int | None = None,
    client_totals: dict | None = None,
    number_factory: Callable[[], str] = generate_invoice_number,
    max_attempts: int | None = None,
    backoff_base: float | None = None,
) -> Invoice:
    """
    Issue an invoice and decrement stock atomically.

    Returns the committed Invoice. Raises InvalidInput, ProductNotFound or
    InsufficientStock (fix the cart and resubmit) or IssuanceFailed (try
    again later). On any error no invoice row and no stock change persist.
    """
    if store_id is None:
        raise InvalidInput("storeId is required")
    lines = tuple(lines)
    _validate_lines(lines)
    payment_method = (payment_method or "CASH").upper()
    if payment_method not in PAYMENT_METHODS:
        raise InvalidInput(
            f"paymentMethod must be one of {', '.join(PAYMENT_METHODS)}",
            details={"payment_method": payment_method},
        )

    priced = [
        price_line(line.unit_price_cents, line.quantity, line.applied_discount_bps, line.applied_tax_bps)
        for line in lines
    ]
    totals = sum_totals(priced)
    _warn_on_client_mismatch(lines, priced, totals, client_totals)

    config = current_app.config
    if max_attempts is None:
        max_attempts = config.get("ISSUANCE_MAX_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = config.get("ISSUANCE_BACKOFF_BASE", 0.1)

    def _attempt():
        return _issue_once(
            store_id=store_id,
            lines=lines,
            priced=priced,
            totals=totals,
            payment_method=payment_method,
            customer_id=customer_id,
            date=date,
            actor_user_id=actor_user_id,
            invoice_number=number_factory(),
        )

    try:
        invoice = run_with_retry(
            _attempt,
            attempts=max_attempts,
            backoff_base=backoff_base,
            retry_on=TRANSIENT_ERRORS + (DuplicateInvoiceNumber,),
        )
    except (InvalidInput, ProductNotFound, InsufficientStock) as exc:
        db.session.rollback()
        logger.info("Invoice issuance aborted store_id=%s: %s", store_id, exc)
        raise
    except DuplicateInvoiceNumber as exc:
        logger.error("Invoice number collisions exhausted %d attempts", max_attempts)
        raise IssuanceFailed(
            "Could not allocate a unique invoice number",
            details={"attempts": max_attempts, "last_number": exc.invoice_number},
        ) from exc
    except TRANSIENT_ERRORS as exc:
        logger.error("Invoice issuance conflicted %d times store_id=%s", max_attempts, store_id)
        raise IssuanceFailed(
            "Invoice could not be issued, please retry",
            details={"attempts": max_attempts, "reason": type(exc).__name__},
        ) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Invoice issuance failed store_id=%s", store_id)
        raise IssuanceFailed(
            "Invoice could not be issued, please retry",
            details={"reason": type(exc).__name__},
        ) from exc
    except Exception:
        db.session.rollback()
        logger.exception("Invoice issuance aborted store_id=%s", store_id)
        raise

    logger.info(
        "Invoice committed number=%s store_id=%s grand_total_cents=%s",
        invoice.invoice_number, invoice.store_id, invoice.grand_total_cents,
    )
    return invoice


def issue_from_request(request: CheckoutRequest, actor_user_id: int | None = None) -> Invoice:
    return issue_invoice(
        request.store_id,
        request.lines,
        request.payment_method,
        customer_id=request.customer_id,
        date=request.date,
        actor_user_id=actor_user_id,
        client_totals=request.client_totals,
    )


def checkout(cart, payment_method: str = "CASH", **kwargs) -> Invoice:
    """Issue an invoice for a Cart; the cart is cleared only on success."""
    if cart.is_empty:
        raise InvalidInput("Cart is empty")
    invoice = issue_invoice(cart.store_id, cart.to_checkout_lines(), payment_method, **kwargs)
    cart.clear()
    return invoice


def list_invoices(store_id: int | None = None, limit: int | None = None) -> list[Invoice]:
    """Newest first; lines are loaded with one extra query for the whole page."""
    query = db.session.query(Invoice).options(selectinload(Invoice.items))
    if store_id is not None:
        query = query.filter(Invoice.store_id == store_id)
    query = query.order_by(Invoice.date.desc(), Invoice.created_at.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def get_invoice(invoice_id: str) -> Invoice | None:
    return (
        db.session.query(Invoice)
        .options(selectinload(Invoice.items))
        .filter(Invoice.id == invoice_id)
        .first()
    )
