# Overview: Business error taxonomy shared by cart, stock and invoice services.

"""
Checkout error taxonomy.

Every error carries a message, a details dict for the client and a
`retryable` flag:

- retryable=False: "fix your cart and resubmit" (InvalidInput, OutOfStock,
  ProductNotFound, InsufficientStock). Deterministic, never retried.
- retryable=True: "try again later" (DuplicateInvoiceNumber internally,
  IssuanceFailed at the boundary).

An issuance that raises any of these leaves no invoice row and no stock
mutation behind.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for checkout errors surfaced to callers."""

    status_code = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": type(self).__name__,
            "details": self.details,
            "retryable": self.retryable,
        }


class InvalidInput(PosError):
    """Malformed request; rejected before any transaction begins."""


class OutOfStock(PosError):
    """Cart-side availability check against the last-known stock snapshot."""

    def __init__(self, product_id, name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {name}: only {available} available",
            details={
                "product_id": product_id,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class ProductNotFound(PosError):
    def __init__(self, product_id):
        super().__init__(
            f"Product not found: {product_id}",
            details={"product_id": product_id},
        )
        self.product_id = product_id


class InsufficientStock(PosError):
    def __init__(self, product_id, name: str | None, available: int, requested: int):
        label = name or product_id
        super().__init__(
            f"Insufficient stock for {label}: available {available}, requested {requested}",
            details={
                "product_id": product_id,
                "name": name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class DuplicateInvoiceNumber(PosError):
    retryable = True

    def __init__(self, invoice_number: str):
        super().__init__(
            f"Invoice number already exists: {invoice_number}",
            details={"invoice_number": invoice_number},
        )
        self.invoice_number = invoice_number


class IssuanceFailed(PosError):
    """Transient failure that exhausted internal retries."""

    status_code = 500
    retryable = True
