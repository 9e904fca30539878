from __future__ import annotations

import uuid

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow

PAYMENT_METHODS = ("CASH", "CARD", "UPI", "QR")


def _new_invoice_id() -> str:
    return str(uuid.uuid4())


def cents_to_number(cents: int | None):
    """Render integer cents as a two-decimal JSON number (None passes through)."""
    if cents is None:
        return None
    return round(cents / 100, 2)


def bps_to_number(bps: int | None):
    if bps is None:
        return None
    return round(bps / 100, 2)


class Invoice(db.Model):
    """
    Issued invoice. Immutable after creation; append-only.

    Created in the same unit of work as the stock decrements for its lines
    (services/invoice_service.py). Totals are integer sums of the frozen
    per-line components:

        grand_total_cents == subtotal_cents - discount_total_cents + tax_total_cents

    invoice_number is globally unique (uq_invoices_invoice_number); a
    collision is regenerated by the issuing service.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        db.Index("ix_invoices_store_date", "store_id", "date"),
        db.CheckConstraint(
            "grand_total_cents = subtotal_cents - discount_total_cents + tax_total_cents",
            name="ck_invoices_grand_total",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_invoice_id)
    invoice_number = db.Column(db.String(50), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_total_cents = db.Column(db.Integer, nullable=False)
    discount_total_cents = db.Column(db.Integer, nullable=False)
    grand_total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(8), nullable=False, default="CASH")
    synced = db.Column(db.Boolean, nullable=False, default=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("invoices", lazy=True))
    customer = db.relationship("Customer")
    items = db.relationship(
        "InvoiceLine",
        back_populates="invoice",
        order_by="InvoiceLine.line_number",
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number!r} store_id={self.store_id}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "store_id": self.store_id,
            "customer_id": self.customer_id,
            "date": to_utc_z(self.date),
            "subtotal_cents": self.subtotal_cents,
            "tax_total_cents": self.tax_total_cents,
            "discount_total_cents": self.discount_total_cents,
            "grand_total_cents": self.grand_total_cents,
            "subtotal": cents_to_number(self.subtotal_cents),
            "tax_total": cents_to_number(self.tax_total_cents),
            "discount_total": cents_to_number(self.discount_total_cents),
            "grand_total": cents_to_number(self.grand_total_cents),
            "payment_method": self.payment_method,
            "synced": self.synced,
            "created_by_user_id": self.created_by_user_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InvoiceLine(db.Model):
    """
    Frozen copy of a cart line.

    product_name, unit_price_cents and both percentages are snapshots taken
    at checkout; the amounts are derived only from those snapshots. Later
    catalog edits never touch these rows. product_id is nulled if the
    product is deleted.
    """
    __tablename__ = "invoice_lines"
    __table_args__ = (
        db.UniqueConstraint("invoice_id", "line_number", name="uq_invoice_lines_invoice_line"),
        db.CheckConstraint("quantity >= 1", name="ck_invoice_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.String(36), db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    applied_tax_bps = db.Column(db.Integer, nullable=False, default=0)
    applied_discount_bps = db.Column(db.Integer, nullable=False, default=0)

    discount_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invoice = db.relationship("Invoice", back_populates="items")

    @property
    def line_subtotal_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "price": cents_to_number(self.unit_price_cents),
            "applied_tax_bps": self.applied_tax_bps,
            "applied_discount_bps": self.applied_discount_bps,
            "applied_tax_percent": bps_to_number(self.applied_tax_bps),
            "applied_discount_percent": bps_to_number(self.applied_discount_bps),
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "line_total_cents": self.line_total_cents,
            "line_total": cents_to_number(self.line_total_cents),
        }
