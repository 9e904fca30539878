from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z


class Category(db.Model):
    """
    Product category; supplies the default tax and discount for products
    that do not override them.

    Percentages are basis points (1800 = 18.00%).
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("store_id", "name", name="uq_categories_store_name"),
        db.CheckConstraint(
            "default_gst_bps >= 0 AND default_gst_bps <= 10000",
            name="ck_categories_gst_range",
        ),
        db.CheckConstraint(
            "default_discount_bps >= 0 AND default_discount_bps <= 10000",
            name="ck_categories_discount_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)

    default_gst_bps = db.Column(db.Integer, nullable=False, default=0)
    default_discount_bps = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("categories", lazy=True))

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "default_gst_bps": self.default_gst_bps,
            "default_discount_bps": self.default_discount_bps,
            "low_stock_threshold": self.low_stock_threshold,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data and the authoritative quantity on hand.

    STOCK INVARIANT: stock_qty >= 0 at all times.
    - Mutated only by invoice issuance (decrement) and administrative
      adjustment, both through services/stock_service.py.
    - Enforced by a row lock + version check in the service layer and by
      the ck_products_stock_non_negative CHECK constraint in storage.

    SKUs are unique within a store when present.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("store_id", "sku", name="uq_products_store_sku"),
        db.Index("ix_products_store_name", "store_id", "name"),
        db.CheckConstraint("stock_qty >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint(
            "tax_override_bps IS NULL OR (tax_override_bps >= 0 AND tax_override_bps <= 10000)",
            name="ck_products_tax_override_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    name = db.Column(db.String(200), nullable=False)
    sku = db.Column(db.String(50), nullable=True, index=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock_qty = db.Column(db.Integer, nullable=False, default=0)

    # NULL means "use the category default"
    tax_override_bps = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("products", lazy=True))
    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "category_id": self.category_id,
            "name": self.name,
            "sku": self.sku,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "stock_qty": self.stock_qty,
            "tax_override_bps": self.tax_override_bps,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only audit trail for every stock_qty mutation.

    type:
    - SALE: decrement written in the same unit of work as the invoice
    - ADJUST: administrative correction (either sign)

    quantity_after records stock_qty as committed by the same transaction.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    invoice_id = db.Column(db.String(36), db.ForeignKey("invoices.id"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity_delta": self.quantity_delta,
            "quantity_after": self.quantity_after,
            "invoice_id": self.invoice_id,
            "note": self.note,
            "actor_user_id": self.actor_user_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
