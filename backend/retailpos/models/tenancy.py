from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z

CURRENCIES = ("INR", "USD", "AED", "EUR")


class Store(db.Model):
    """
    A retail store; the tenant boundary.

    MULTI-TENANT: categories, products, invoices, customers and expenses all
    carry store_id. Non super-admin users only ever see their own store.

    global_discount_bps is a store-wide, limited-period discount. When it is
    non-zero it wins over the category default at cart add-time.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.Index("ix_stores_is_active", "is_active"),
        db.CheckConstraint(
            "global_discount_bps >= 0 AND global_discount_bps <= 10000",
            name="ck_stores_global_discount_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    owner_name = db.Column(db.String(100), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="INR")
    gst_number = db.Column(db.String(50), nullable=True)
    address = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    timezone = db.Column(db.String(64), nullable=False, default="Asia/Kolkata")

    # Basis points (e.g., 500 = 5.00%)
    global_discount_bps = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner_name": self.owner_name,
            "currency": self.currency,
            "gst_number": self.gst_number,
            "address": self.address,
            "is_active": self.is_active,
            "timezone": self.timezone,
            "global_discount_bps": self.global_discount_bps,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
