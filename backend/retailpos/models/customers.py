from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z

GENDERS = ("MALE", "FEMALE", "OTHER", "PREFER_NOT_TO_SAY")


class Customer(db.Model):
    """
    Store customer, optionally attached to invoices.

    MULTI-TENANT: scoped to a store; mobile numbers are unique within a store.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("store_id", "mobile", name="uq_customers_store_mobile"),
        db.Index("ix_customers_store_name", "store_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(150), nullable=False)
    mobile = db.Column(db.String(20), nullable=True)
    email = db.Column(db.String(100), nullable=True)
    gender = db.Column(db.String(20), nullable=True)
    place = db.Column(db.String(100), nullable=True)
    address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    store = db.relationship("Store", backref=db.backref("customers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "mobile": self.mobile,
            "email": self.email,
            "gender": self.gender,
            "place": self.place,
            "address": self.address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
