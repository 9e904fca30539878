from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z

ASSET_TYPES = ("EQUIPMENT", "PROPERTY", "INVENTORY", "VEHICLE", "OTHER")


class Partnership(db.Model):
    """
    Equity partner of a store.

    Ownership is not stored: it is blended from cash and contributed assets
    across all partners of the store each time it is read (see
    services/partnership_service.py).
    """
    __tablename__ = "partnerships"
    __table_args__ = (
        db.CheckConstraint("cash_investment_cents > 0", name="ck_partnerships_cash_positive"),
        db.Index("ix_partnerships_store_active", "store_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    partner_name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(100), nullable=True)
    phone_number = db.Column(db.String(20), nullable=True)
    cash_investment_cents = db.Column(db.Integer, nullable=False)
    investment_date = db.Column(db.Date, nullable=False)
    address = db.Column(db.Text, nullable=True)
    bank_details = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    assets = db.relationship(
        "PartnershipAsset",
        back_populates="partnership",
        cascade="all, delete-orphan",
        order_by=lambda: [PartnershipAsset.contributed_date.desc(), PartnershipAsset.id.desc()],
    )

    @property
    def asset_value_cents(self) -> int:
        return sum(a.asset_value_cents for a in self.assets)

    @property
    def contribution_cents(self) -> int:
        return self.cash_investment_cents + self.asset_value_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "partner_name": self.partner_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "cash_investment_cents": self.cash_investment_cents,
            "investment_date": self.investment_date.isoformat() if self.investment_date else None,
            "address": self.address,
            "bank_details": self.bank_details,
            "notes": self.notes,
            "is_active": self.is_active,
            "assets": [a.to_dict() for a in self.assets],
            "contribution": {
                "cash_cents": self.cash_investment_cents,
                "assets_cents": self.asset_value_cents,
                "total_cents": self.contribution_cents,
            },
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PartnershipAsset(db.Model):
    """Non-cash contribution (equipment, property, ...) valued in cents."""
    __tablename__ = "partnership_assets"
    __table_args__ = (
        db.CheckConstraint("asset_value_cents > 0", name="ck_partnership_assets_value_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    partnership_id = db.Column(
        db.Integer, db.ForeignKey("partnerships.id", ondelete="CASCADE"), nullable=False, index=True
    )
    asset_name = db.Column(db.String(200), nullable=False)
    asset_description = db.Column(db.Text, nullable=True)
    asset_value_cents = db.Column(db.Integer, nullable=False)
    asset_type = db.Column(db.String(20), nullable=False, default="OTHER", index=True)
    contributed_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    partnership = db.relationship("Partnership", back_populates="assets")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "partnership_id": self.partnership_id,
            "asset_name": self.asset_name,
            "asset_description": self.asset_description,
            "asset_value_cents": self.asset_value_cents,
            "asset_type": self.asset_type,
            "contributed_date": self.contributed_date.isoformat() if self.contributed_date else None,
            "notes": self.notes,
        }
