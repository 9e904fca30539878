from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z


class Expense(db.Model):
    """Store-level expense entry."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_store_date", "store_id", "expense_date"),
        db.CheckConstraint("amount_cents >= 0", name="ck_expenses_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    expense_date = db.Column(db.Date, nullable=False)
    category = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "title": self.title,
            "amount_cents": self.amount_cents,
            "expense_date": self.expense_date.isoformat() if self.expense_date else None,
            "category": self.category,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
