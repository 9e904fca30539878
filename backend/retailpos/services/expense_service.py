from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Expense

EXPENSE_MUTABLE_FIELDS = {"title", "amount_cents", "expense_date", "category", "notes"}


def list_expenses(store_id: int, start: date | None = None, end: date | None = None) -> list[Expense]:
    """Expenses for a store, optionally within [start, end] inclusive."""
    query = db.session.query(Expense).filter(Expense.store_id == store_id)
    if start is not None:
        query = query.filter(Expense.expense_date >= start)
    if end is not None:
        query = query.filter(Expense.expense_date <= end)
    return query.order_by(Expense.expense_date.desc(), Expense.id.desc()).all()


def create_expense(store_id: int, patch: dict) -> Expense:
    expense = Expense(store_id=store_id)
    for k, v in patch.items():
        if k in EXPENSE_MUTABLE_FIELDS:
            setattr(expense, k, v)
    db.session.add(expense)
    db.session.commit()
    return expense


def delete_expense(expense: Expense) -> None:
    db.session.delete(expense)
    db.session.commit()
