"""
Customer lookup for the register: store-scoped CRUD and search by mobile/name.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Customer
from ..validation import ConflictError

CUSTOMER_MUTABLE_FIELDS = {"name", "mobile", "email", "gender", "place", "address", "notes"}
SEARCH_LIMIT = 10


def list_customers(store_id: int) -> list[Customer]:
    return (
        db.session.query(Customer)
        .filter_by(store_id=store_id)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .all()
    )


def search_customers(store_id: int, term: str, limit: int = SEARCH_LIMIT) -> list[Customer]:
    """Substring match on mobile or name, newest first."""
    pattern = f"%{term.strip()}%"
    return (
        db.session.query(Customer)
        .filter(
            Customer.store_id == store_id,
            db.or_(Customer.mobile.like(pattern), Customer.name.ilike(pattern)),
        )
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .limit(limit)
        .all()
    )


def _ensure_mobile_free(store_id: int, mobile: str | None, exclude_id: int | None = None) -> None:
    if not mobile:
        return
    query = db.session.query(Customer).filter_by(store_id=store_id, mobile=mobile)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    existing = query.first()
    if existing:
        err = ConflictError("Customer with this mobile number already exists")
        err.existing_customer_id = existing.id
        raise err


def create_customer(store_id: int, patch: dict) -> Customer:
    _ensure_mobile_free(store_id, patch.get("mobile"))
    customer = Customer(store_id=store_id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer: Customer, patch: dict) -> Customer:
    if "mobile" in patch:
        _ensure_mobile_free(customer.store_id, patch["mobile"], exclude_id=customer.id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.commit()
    return customer


def delete_customer(customer: Customer) -> None:
    # Invoices keep their totals; only the customer link goes away
    from ..models import Invoice

    db.session.query(Invoice).filter_by(customer_id=customer.id).update(
        {Invoice.customer_id: None}, synchronize_session=False
    )
    db.session.delete(customer)
    db.session.commit()
