# Overview: Flask API routes for store expenses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Expense
from ..services import expense_service
from ..services.tenant_service import TenantAccessError, get_in_scope, resolve_store_id
from ..time_utils import parse_iso_date
from ..validation import ModelValidationPolicy, ValidationError, enforce_rules_expense, validate_payload

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"title", "amount_cents", "expense_date", "category", "notes"},
    required_on_create={"title", "amount_cents", "expense_date"},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_role("STORE_ADMIN")
def list_expenses_route():
    """Query params: store_id?, from?, to? (ISO dates, inclusive)."""
    try:
        store_id = resolve_store_id(request.args.get("store_id", type=int))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code

    try:
        start = parse_iso_date(request.args.get("from"))
        end = parse_iso_date(request.args.get("to"))
    except ValueError:
        return {"error": "from/to must be ISO-8601 dates"}, 400

    expenses = expense_service.list_expenses(store_id, start=start, end=end)
    return jsonify([e.to_dict() for e in expenses]), 200


@expenses_bp.post("")
@require_auth
@require_role("STORE_ADMIN")
def create_expense_route():
    payload = dict(request.get_json(silent=True) or {})
    try:
        store_id = resolve_store_id(payload.pop("store_id", None))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code

    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        enforce_rules_expense(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    return expense_service.create_expense(store_id, patch).to_dict(), 201


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_role("STORE_ADMIN")
def delete_expense_route(expense_id: int):
    expense = get_in_scope(Expense, expense_id)
    if expense is None:
        return {"error": "Expense not found"}, 404
    expense_service.delete_expense(expense)
    return {"ok": True}, 200
