# Overview: Flask API routes for store customers.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Customer
from ..services import customer_service
from ..services.tenant_service import TenantAccessError, get_in_scope, resolve_store_id
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_customer,
    validate_payload,
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "mobile", "email", "gender", "place", "address", "notes"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _conflict_response(e: ConflictError):
    body = {"error": str(e)}
    existing = getattr(e, "existing_customer_id", None)
    if existing is not None:
        body["existing_customer_id"] = existing
    return body, 409


@customers_bp.get("")
@require_auth
def list_customers_route():
    try:
        store_id = resolve_store_id(request.args.get("store_id", type=int))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code
    return jsonify([c.to_dict() for c in customer_service.list_customers(store_id)]), 200


@customers_bp.get("/search")
@require_auth
def search_customers_route():
    """?q=<mobile or name fragment>; at most 10 results."""
    term = (request.args.get("q") or "").strip()
    if not term:
        return jsonify([]), 200
    try:
        store_id = resolve_store_id(request.args.get("store_id", type=int))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code
    return jsonify([c.to_dict() for c in customer_service.search_customers(store_id, term)]), 200


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    customer = get_in_scope(Customer, customer_id)
    if customer is None:
        return {"error": "Customer not found"}, 404
    return customer.to_dict(), 200


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = dict(request.get_json(silent=True) or {})
    try:
        store_id = resolve_store_id(payload.pop("store_id", None))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
        customer = customer_service.create_customer(store_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return _conflict_response(e)

    return customer.to_dict(), 201


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    customer = get_in_scope(Customer, customer_id)
    if customer is None:
        return {"error": "Customer not found"}, 404

    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch)
        customer = customer_service.update_customer(customer, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return _conflict_response(e)

    return customer.to_dict(), 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_role("STORE_ADMIN")
def delete_customer_route(customer_id: int):
    customer = get_in_scope(Customer, customer_id)
    if customer is None:
        return {"error": "Customer not found"}, 404
    customer_service.delete_customer(customer)
    return {"ok": True}, 200
