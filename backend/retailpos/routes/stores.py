# Overview: Flask API routes for stores (tenants).

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Store
from ..services import catalog_service
from ..services.tenant_service import TenantAccessError, accessible_store_ids, require_store_access
from ..validation import ModelValidationPolicy, ValidationError, enforce_rules_store, validate_payload

STORE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "owner_name", "currency", "gst_number", "address",
        "is_active", "timezone", "global_discount_bps",
    },
    required_on_create={"name", "owner_name"},
)

stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("")
@require_auth
def list_stores_route():
    stores = catalog_service.list_stores(accessible_store_ids(g.current_user))
    return jsonify([s.to_dict() for s in stores]), 200


@stores_bp.post("")
@require_auth
@require_role("SUPER_ADMIN")
def create_store_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=False)
        enforce_rules_store(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    store = catalog_service.create_store(patch)
    return store.to_dict(), 201


@stores_bp.get("/<int:store_id>")
@require_auth
def get_store_route(store_id: int):
    try:
        store = require_store_access(store_id)
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code
    return store.to_dict(), 200


@stores_bp.put("/<int:store_id>")
@require_auth
@require_role("STORE_ADMIN")
def update_store_route(store_id: int):
    try:
        store = require_store_access(store_id)
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code

    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=True)
        enforce_rules_store(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    return catalog_service.update_store(store, patch).to_dict(), 200
