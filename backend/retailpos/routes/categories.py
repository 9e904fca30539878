# Overview: Flask API routes for product categories.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Category
from ..services import catalog_service
from ..services.tenant_service import TenantAccessError, get_in_scope, resolve_store_id
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_category,
    validate_payload,
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "default_gst_bps", "default_discount_bps", "low_stock_threshold"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories_route():
    try:
        store_id = resolve_store_id(request.args.get("store_id", type=int))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code
    return jsonify([c.to_dict() for c in catalog_service.list_categories(store_id)]), 200


@categories_bp.post("")
@require_auth
@require_role("STORE_ADMIN")
def create_category_route():
    payload = dict(request.get_json(silent=True) or {})
    try:
        store_id = resolve_store_id(payload.pop("store_id", None))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        enforce_rules_category(patch)
        category = catalog_service.create_category(store_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return category.to_dict(), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_role("STORE_ADMIN")
def update_category_route(category_id: int):
    category = get_in_scope(Category, category_id)
    if category is None:
        return {"error": "Category not found"}, 404

    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        enforce_rules_category(patch)
        category = catalog_service.update_category(category, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return category.to_dict(), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role("STORE_ADMIN")
def delete_category_route(category_id: int):
    category = get_in_scope(Category, category_id)
    if category is None:
        return {"error": "Category not found"}, 404
    try:
        catalog_service.delete_category(category)
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"ok": True}, 200
