# Overview: Flask API routes for products and their stock; parses input and returns JSON responses.

"""
Product routes.

Stock is never written through the product payload. Quantity changes go
through PATCH /api/products/<id>/stock (Stock Ledger adjust_quantity) or
invoice issuance.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import PosError
from ..models import Product
from ..services import catalog_service, stock_service
from ..services.tenant_service import TenantAccessError, get_in_scope, resolve_store_id
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "category_id", "name", "sku", "price_cents", "cost_price_cents",
        "stock_qty", "tax_override_bps", "is_active",
    },
    required_on_create={"category_id", "name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query params:
    - store_id: int (optional, defaults to the caller's store)
    - low_stock: 1 to list only products at or below their category threshold
    """
    try:
        store_id = resolve_store_id(request.args.get("store_id", type=int))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code

    if request.args.get("low_stock") in ("1", "true"):
        products = stock_service.low_stock_products(store_id)
    else:
        products = catalog_service.list_products(store_id)
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = get_in_scope(Product, product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict(), 200


@products_bp.post("")
@require_auth
@require_role("STORE_ADMIN")
def create_product_route():
    payload = dict(request.get_json(silent=True) or {})
    try:
        store_id = resolve_store_id(payload.pop("store_id", None))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = catalog_service.create_product(store_id, patch, actor_user_id=g.current_user.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return product.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("STORE_ADMIN")
def update_product_route(product_id: int):
    product = get_in_scope(Product, product_id)
    if product is None:
        return {"error": "Product not found"}, 404

    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = catalog_service.update_product(product, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return product.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("STORE_ADMIN")
def delete_product_route(product_id: int):
    product = get_in_scope(Product, product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    catalog_service.delete_product(product)
    return {"ok": True}, 200


@products_bp.patch("/<int:product_id>/stock")
@require_auth
@require_role("STORE_ADMIN")
def adjust_stock_route(product_id: int):
    """Body: {delta: int, note?: str}. Negative deltas may not take stock below zero."""
    if get_in_scope(Product, product_id) is None:
        return {"error": "Product not found"}, 404

    payload = request.get_json(silent=True) or {}
    config = current_app.config
    try:
        product = stock_service.adjust_quantity(
            product_id,
            payload.get("delta"),
            note=payload.get("note"),
            actor_user_id=g.current_user.id,
            attempts=config["ISSUANCE_MAX_ATTEMPTS"],
            backoff_base=config["ISSUANCE_BACKOFF_BASE"],
        )
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Stock adjustment failed, please retry", "retryable": True}, 500

    return product.to_dict(), 200


@products_bp.get("/<int:product_id>/movements")
@require_auth
def list_movements_route(product_id: int):
    if get_in_scope(Product, product_id) is None:
        return {"error": "Product not found"}, 404
    limit = request.args.get("limit", default=100, type=int)
    movements = stock_service.list_movements(product_id, limit=max(1, min(limit, 500)))
    return jsonify([m.to_dict() for m in movements]), 200
