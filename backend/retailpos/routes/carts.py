# Overview: Server-side cart pricing preview.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..errors import PosError
from ..services.catalog_service import build_cart
from ..services.tenant_service import TenantAccessError, require_store_access

carts_bp = Blueprint("carts", __name__, url_prefix="/api/carts")


@carts_bp.post("/price")
@require_auth
def price_cart_route():
    """
    Price a cart from catalog defaults without reserving stock.

    Body: {store_id?, items: [{product_id, quantity?, discount_percent?}]}
    """
    payload = request.get_json(silent=True) or {}
    try:
        store = require_store_access(payload.get("store_id") or g.current_user.store_id)
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code

    try:
        cart = build_cart(store, payload.get("items"))
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to price cart")
        return {"error": "Internal server error"}, 500

    return cart.to_dict(), 200
