# Overview: Flask API routes for store partners and their blended ownership.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Partnership, PartnershipAsset
from ..services import partnership_service
from ..services.tenant_service import TenantAccessError, get_in_scope, resolve_store_id
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_partnership,
    enforce_rules_partnership_asset,
    validate_payload,
)

PARTNERSHIP_POLICY = ModelValidationPolicy(
    writable_fields={
        "partner_name", "email", "phone_number", "cash_investment_cents",
        "investment_date", "address", "bank_details", "notes", "is_active",
    },
    required_on_create={"partner_name", "cash_investment_cents", "investment_date"},
)

ASSET_POLICY = ModelValidationPolicy(
    writable_fields={
        "asset_name", "asset_description", "asset_value_cents", "asset_type",
        "contributed_date", "notes",
    },
    required_on_create={"asset_name", "asset_value_cents"},
)

partnerships_bp = Blueprint("partnerships", __name__, url_prefix="/api/partnerships")


def _validated_assets(raw, field: str) -> list[dict]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError(f"{field} must be a list")
    assets = []
    for item in raw:
        patch = validate_payload(model=PartnershipAsset, payload=item, policy=ASSET_POLICY, partial=False)
        enforce_rules_partnership_asset(patch)
        assets.append(patch)
    return assets


@partnerships_bp.get("")
@require_auth
@require_role("STORE_ADMIN")
def list_partnerships_route():
    """Query params: store_id? Each entry carries ownership_bps / ownership_percent."""
    try:
        store_id = resolve_store_id(request.args.get("store_id", type=int))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code
    return jsonify(partnership_service.list_with_ownership(store_id)), 200


@partnerships_bp.get("/<int:partnership_id>")
@require_auth
@require_role("STORE_ADMIN")
def get_partnership_route(partnership_id: int):
    partnership = get_in_scope(Partnership, partnership_id)
    if partnership is None:
        return {"error": "Partnership not found"}, 404
    return partnership_service.get_with_ownership(partnership), 200


@partnerships_bp.post("")
@require_auth
@require_role("STORE_ADMIN")
def create_partnership_route():
    """
    Body: partner fields plus optional assets: [{asset_name, asset_value_cents,
    asset_type?, contributed_date?, asset_description?, notes?}].
    """
    payload = dict(request.get_json(silent=True) or {})
    try:
        store_id = resolve_store_id(payload.pop("store_id", None))
    except TenantAccessError as e:
        return {"error": str(e)}, e.status_code

    try:
        assets = _validated_assets(payload.pop("assets", None), "assets")
        patch = validate_payload(model=Partnership, payload=payload, policy=PARTNERSHIP_POLICY, partial=False)
        enforce_rules_partnership(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    partnership = partnership_service.create_partnership(store_id, patch, assets)
    return partnership_service.get_with_ownership(partnership), 201


@partnerships_bp.put("/<int:partnership_id>")
@require_auth
@require_role("STORE_ADMIN")
def update_partnership_route(partnership_id: int):
    """Body: partner fields, assets_to_add: [...], assets_to_remove: [asset_id, ...]."""
    partnership = get_in_scope(Partnership, partnership_id)
    if partnership is None:
        return {"error": "Partnership not found"}, 404

    payload = dict(request.get_json(silent=True) or {})
    try:
        to_add = _validated_assets(payload.pop("assets_to_add", None), "assets_to_add")
        to_remove = payload.pop("assets_to_remove", None) or []
        if not isinstance(to_remove, list) or not all(
            isinstance(i, int) and not isinstance(i, bool) for i in to_remove
        ):
            raise ValidationError("assets_to_remove must be a list of asset ids")
        patch = validate_payload(model=Partnership, payload=payload, policy=PARTNERSHIP_POLICY, partial=True)
        enforce_rules_partnership(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    partnership = partnership_service.update_partnership(partnership, patch, to_add, to_remove)
    return partnership_service.get_with_ownership(partnership), 200


@partnerships_bp.delete("/<int:partnership_id>")
@require_auth
@require_role("STORE_ADMIN")
def delete_partnership_route(partnership_id: int):
    partnership = get_in_scope(Partnership, partnership_id)
    if partnership is None:
        return {"error": "Partnership not found"}, 404
    partnership_service.delete_partnership(partnership)
    return {"ok": True}, 200
