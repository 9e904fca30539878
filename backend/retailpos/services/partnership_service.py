"""
Partnership Service: equity partners of a store and their contributions.

A partner contributes cash and, optionally, assets (equipment, property,
...). Ownership is blended across every partner of the store:

    ownership = (cash + assets) / (store cash + store assets)

expressed in basis points (2500 = 25.00%) and rounded half-up per partner,
so a store's percentages may sum to 100% +/- a few basis points. Nothing is
stored; ownership is recomputed on every read.
"""
from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import Partnership, PartnershipAsset
from ..time_utils import utcnow
from .pricing_service import BPS_PER_UNIT

logger = logging.getLogger(__name__)

PARTNERSHIP_MUTABLE_FIELDS = {
    "partner_name", "email", "phone_number", "cash_investment_cents",
    "investment_date", "address", "bank_details", "notes", "is_active",
}
ASSET_MUTABLE_FIELDS = {
    "asset_name", "asset_description", "asset_value_cents", "asset_type",
    "contributed_date", "notes",
}


def ownership_bps(contribution_cents: int, total_cents: int) -> int:
    """Share of total_cents in basis points, half-up; 0 when nothing is invested."""
    if total_cents <= 0:
        return 0
    share = Decimal(contribution_cents) * BPS_PER_UNIT / Decimal(total_cents)
    return int(share.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def store_contribution_cents(store_id: int) -> int:
    """Cash plus asset value of every partner of the store."""
    cash = (
        db.session.query(db.func.coalesce(db.func.sum(Partnership.cash_investment_cents), 0))
        .filter(Partnership.store_id == store_id)
        .scalar()
    )
    assets = (
        db.session.query(db.func.coalesce(db.func.sum(PartnershipAsset.asset_value_cents), 0))
        .join(Partnership, PartnershipAsset.partnership_id == Partnership.id)
        .filter(Partnership.store_id == store_id)
        .scalar()
    )
    return int(cash) + int(assets)


def to_view(partnership: Partnership, total_cents: int) -> dict:
    bps = ownership_bps(partnership.contribution_cents, total_cents)
    view = partnership.to_dict()
    view["ownership_bps"] = bps
    view["ownership_percent"] = float(Decimal(bps) / 100)
    return view


def list_partnerships(store_id: int) -> list[Partnership]:
    """Largest cash investment first."""
    return (
        db.session.query(Partnership)
        .filter_by(store_id=store_id)
        .order_by(Partnership.cash_investment_cents.desc(), Partnership.id.asc())
        .all()
    )


def list_with_ownership(store_id: int) -> list[dict]:
    total = store_contribution_cents(store_id)
    return [to_view(p, total) for p in list_partnerships(store_id)]


def get_with_ownership(partnership: Partnership) -> dict:
    return to_view(partnership, store_contribution_cents(partnership.store_id))


def _build_asset(patch: dict) -> PartnershipAsset:
    asset = PartnershipAsset(asset_type="OTHER", contributed_date=utcnow().date())
    for k, v in patch.items():
        if k in ASSET_MUTABLE_FIELDS and v is not None:
            setattr(asset, k, v)
    return asset


def create_partnership(store_id: int, patch: dict, assets: list[dict] | None = None) -> Partnership:
    """Partner and its assets are written in one commit."""
    partnership = Partnership(store_id=store_id, is_active=True)
    for k, v in patch.items():
        if k in PARTNERSHIP_MUTABLE_FIELDS:
            setattr(partnership, k, v)
    for asset_patch in assets or []:
        partnership.assets.append(_build_asset(asset_patch))

    db.session.add(partnership)
    db.session.commit()
    logger.info(
        "Partnership created id=%s store_id=%s assets=%d",
        partnership.id, store_id, len(partnership.assets),
    )
    return partnership


def update_partnership(
    partnership: Partnership,
    patch: dict,
    assets_to_add: list[dict] | None = None,
    assets_to_remove: list[int] | None = None,
) -> Partnership:
    """
    Apply field changes, then remove and add assets.

    Asset ids that do not belong to this partnership are ignored.
    """
    for k, v in patch.items():
        if k in PARTNERSHIP_MUTABLE_FIELDS:
            setattr(partnership, k, v)

    remove_ids = set(assets_to_remove or [])
    for asset in list(partnership.assets):
        if asset.id in remove_ids:
            partnership.assets.remove(asset)
    for asset_patch in assets_to_add or []:
        partnership.assets.append(_build_asset(asset_patch))

    db.session.commit()
    return partnership


def delete_partnership(partnership: Partnership) -> None:
    db.session.delete(partnership)
    db.session.commit()
