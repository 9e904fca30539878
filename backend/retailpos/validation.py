"""
Request payload validation shared by the API routes.

validate_payload() turns client JSON into a patch dict using the SQLAlchemy
column metadata of the target model plus a per-route allowlist; the
enforce_rules_* functions then apply business ranges that column types
cannot express.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text

from retailpos.time_utils import parse_iso_date, parse_iso_datetime

# 9,999,999.99 in minor units
MAX_PRICE_CENTS = 999_999_999
MAX_PERCENT_BPS = 10_000


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which columns a route lets clients write, and which a create must carry."""
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _coerce_int(key: str, value: Any) -> int:
    # bool is an int subclass; JSON true/false is never a quantity
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be an integer")

    text_value = value.strip()
    if "e" in text_value.lower():
        raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
    if "." in text_value:
        raise ValidationError(f"{key} must be an integer (no decimals)")
    try:
        return int(text_value)
    except ValueError:
        raise ValidationError(f"{key} must be an integer")


def _coerce_bool(key: str, value: Any) -> bool:
    return value if isinstance(value, bool) else bool(value)


def _parsed(kind: str, parser: Callable, python_type: type) -> Callable[[str, Any], Any]:
    """Coercer for ISO-8601 strings (or ready-made python_type values)."""

    def coerce(key: str, value: Any):
        if isinstance(value, python_type):
            return value
        if not isinstance(value, str):
            raise ValidationError(f"{key} must be a {kind}")
        try:
            parsed = parser(value)
        except ValueError:
            parsed = None
        if parsed is None:
            raise ValidationError(f"{key} must be an ISO-8601 {kind}")
        return parsed

    return coerce


def _coerce_text(key: str, value: Any) -> str:
    return str(value).strip()


_COERCERS: tuple[tuple[type, Callable[[str, Any], Any]], ...] = (
    (Integer, _coerce_int),
    (Boolean, _coerce_bool),
    (DateTime, _parsed("datetime", parse_iso_datetime, datetime)),
    (Date, _parsed("date", parse_iso_date, date)),
    (String, _coerce_text),
    (Text, _coerce_text),
)


def _coerce_value(col, value: Any):
    for column_type, coerce in _COERCERS:
        if isinstance(col.type, column_type):
            return coerce(col.key, value)
    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validate and normalize a JSON body for `model`.

    partial=False is create semantics (every required_on_create field must be
    present); partial=True validates only the keys supplied. Returns a patch
    containing writable fields only. Raises ValidationError.
    """
    payload = {} if payload is None else payload
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        col = columns.get(key)
        if col is None:
            raise ValidationError(f"Unknown field: {key}")

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce_value(col, raw)
        if isinstance(value, str):
            if value == "" and not col.nullable:
                raise ValidationError(f"{key} cannot be blank")
            max_length = getattr(col.type, "length", None)
            if max_length and len(value) > max_length:
                raise ValidationError(f"{key} exceeds max length {max_length}")
        patch[key] = value

    return patch


def _check_percent_bps(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        value = patch[key]
        if value < 0 or value > MAX_PERCENT_BPS:
            raise ValidationError(f"{key} must be between 0 and {MAX_PERCENT_BPS} (0-100%)")


def _check_money(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        value = patch[key]
        if value < 0:
            raise ValidationError(f"{key} must be >= 0")
        if value > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} ({MAX_PRICE_CENTS / 100:,.2f})")


def enforce_rules_store(patch: dict) -> None:
    from .models import CURRENCIES

    _check_percent_bps(patch, "global_discount_bps")
    if "currency" in patch and patch["currency"] is not None:
        patch["currency"] = patch["currency"].upper()
        if patch["currency"] not in CURRENCIES:
            raise ValidationError(f"currency must be one of {', '.join(CURRENCIES)}")


def enforce_rules_category(patch: dict) -> None:
    _check_percent_bps(patch, "default_gst_bps")
    _check_percent_bps(patch, "default_discount_bps")
    if "low_stock_threshold" in patch and patch["low_stock_threshold"] is not None:
        if patch["low_stock_threshold"] < 0:
            raise ValidationError("low_stock_threshold must be >= 0")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_money(patch, "price_cents")
    _check_money(patch, "cost_price_cents")
    _check_percent_bps(patch, "tax_override_bps")
    if "stock_qty" in patch and patch["stock_qty"] is not None:
        if patch["stock_qty"] < 0:
            raise ValidationError("stock_qty must be >= 0")


def enforce_rules_customer(patch: dict) -> None:
    from .models import GENDERS

    if patch.get("gender") is not None:
        patch["gender"] = patch["gender"].upper()
        if patch["gender"] not in GENDERS:
            raise ValidationError(f"gender must be one of {', '.join(GENDERS)}")
    if "mobile" in patch and patch["mobile"] == "":
        patch["mobile"] = None


def enforce_rules_expense(patch: dict) -> None:
    _check_money(patch, "amount_cents")


def enforce_rules_partnership(patch: dict) -> None:
    _check_money(patch, "cash_investment_cents")
    if "cash_investment_cents" in patch and not patch["cash_investment_cents"]:
        raise ValidationError("cash_investment_cents must be greater than 0")


def enforce_rules_partnership_asset(patch: dict) -> None:
    from .models import ASSET_TYPES

    _check_money(patch, "asset_value_cents")
    if "asset_value_cents" in patch and not patch["asset_value_cents"]:
        raise ValidationError("asset_value_cents must be greater than 0")
    if patch.get("asset_type") is not None:
        patch["asset_type"] = patch["asset_type"].upper()
        if patch["asset_type"] not in ASSET_TYPES:
            raise ValidationError(f"asset_type must be one of {', '.join(ASSET_TYPES)}")
