"""
Payload validation for catalog, dispensary and order writes.

validate_payload turns a JSON body into a patch dict using the model's
column metadata (type, nullability, String length) and a per-resource
ModelValidationPolicy. The enforce_rules_* helpers add the domain rules
that column metadata cannot express.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String

from wholesale.time_utils import parse_iso_date, parse_iso_datetime
from .models.catalog import STRAIN_TYPES, PRODUCT_CATEGORIES, UNITS_OF_MEASURE
from .models.orders import PAYMENT_METHODS, PAYMENT_TERMS, PAYMENT_STATUSES


# $9,999,999.99
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """Bad input; routes answer 400."""


class ConflictError(ValueError):
    """Write collides with existing data (duplicate METRC id, referenced row); 409."""


class NotFoundError(LookupError):
    """Missing record; 404."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which columns a client may write, and which a create must supply."""
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be a whole number")
    if isinstance(value, str):
        text = value.strip()
        # "12", "-3"; never "12.0" or "1e3"
        if text.lstrip("-").isdigit():
            return int(text)
    raise ValidationError(f"{key} must be an integer")


def _as_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{key} must be a number")


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{key} must be true or false")


def _as_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _as_date(key: str, value: Any) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")


def _as_text(key: str, value: Any) -> str:
    return str(value).strip()


_COERCERS: list[tuple[type, Callable[[str, Any], Any]]] = [
    (Boolean, _as_bool),
    (Integer, _as_int),
    (Float, _as_float),
    (DateTime, _as_datetime),
    (Date, _as_date),
    (String, _as_text),
]


def _coerce(column, value: Any) -> Any:
    for column_type, coerce in _COERCERS:
        if isinstance(column.type, column_type):
            return coerce(column.key, value)
    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Clean a JSON body into a patch of writable columns.

    partial=False enforces policy.required_on_create (POST);
    partial=True only checks the keys present (PATCH).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    if not partial:
        missing = sorted(set(policy.required_on_create) - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        column = columns.get(key)
        if column is None:
            raise ValidationError(f"Unknown field: {key}")

        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce(column, raw)
        if isinstance(value, str):
            if value == "" and not column.nullable:
                raise ValidationError(f"{key} cannot be blank")
            length = getattr(column.type, "length", None)
            if length and len(value) > length:
                raise ValidationError(f"{key} is longer than {length} characters")
        patch[key] = value

    return patch


def _enforce_choice(patch: dict, key: str, choices) -> None:
    if patch.get(key) is not None and patch[key] not in choices:
        raise ValidationError(f"{key} must be one of: {', '.join(choices)}")


def enforce_rules_template(patch: dict) -> None:
    _enforce_choice(patch, "strain_type", STRAIN_TYPES)
    _enforce_choice(patch, "product_category", PRODUCT_CATEGORIES)
    _enforce_choice(patch, "unit_of_measure", UNITS_OF_MEASURE)


def enforce_rules_batch(patch: dict, *, existing=None) -> None:
    """Potency in [0, 100], price and stock non-negative, expiration not before production."""
    for key in ("thc_percentage", "cbd_percentage"):
        if patch.get(key) is not None and not 0 <= patch[key] <= 100:
            raise ValidationError(f"{key} must be between 0 and 100")

    price = patch.get("wholesale_price_cents")
    if price is not None and not 0 <= price <= MAX_PRICE_CENTS:
        raise ValidationError(f"wholesale_price_cents must be between 0 and {MAX_PRICE_CENTS}")

    stock = patch.get("current_stock_quantity")
    if stock is not None and stock < 0:
        raise ValidationError("current_stock_quantity must be >= 0")

    # Compared against the stored dates on PATCH
    production = patch.get("production_date", getattr(existing, "production_date", None))
    expiration = patch.get("expiration_date", getattr(existing, "expiration_date", None))
    if production and expiration and expiration < production:
        raise ValidationError("expiration_date cannot be before production_date")


def enforce_rules_order(patch: dict) -> None:
    for key, choices in (
        ("payment_method", PAYMENT_METHODS),
        ("payment_terms", PAYMENT_TERMS),
        ("payment_status", PAYMENT_STATUSES),
    ):
        if key in patch and patch[key] is None:
            raise ValidationError(f"{key} is required")
        _enforce_choice(patch, key, choices)


def enforce_rules_dispensary(patch: dict) -> None:
    email = patch.get("contact_email")
    if email and "@" not in email:
        raise ValidationError("contact_email must be a valid email address")
