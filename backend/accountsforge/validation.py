from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .time_utils import parse_iso_date, parse_iso_datetime


# Maximum single ledger amount: 9,999,999,999.99 fits Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = field(default_factory=frozenset)


def json_object(payload: Any) -> dict:
    """Request bodies are JSON objects; a missing body reads as {}."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_decimal(key: str, value: Any) -> Decimal:
    """
    Money and rates arrive as JSON numbers or strings. Floats are routed
    through str() so 120.5 becomes Decimal("120.5"), not its binary expansion.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{key} must be a number")
    try:
        dec = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
    if not dec.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    return dec


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Enums before strings: db.Enum subclasses String
    if isinstance(coltype, Enum):
        enum_cls = coltype.enum_class
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(m.value for m in enum_cls)
            raise ValidationError(f"{col.key} must be one of: {allowed}")

    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or not stripped.lstrip("-").isdigit():
                raise ValidationError(f"{col.key} must be an integer")
            return int(stripped)
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Numeric):
        dec = parse_decimal(col.key, value)
        scale = coltype.scale
        if scale is not None and dec != dec.quantize(Decimal(1).scaleb(-scale)):
            raise ValidationError(f"{col.key} allows at most {scale} decimal places")
        return dec

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date (YYYY-MM-DD)")
            if d is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date (YYYY-MM-DD)")
            return d
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length, Numeric scale)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    payload = json_object(payload)

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not isinstance(col.type, Enum) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and not isinstance(col.type, Enum) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_positive_amount(patch: dict, key: str = "amount") -> None:
    """Amounts are strictly positive and bounded by the column precision."""
    if key not in patch:
        return
    amount = patch[key]
    if amount is None or amount <= 0:
        raise ValidationError(f"{key} must be greater than 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT}")


def enforce_commission_rate(patch: dict) -> None:
    if "commission_rate" in patch and patch["commission_rate"] is not None:
        rate = patch["commission_rate"]
        if rate < 0 or rate > 100:
            raise ValidationError("commission_rate must be between 0 and 100 (percent)")


def enforce_quantity(patch: dict) -> None:
    if "quantity" in patch and patch["quantity"] is not None and patch["quantity"] < 1:
        raise ValidationError("quantity must be >= 1")
