# Overview: Service-layer operations for company settings.

from __future__ import annotations

import logging
from decimal import Decimal

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import CompanySetting
from ..policy import Principal
from ..validation import parse_decimal
from . import permission_service

logger = logging.getLogger(__name__)


KEY_DEFAULT_COMMISSION_RATE = "default_commission_rate"
KEY_MAX_EXPENSE_AMOUNT = "max_expense_amount"
KEY_COMPANY_NAME = "company_name"
KEY_CURRENCY = "currency"

DECIMAL_KEYS = {KEY_DEFAULT_COMMISSION_RATE, KEY_MAX_EXPENSE_AMOUNT}


def _catalog() -> list[dict]:
    """Known keys with their seed values. Only these keys can be written."""
    return [
        {
            "key": KEY_DEFAULT_COMMISSION_RATE,
            "value": str(current_app.config.get("DEFAULT_COMMISSION_RATE", "5.00")),
            "description": "Default commission rate for salesmen (percent)",
        },
        {
            "key": KEY_MAX_EXPENSE_AMOUNT,
            "value": "10000.00",
            "description": "Maximum expense amount without special approval",
        },
        {
            "key": KEY_COMPANY_NAME,
            "value": "AccountsForge Pro",
            "description": "Company name",
        },
        {
            "key": KEY_CURRENCY,
            "value": "USD",
            "description": "Default currency",
        },
    ]


def ensure_defaults_seeded() -> int:
    """Insert missing catalog keys. Existing values are left alone."""
    existing = {r.setting_key for r in db.session.query(CompanySetting.setting_key).all()}
    added = 0
    for row in _catalog():
        if row["key"] in existing:
            continue
        db.session.add(CompanySetting(
            setting_key=row["key"],
            setting_value=row["value"],
            description=row["description"],
        ))
        added += 1
    if added:
        db.session.commit()
    return added


def list_settings() -> list[CompanySetting]:
    return db.session.query(CompanySetting).order_by(CompanySetting.setting_key.asc()).all()


def get_setting_value(key: str, default: str | None = None) -> str | None:
    row = db.session.query(CompanySetting).filter_by(setting_key=key).first()
    if row is None or row.setting_value is None:
        return default
    return row.setting_value


def _validate_value(key: str, value) -> str:
    if value is None:
        raise ValidationError("value is required")
    if key in DECIMAL_KEYS:
        dec = parse_decimal("value", value)
        if dec < 0:
            raise ValidationError("value must be >= 0")
        if key == KEY_DEFAULT_COMMISSION_RATE and dec > 100:
            raise ValidationError("value must be between 0 and 100 (percent)")
        return str(dec.quantize(Decimal("0.01")))
    value = str(value).strip()
    if not value:
        raise ValidationError("value cannot be blank")
    if key == KEY_CURRENCY:
        if len(value) != 3 or not value.isalpha():
            raise ValidationError("currency must be a 3-letter code")
        value = value.upper()
    return value


def set_setting(principal: Principal, key: str, value) -> CompanySetting:
    known = {row["key"] for row in _catalog()}
    if key not in known:
        raise NotFoundError(f"Unknown setting: {key}")
    normalized = _validate_value(key, value)

    permission_service.require_admin(principal, resource=f"setting:{key}", action="update")

    row = db.session.query(CompanySetting).filter_by(setting_key=key).first()
    if row is None:
        description = next(r["description"] for r in _catalog() if r["key"] == key)
        row = CompanySetting(setting_key=key, description=description)
        db.session.add(row)
    row.setting_value = normalized
    row.updated_by = principal.user_id
    db.session.commit()

    logger.info("Setting %s updated by %s", key, principal.user_id)
    return row


def get_default_commission_rate() -> Decimal:
    """Company default, falling back to the config seed when not yet seeded."""
    raw = get_setting_value(KEY_DEFAULT_COMMISSION_RATE)
    if raw is None:
        raw = current_app.config.get("DEFAULT_COMMISSION_RATE", "5.00")
    return parse_decimal(KEY_DEFAULT_COMMISSION_RATE, raw)


def get_currency() -> str:
    return get_setting_value(KEY_CURRENCY, "USD")
