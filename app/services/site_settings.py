"""Runtime site settings stored as key/value rows, falling back to config defaults."""

import logging

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import FeatureDisabled, ValidationError
from app.models import SystemSetting
from app.utils.cache import get_cached, invalidate, set_cached

settings = get_settings()
logger = logging.getLogger(__name__)

PUBLIC_CACHE_KEY = "site_settings:public"

AMOUNT_KEYS = ("min_bet_amount", "max_bet_amount", "min_deposit_amount", "min_withdrawal_amount")
FLAG_KEYS = ("maintenance_mode", "enable_deposits", "enable_withdrawals")
PUBLIC_KEYS = ("site_name", "maintenance_mode", "enable_deposits", "enable_withdrawals") + AMOUNT_KEYS


def default_settings() -> dict:
    return {
        "site_name": settings.app_name,
        "maintenance_mode": False,
        "enable_deposits": True,
        "enable_withdrawals": True,
        "min_bet_amount": settings.default_min_bet_amount,
        "max_bet_amount": settings.default_max_bet_amount,
        "min_deposit_amount": settings.default_min_deposit_amount,
        "min_withdrawal_amount": settings.default_min_withdrawal_amount,
    }


DESCRIPTIONS = {
    "site_name": "Display name of the site",
    "maintenance_mode": "Reject non-admin traffic while enabled",
    "enable_deposits": "Allow users to start deposits",
    "enable_withdrawals": "Allow users to request withdrawals",
    "min_bet_amount": "Smallest accepted stake (paise)",
    "max_bet_amount": "Largest accepted stake (paise)",
    "min_deposit_amount": "Smallest accepted deposit (paise)",
    "min_withdrawal_amount": "Smallest accepted withdrawal (paise)",
}


def get_all(db: Session) -> dict:
    values = default_settings()
    for row in db.query(SystemSetting).filter(SystemSetting.key.in_(list(values))).all():
        if row.value is not None:
            values[row.key] = row.value
    return values


def get_value(db: Session, key: str):
    return get_all(db)[key]


def public_settings(db: Session) -> dict:
    cached = get_cached(PUBLIC_CACHE_KEY)
    if cached is not None:
        return cached
    values = get_all(db)
    public = {key: values[key] for key in PUBLIC_KEYS}
    set_cached(PUBLIC_CACHE_KEY, public, ttl_seconds=30)
    return public


def _validate(values: dict) -> dict:
    cleaned = {}
    for key, value in values.items():
        if key not in DESCRIPTIONS:
            raise ValidationError(f"Unknown setting: {key}", code="UNKNOWN_SETTING")
        if key in AMOUNT_KEYS:
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValidationError(f"{key} must be a positive integer amount in paise", code="INVALID_AMOUNT")
        elif key in FLAG_KEYS:
            if not isinstance(value, bool):
                raise ValidationError(f"{key} must be true or false", code="INVALID_SETTING")
        elif key == "site_name":
            value = str(value or "").strip()
            if not value or len(value) > 120:
                raise ValidationError("site_name must be 1-120 characters", code="INVALID_SETTING")
        cleaned[key] = value
    return cleaned


def update_settings(db: Session, values: dict) -> dict:
    cleaned = _validate(values)
    merged = {**get_all(db), **cleaned}
    if merged["min_bet_amount"] > merged["max_bet_amount"]:
        raise ValidationError("min_bet_amount cannot exceed max_bet_amount", code="INVALID_AMOUNT")

    existing = {
        row.key: row
        for row in db.query(SystemSetting).filter(SystemSetting.key.in_(list(cleaned))).all()
    }
    for key, value in cleaned.items():
        row = existing.get(key)
        if row is None:
            db.add(SystemSetting(key=key, value=value, description=DESCRIPTIONS[key]))
        else:
            row.value = value
    db.commit()
    invalidate("site_settings:")
    logger.info("Site settings updated keys=%s", ",".join(sorted(cleaned)))
    return get_all(db)


def bet_limits(db: Session) -> tuple[int, int]:
    values = get_all(db)
    return int(values["min_bet_amount"]), int(values["max_bet_amount"])


def ensure_enabled(db: Session, flag: str, label: str) -> None:
    if not get_value(db, flag):
        raise FeatureDisabled(f"{label} are currently disabled")
