# Overview: Per-owner business settings (branding, timezone, invoice counter).

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import AppSettings
from ..validation import ValidationError, optional_text
from .concurrency import lock_for_update
from shopbook.time_utils import is_valid_timezone


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError, ValidationError):
    pass


EDITABLE_KEYS = {"business_name", "logo_url", "timezone", "currency_label"}

INVOICE_NUMBER_PREFIX = "INV-"


def _default_timezone() -> str:
    return current_app.config.get("DEFAULT_TIMEZONE", "Asia/Karachi")


def get_settings(owner_id: int) -> AppSettings:
    """Owner's settings row, created with defaults on first access."""
    settings = db.session.query(AppSettings).filter_by(owner_id=owner_id).first()
    if settings is None:
        settings = ensure_settings(owner_id)
        db.session.commit()
    return settings


def ensure_settings(owner_id: int, *, business_name: str | None = None) -> AppSettings:
    """Add a default settings row for the owner if missing. Does not commit."""
    settings = db.session.query(AppSettings).filter_by(owner_id=owner_id).first()
    if settings is None:
        settings = AppSettings(
            owner_id=owner_id,
            business_name=business_name,
            timezone=_default_timezone(),
            currency_label="Rs.",
            next_invoice_number=1,
        )
        db.session.add(settings)
        db.session.flush()
    return settings


def update_settings(owner_id: int, payload: dict, *, user_id: int) -> AppSettings:
    if not isinstance(payload, dict):
        raise SettingsValidationError("Invalid JSON payload")

    unknown = sorted(set(payload) - EDITABLE_KEYS)
    if unknown:
        raise SettingsValidationError(f"Unknown setting(s): {', '.join(unknown)}")

    if "timezone" in payload and not is_valid_timezone(payload["timezone"]):
        raise SettingsValidationError(f"Invalid timezone: {payload['timezone']}")

    if "currency_label" in payload:
        label = optional_text(payload["currency_label"])
        if not label or len(label) > 16:
            raise SettingsValidationError("currency_label must be 1-16 characters")

    settings = get_settings(owner_id)
    for key in EDITABLE_KEYS & set(payload):
        value = payload[key]
        setattr(settings, key, optional_text(value) if key != "timezone" else value)
    settings.updated_by_user_id = user_id

    db.session.commit()
    return settings


def next_invoice_number(owner_id: int) -> str:
    """
    Reserve the owner's next invoice number ("INV-000001").

    Runs inside the caller's transaction with the settings row locked.
    """
    settings = lock_for_update(
        db.session.query(AppSettings).filter_by(owner_id=owner_id)
    ).first()
    if settings is None:
        settings = ensure_settings(owner_id)

    number = settings.next_invoice_number or 1
    settings.next_invoice_number = number + 1
    return f"{INVOICE_NUMBER_PREFIX}{number:06d}"
