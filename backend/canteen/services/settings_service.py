from __future__ import annotations

import logging

from ..errors import ValidationError
from ..extensions import db
from ..models import AppSettings
from ..models.settings import APP_SETTINGS_ID
from ..money import percent_to_bps, to_cents
from .concurrency import run_atomic

logger = logging.getLogger(__name__)

_UNSET = object()


def get_app_settings() -> AppSettings:
    """Return the settings row, creating the defaults on first use."""
    settings = db.session.get(AppSettings, APP_SETTINGS_ID)
    if settings is None:
        settings = AppSettings(
            id=APP_SETTINGS_ID,
            global_discount_percent_bps=0,
            global_discount_flat_cents=0,
        )
        db.session.add(settings)
        db.session.flush()
    return settings


def update_app_settings(
    *,
    brand_name=_UNSET,
    global_discount_percent=_UNSET,
    global_discount_flat=_UNSET,
) -> AppSettings:
    """
    Partial update. Omitted arguments are left as they are; None resets a
    discount to zero and clears the brand name.
    """
    def _op():
        settings = get_app_settings()

        if brand_name is not _UNSET:
            if brand_name is not None and not isinstance(brand_name, str):
                raise ValidationError("brand_name must be a string")
            settings.brand_name = (brand_name or "").strip() or None

        if global_discount_percent is not _UNSET:
            settings.global_discount_percent_bps = (
                0 if global_discount_percent is None
                else percent_to_bps(global_discount_percent, "global_discount_percent")
            )

        if global_discount_flat is not _UNSET:
            flat = 0 if global_discount_flat is None else to_cents(global_discount_flat, "global_discount_flat")
            if flat < 0:
                raise ValidationError("global_discount_flat must be >= 0")
            settings.global_discount_flat_cents = flat

        db.session.flush()
        return settings

    settings = run_atomic(_op)
    logger.info(
        "App settings updated: global discount %s bps / %s cents",
        settings.global_discount_percent_bps,
        settings.global_discount_flat_cents,
    )
    return settings
