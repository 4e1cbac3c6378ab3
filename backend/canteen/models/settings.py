from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


APP_SETTINGS_ID = 1


class AppSettings(db.Model):
    """Single-row store-wide settings (row id is always APP_SETTINGS_ID)."""
    __tablename__ = "app_settings"

    id = db.Column(db.Integer, primary_key=True)
    brand_name = db.Column(db.String(128), nullable=True)

    global_discount_percent_bps = db.Column(db.Integer, nullable=False, default=0)
    global_discount_flat_cents = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "brand_name": self.brand_name,
            "global_discount_percent_bps": self.global_discount_percent_bps,
            "global_discount_flat_cents": self.global_discount_flat_cents,
            "updated_at": to_utc_z(self.updated_at),
        }
