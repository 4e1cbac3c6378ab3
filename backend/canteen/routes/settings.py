from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import settings_service
from ..validation import require_json_object


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")

_UPDATABLE = ("brand_name", "global_discount_percent", "global_discount_flat")


@settings_bp.get("/app")
def get_app_settings_route():
    settings = settings_service.get_app_settings()
    return jsonify(settings.to_dict()), 200


@settings_bp.put("/app")
def update_app_settings_route():
    """
    Partial update. Discounts are given as a percent (0-100, 2 places) and a
    flat currency amount; null resets a discount to zero.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        updates = {k: data[k] for k in _UPDATABLE if k in data}
        settings = settings_service.update_app_settings(**updates)
        return jsonify(settings.to_dict()), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update app settings")
        return jsonify({"error": "Internal server error"}), 500
