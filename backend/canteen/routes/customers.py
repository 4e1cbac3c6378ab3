# Overview: Flask API routes for customer lookup and history.

from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError
from ..services import catalog_service, reporting_service
from ..services.catalog_service import normalize_customer_id
from ..validation import parse_limit


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("/<customer_id>")
def get_customer_route(customer_id: str):
    try:
        customer = catalog_service.get_customer(normalize_customer_id(customer_id))
        data = customer.to_dict()
        data["customer_type"] = customer.customer_type.to_dict() if customer.customer_type else None
        return jsonify(data), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<customer_id>/transactions")
def customer_transactions_route(customer_id: str):
    """Most recent transactions first; voided rows are included and flagged."""
    limit = parse_limit(
        request.args.get("limit"),
        default=current_app.config["CUSTOMER_HISTORY_LIMIT_DEFAULT"],
        maximum=current_app.config["LEDGER_LIST_LIMIT_MAX"],
    )
    try:
        customer = catalog_service.get_customer(normalize_customer_id(customer_id))
        rows = reporting_service.get_customer_transactions(customer.customer_id, limit=limit)
        return jsonify({
            "customer_id": customer.customer_id,
            "balance_cents": customer.balance_cents,
            "items": [r.to_dict() for r in rows],
            "limit": limit,
        }), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load customer transactions")
        return jsonify({"error": "Internal server error"}), 500
