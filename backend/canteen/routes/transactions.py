# Overview: Flask API routes for ledger writes and corrections; parses input and returns JSON responses.

"""
Transaction API Routes

Money enters as a decimal "amount" (string or number, at most 2 places) and
leaves as integer *_cents fields. Every write goes through the ledger or
correction service; this module only parses and serializes.

Request bodies use snake_case keys:

    purchase:   {"customer_id", "barcode" | "product_id", "selected_options", "note", "staff_id"}
    deposit /
    withdrawal /
    adjustment: {"customer_id", "amount", "note", "staff_id"}
    void:       {"note"}                      (optional body)
    edit:       {"transaction_type": "purchase" | "balance-delta", "customer_id", ...}
"""

from flask import Blueprint, current_app, jsonify, request

from ..errors import LedgerError, ValidationError
from ..services import correction_service, ledger_service, reporting_service
from ..services.catalog_service import normalize_customer_id
from ..validation import parse_amount, parse_limit, require_json_object


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

EDIT_PURCHASE = "purchase"
EDIT_BALANCE_DELTA = "balance-delta"


def _error_response(exc: Exception, action: str):
    if isinstance(exc, LedgerError):
        return jsonify(exc.to_dict()), exc.http_status
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


def _payload() -> dict:
    return require_json_object(request.get_json(silent=True))


# =============================================================================
# WRITES
# =============================================================================

@transactions_bp.post("/purchase")
def purchase_route():
    """
    Charge a customer for one product.

    Returns:
        201: {transaction, product, charged_cents, balance_after_cents, pricing}
        400: invalid input or missing required options
        404: customer or product not found
        409: inactive product or insufficient balance
    """
    try:
        data = _payload()
        result = ledger_service.process_purchase(
            normalize_customer_id(data.get("customer_id")),
            barcode=data.get("barcode"),
            product_id=data.get("product_id"),
            selected_options=data.get("selected_options"),
            note=data.get("note"),
            staff_id=data.get("staff_id"),
        )
        return jsonify(result.to_dict()), 201
    except Exception as e:
        return _error_response(e, "process purchase")


def _balance_delta_route(service_fn, action: str):
    try:
        data = _payload()
        result = service_fn(
            normalize_customer_id(data.get("customer_id")),
            parse_amount(data),
            note=data.get("note"),
            staff_id=data.get("staff_id"),
        )
        return jsonify(result.to_dict()), 201
    except Exception as e:
        return _error_response(e, action)


@transactions_bp.post("/deposit")
def deposit_route():
    return _balance_delta_route(ledger_service.process_deposit, "process deposit")


@transactions_bp.post("/withdrawal")
def withdrawal_route():
    """amount is the positive sum handed back to the customer."""
    return _balance_delta_route(ledger_service.process_withdrawal, "process withdrawal")


@transactions_bp.post("/adjustment")
def adjustment_route():
    """amount is signed: negative takes money off the balance."""
    return _balance_delta_route(ledger_service.process_adjustment, "process adjustment")


# =============================================================================
# READS
# =============================================================================

@transactions_bp.get("/list")
def list_transactions_route():
    limit = parse_limit(
        request.args.get("limit"),
        default=current_app.config["LEDGER_LIST_LIMIT_DEFAULT"],
        maximum=current_app.config["LEDGER_LIST_LIMIT_MAX"],
    )
    try:
        items = reporting_service.list_all_transactions(limit=limit)
        return jsonify({"items": items, "count": len(items), "limit": limit}), 200
    except Exception as e:
        return _error_response(e, "list transactions")


@transactions_bp.get("/stats")
def stats_route():
    try:
        return jsonify(reporting_service.get_transaction_stats_summary()), 200
    except Exception as e:
        return _error_response(e, "compute transaction stats")


@transactions_bp.get("/export")
def export_route():
    """Every transaction, newest first, with the customer's name attached."""
    try:
        items = reporting_service.list_all_transactions()
        return jsonify({"items": items, "count": len(items)}), 200
    except Exception as e:
        return _error_response(e, "export transactions")


# =============================================================================
# CORRECTIONS
# =============================================================================

@transactions_bp.delete("/<transaction_id>")
def void_route(transaction_id: str):
    """
    Void a transaction. The balance effect is reversed; the row stays.

    Returns:
        200: {transaction, balance_after_cents}
        404: transaction not found
        409: already voided
    """
    try:
        data = _payload()
        result = correction_service.void_transaction(transaction_id, note=data.get("note"))
        return jsonify(result.to_dict()), 200
    except Exception as e:
        return _error_response(e, "void transaction")


@transactions_bp.post("/<transaction_id>/unvoid")
def unvoid_route(transaction_id: str):
    try:
        data = _payload()
        result = correction_service.unvoid_transaction(transaction_id, note=data.get("note"))
        return jsonify(result.to_dict()), 200
    except Exception as e:
        return _error_response(e, "unvoid transaction")


@transactions_bp.put("/<transaction_id>")
def edit_route(transaction_id: str):
    """
    Edit-as-replace. The original is voided and a linked replacement is
    written in the same atomic unit.

    transaction_type selects what is being replaced:
        "purchase":      {"customer_id", "product_id", "selected_options", "note"}
        "balance-delta": {"customer_id", "amount", "note"}
    """
    try:
        data = _payload()
        customer_id = normalize_customer_id(data.get("customer_id"))
        kind = data.get("transaction_type")

        if kind == EDIT_PURCHASE:
            result = correction_service.update_purchase_transaction(
                transaction_id,
                customer_id=customer_id,
                product_id=data.get("product_id"),
                selected_options=data.get("selected_options"),
                note=data.get("note"),
                staff_id=data.get("staff_id"),
            )
        elif kind == EDIT_BALANCE_DELTA:
            result = correction_service.update_balance_delta_transaction(
                transaction_id,
                customer_id=customer_id,
                amount_cents=parse_amount(data),
                note=data.get("note"),
                staff_id=data.get("staff_id"),
            )
        else:
            raise ValidationError(
                f"transaction_type must be '{EDIT_PURCHASE}' or '{EDIT_BALANCE_DELTA}'"
            )
        return jsonify(result.to_dict()), 200
    except Exception as e:
        return _error_response(e, "edit transaction")
