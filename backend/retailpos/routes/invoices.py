# Overview: Checkout endpoint and read-only invoice queries; invoices are append-only.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import IssuanceFailed, PosError
from ..services import invoice_service
from ..services.tenant_service import (
    TenantAccessError,
    accessible_store_ids,
    can_access_store,
    resolve_store_id,
)

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Issue an invoice from a checkout payload.

    201: {message, invoiceId, invoiceNumber}
    400: business rule failure, fix the cart and resubmit (retryable: false)
    500: transient failure, try again later (retryable: true)
    """
    try:
        checkout = invoice_service.parse_checkout_payload(request.get_json(silent=True))
        if not can_access_store(g.current_user, checkout.store_id):
            return {"error": "Access to this store is denied"}, 403
        invoice = invoice_service.issue_from_request(checkout, actor_user_id=g.current_user.id)
    except IssuanceFailed as e:
        current_app.logger.error("Invoice issuance failed: %s", e)
        return {"error": str(e), "retryable": True}, 500
    except PosError as e:
        return {"error": str(e), "details": e.details, "retryable": False}, e.status_code
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return {"error": "Failed to create invoice", "retryable": True}, 500

    return {
        "message": "Invoice created successfully",
        "invoiceId": invoice.id,
        "invoiceNumber": invoice.invoice_number,
    }, 201


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """
    Query params:
    - store_id: int (optional; SUPER_ADMIN may omit it to list every store)
    - limit: int (optional)
    """
    requested = request.args.get("store_id", type=int)
    limit = request.args.get("limit", type=int)

    if requested is None and accessible_store_ids(g.current_user) is None:
        invoices = invoice_service.list_invoices(limit=limit)
    else:
        try:
            store_id = resolve_store_id(requested)
        except TenantAccessError as e:
            return {"error": str(e)}, e.status_code
        invoices = invoice_service.list_invoices(store_id, limit=limit)

    return jsonify([inv.to_dict() for inv in invoices]), 200


@invoices_bp.get("/<invoice_id>")
@require_auth
def get_invoice_route(invoice_id: str):
    invoice = invoice_service.get_invoice(invoice_id)
    if invoice is None or not can_access_store(g.current_user, invoice.store_id):
        return {"error": "Invoice not found"}, 404
    return invoice.to_dict(), 200
