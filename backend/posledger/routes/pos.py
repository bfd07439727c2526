# Overview: Flask API routes for checkout and item cancellations; parses input and returns JSON responses.

# backend/posledger/routes/pos.py
"""
Point-of-sale routes.

- POST /order                     checkout a cart (order + receipt + ledger)
- GET  /orders, /orders/<id>      order lookup
- GET  /receipt/<order_id>        receipt lookup
- GET  /summary                   sales summary over a date range
- POST /cancel-item               cashier requests an item cancellation
- POST /cancellations/<id>/approve|reject   manager decision
- GET  /cancellations, /cancellations/pending
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service, cancellation_service
from ..time_utils import parse_iso_datetime, parse_range_end
from ..validation import PosError, NotFoundError
from ..models.sales import CANCELLATION_STATUS_PENDING


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _error(e: PosError, status: int | None = None):
    return jsonify({"error": str(e), "details": e.details}), status or e.status_code


def _date_range():
    """Read startDate/endDate query params; raises ValueError on bad input."""
    return (
        parse_iso_datetime(request.args.get("startDate")),
        parse_range_end(request.args.get("endDate")),
    )


# =============================================================================
# ORDERS
# =============================================================================

@pos_bp.post("/order")
def create_order_route():
    """
    Checkout a cart.

    Request body:
    {
        "items": [{"productId": 1, "quantity": 3}],
        "discount": 0, "tax": 0, "paymentMethod": "cash",
        "customerId": null, "outletId": null, "userId": null
    }

    Returns:
        201: {order, receipt}
        400: missing items, unknown product, insufficient stock, bad amounts
    """
    try:
        data = request.get_json(silent=True) or {}
        order, receipt = order_service.complete_sale(
            items=data.get("items"),
            discount=data.get("discount"),
            tax=data.get("tax"),
            payment_method=data.get("paymentMethod"),
            customer_id=data.get("customerId"),
            outlet_id=data.get("outletId"),
            user_id=data.get("userId"),
        )
        return jsonify({"order": order.to_dict(), "receipt": receipt.to_dict()}), 201

    except NotFoundError as e:
        # Unknown products in a cart are a bad request, not a missing resource
        return _error(e, 400)
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.get("/orders")
def list_orders_route():
    try:
        start, end = _date_range()
    except ValueError:
        return jsonify({"error": "startDate and endDate must be ISO-8601 dates"}), 400

    orders = order_service.list_orders(start=start, end=end, status=request.args.get("status"))
    return jsonify([o.to_dict() for o in orders]), 200


@pos_bp.get("/orders/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except PosError as e:
        return _error(e)
    return jsonify(order.to_dict()), 200


@pos_bp.get("/receipt/<int:order_id>")
def get_receipt_route(order_id: int):
    try:
        receipt = order_service.get_receipt_for_order(order_id)
    except PosError as e:
        return _error(e)
    return jsonify(receipt.to_dict()), 200


@pos_bp.get("/summary")
def sales_summary_route():
    try:
        start, end = _date_range()
    except ValueError:
        return jsonify({"error": "startDate and endDate must be ISO-8601 dates"}), 400

    return jsonify(order_service.sales_summary(start=start, end=end)), 200


# =============================================================================
# CANCELLATIONS
# =============================================================================

@pos_bp.post("/cancel-item")
def request_cancellation_route():
    """
    Request cancellation of one order line (requires manager approval).

    Request body: {"orderId": 1, "itemId": 3, "reason": "...", "requestedBy": "cashier1"}

    Returns:
        201: {cancellation, message}
        400: missing fields, or a request for this item is already pending
        404: order or item not found
    """
    try:
        data = request.get_json(silent=True) or {}
        cancellation = cancellation_service.request_cancellation(
            order_id=data.get("orderId"),
            item_id=data.get("itemId"),
            reason=data.get("reason"),
            requested_by=data.get("requestedBy"),
        )
        return jsonify({
            "cancellation": cancellation.to_dict(),
            "message": "Cancellation request created. Waiting for manager approval.",
        }), 201

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to request cancellation")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.get("/cancellations")
def list_cancellations_route():
    try:
        start, end = _date_range()
    except ValueError:
        return jsonify({"error": "startDate and endDate must be ISO-8601 dates"}), 400

    rows = cancellation_service.list_cancellations(
        status=request.args.get("status"), start=start, end=end
    )
    return jsonify([c.to_dict() for c in rows]), 200


@pos_bp.get("/cancellations/pending")
def list_pending_cancellations_route():
    rows = cancellation_service.list_cancellations(status=CANCELLATION_STATUS_PENDING)
    return jsonify([c.to_dict() for c in rows]), 200


@pos_bp.post("/cancellations/<int:cancellation_id>/approve")
def approve_cancellation_route(cancellation_id: int):
    """
    Approve a pending cancellation (manager).

    Returns:
        200: {cancellation, message}
        400: already processed
        404: not found
    """
    try:
        data = request.get_json(silent=True) or {}
        cancellation = cancellation_service.approve_cancellation(
            cancellation_id, approved_by=data.get("approvedBy")
        )
        return jsonify({
            "cancellation": cancellation.to_dict(),
            "message": "Cancellation approved and item removed from order",
        }), 200

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to approve cancellation")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/cancellations/<int:cancellation_id>/reject")
def reject_cancellation_route(cancellation_id: int):
    try:
        data = request.get_json(silent=True) or {}
        cancellation = cancellation_service.reject_cancellation(
            cancellation_id,
            rejected_by=data.get("rejectedBy"),
            rejection_reason=data.get("rejectionReason"),
        )
        return jsonify({
            "cancellation": cancellation.to_dict(),
            "message": "Cancellation request rejected",
        }), 200

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to reject cancellation")
        return jsonify({"error": "Internal server error"}), 500
