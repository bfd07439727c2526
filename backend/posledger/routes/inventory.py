# Overview: Flask API routes for stock levels and stock movements; parses input and returns JSON responses.

# backend/posledger/routes/inventory.py
"""
Inventory routes.

- GET  /stock, /stock/low       stock level per product
- GET  /transactions            movement history (startDate, endDate, type, productId)
- POST /stock-in, /stock-out    receive or remove a quantity
- POST /stock-adjust            set stock to a counted quantity
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service, inventory_service
from ..time_utils import parse_iso_datetime, parse_range_end
from ..validation import PosError, ValidationError, parse_positive_int


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _error(e: PosError):
    return jsonify({"error": str(e), "details": e.details}), e.status_code


@inventory_bp.get("/stock")
def stock_route():
    return jsonify(inventory_service.list_stock()), 200


@inventory_bp.get("/stock/low")
def low_stock_route():
    return jsonify([p.to_dict() for p in catalog_service.list_low_stock()]), 200


@inventory_bp.get("/transactions")
def list_transactions_route():
    try:
        start = parse_iso_datetime(request.args.get("startDate"))
        end = parse_range_end(request.args.get("endDate"))
    except ValueError:
        return jsonify({"error": "startDate and endDate must be ISO-8601 dates"}), 400

    try:
        raw_product_id = request.args.get("productId")
        product_id = parse_positive_int(raw_product_id, "productId") if raw_product_id else None
        rows = inventory_service.list_transactions(
            start=start, end=end, type=request.args.get("type"), product_id=product_id
        )
    except ValidationError as e:
        return _error(e)
    return jsonify([t.to_dict() for t in rows]), 200


@inventory_bp.post("/stock-in")
def stock_in_route():
    """
    Receive stock.

    Request body: {"productId": 1, "quantity": 12, "reason": "Supplier delivery", "notes": "", "userId": "clerk"}

    Returns:
        201: movement
        400: missing/invalid fields
        404: product not found
    """
    try:
        data = request.get_json(silent=True) or {}
        tx = inventory_service.stock_in(
            product_id=data.get("productId"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
            notes=data.get("notes"),
            user_id=data.get("userId"),
        )
        return jsonify(tx.to_dict()), 201

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to record stock-in")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/stock-out")
def stock_out_route():
    """
    Remove stock.

    Returns:
        201: movement
        400: missing/invalid fields, insufficient stock
        404: product not found
    """
    try:
        data = request.get_json(silent=True) or {}
        tx = inventory_service.stock_out(
            product_id=data.get("productId"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
            notes=data.get("notes"),
            user_id=data.get("userId"),
        )
        return jsonify(tx.to_dict()), 201

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to record stock-out")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/stock-adjust")
def stock_adjust_route():
    """
    Set stock to a counted quantity.

    Request body: {"productId": 1, "newQuantity": 7, "reason": "Cycle count"}
    """
    try:
        data = request.get_json(silent=True) or {}
        tx = inventory_service.adjust_stock(
            product_id=data.get("productId"),
            new_quantity=data.get("newQuantity"),
            reason=data.get("reason"),
            notes=data.get("notes"),
            user_id=data.get("userId"),
        )
        return jsonify(tx.to_dict()), 201

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500
