# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/posledger/routes/products.py
"""
Product catalog routes.

Money fields (price, cost) are accepted and returned in currency units and
stored as cents. Stock is only changed here by explicit edits; sales and
cancellations adjust it through the POS routes.
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service
from ..validation import PRODUCT_POLICY, PosError, validate_payload

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _error(e: PosError):
    return jsonify({"error": str(e), "details": e.details}), e.status_code


@products_bp.get("")
def list_products_route():
    return jsonify([p.to_dict() for p in catalog_service.list_products()]), 200


@products_bp.get("/low-stock")
def low_stock_route():
    """Products whose stock is at or below minStock."""
    return jsonify([p.to_dict() for p in catalog_service.list_low_stock()]), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
    except PosError as e:
        return _error(e)
    return jsonify(product.to_dict()), 200


@products_bp.post("")
def create_product_route():
    """
    Create a new product.

    Required: name. sku defaults to SKU-<epoch ms>, minStock to DEFAULT_MIN_STOCK.
    """
    try:
        payload = request.get_json(silent=True) or {}
        patch = validate_payload(payload=payload, policy=PRODUCT_POLICY, partial=False)
        product = catalog_service.create_product(patch=patch)
        return jsonify(product.to_dict()), 201

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    try:
        payload = request.get_json(silent=True) or {}
        patch = validate_payload(payload=payload, policy=PRODUCT_POLICY, partial=True)
        product = catalog_service.update_product(product_id, patch=patch)
        return jsonify(product.to_dict()), 200

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        catalog_service.delete_product(product_id)
    except PosError as e:
        return _error(e)
    return jsonify({"message": "Product deleted successfully"}), 200
