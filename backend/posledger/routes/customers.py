# Overview: Flask API routes for customer records; parses input and returns JSON responses.

# backend/posledger/routes/customers.py
from flask import Blueprint, request, jsonify, current_app

from ..services import customer_service
from ..validation import CUSTOMER_POLICY, PosError, validate_payload

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _error(e: PosError):
    return jsonify({"error": str(e), "details": e.details}), e.status_code


@customers_bp.get("")
def list_customers_route():
    return jsonify([c.to_dict() for c in customer_service.list_customers()]), 200


@customers_bp.get("/search/<path:query>")
def search_customers_route(query: str):
    try:
        rows = customer_service.search_customers(query)
    except PosError as e:
        return _error(e)
    return jsonify([c.to_dict() for c in rows]), 200


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    """Customer record plus totalOrders, totalSpent and lastOrderDate."""
    try:
        customer = customer_service.get_customer(customer_id)
    except PosError as e:
        return _error(e)
    body = customer.to_dict()
    body.update(customer_service.customer_stats(customer))
    return jsonify(body), 200


@customers_bp.post("")
def create_customer_route():
    """
    Create a customer. Required: name.

    Defaults: whatsapp = phone, country = Indonesia, customerType = retail.
    """
    try:
        payload = request.get_json(silent=True) or {}
        patch = validate_payload(payload=payload, policy=CUSTOMER_POLICY, partial=False)
        customer = customer_service.create_customer(patch=patch)
        return jsonify(customer.to_dict()), 201

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<int:customer_id>")
def update_customer_route(customer_id: int):
    try:
        payload = request.get_json(silent=True) or {}
        patch = validate_payload(payload=payload, policy=CUSTOMER_POLICY, partial=True)
        customer = customer_service.update_customer(customer_id, patch=patch)
        return jsonify(customer.to_dict()), 200

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(customer_id)
    except PosError as e:
        return _error(e)
    return jsonify({"message": "Customer deleted successfully"}), 200
