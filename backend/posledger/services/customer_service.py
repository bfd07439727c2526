# Overview: Service-layer operations for customer records.

from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Customer, Order
from ..time_utils import to_utc_z
from ..validation import NotFoundError, ValidationError
from .concurrency import lock_for_update, run_with_retry


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def customer_stats(customer: Customer) -> dict:
    """
    Order history for a customer: totalOrders, totalSpent, lastOrderDate.

    Orders are matched on Order.customer_id == str(customer.id).
    """
    count, spent_cents, last_date = (
        db.session.query(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_cents), 0),
            func.max(Order.date),
        )
        .filter(Order.customer_id == str(customer.id))
        .one()
    )
    return {
        "totalOrders": int(count or 0),
        "totalSpent": int(spent_cents or 0) / 100,
        "lastOrderDate": to_utc_z(last_date) if last_date else None,
    }


def create_customer(*, patch: dict) -> Customer:
    """Create from a validated patch (see CUSTOMER_POLICY). whatsapp defaults to phone."""
    def _op():
        data = dict(patch)
        if not data.get("whatsapp") and data.get("phone"):
            data["whatsapp"] = data["phone"]
        customer = Customer(**data)
        db.session.add(customer)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def update_customer(customer_id: int, *, patch: dict) -> Customer:
    def _op():
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if customer is None:
            raise NotFoundError("Customer not found")
        for key, value in patch.items():
            setattr(customer, key, value)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def delete_customer(customer_id: int) -> None:
    """Delete a customer. Past orders keep their customer_id string."""
    def _op():
        customer = db.session.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        db.session.delete(customer)
        db.session.commit()

    run_with_retry(_op)


def search_customers(query: str) -> list[Customer]:
    """Case-insensitive substring match on name, email, phone or whatsapp."""
    text = (query or "").strip()
    if not text:
        raise ValidationError("Search query is required")
    pattern = f"%{text.lower()}%"
    return (
        db.session.query(Customer)
        .filter(or_(
            func.lower(Customer.name).like(pattern),
            func.lower(Customer.email).like(pattern),
            Customer.phone.like(pattern),
            Customer.whatsapp.like(pattern),
        ))
        .order_by(Customer.name.asc(), Customer.id.asc())
        .all()
    )
