"""
Order Engine - checkout of a cart into a completed order.

WHY: A sale touches three stores at once (catalog stock, the order and its
receipt, the ledger). complete_sale() performs all of it as one database
transaction, so either every effect lands or none does.

SEQUENCE (all inside one transaction):
1. Parse and validate the request (shape, quantities, discount/tax >= 0)
2. Take the write lock, load and lock every product in the cart
3. Validate the whole cart: unknown products, then aggregated stock
4. Build the order lines from product snapshots and compute totals
5. Persist the order, decrement stock (one movement row per line), write the receipt
6. Post the sale to the ledger
7. Commit

Any failure rolls back the transaction. There is no compensation step
because nothing was committed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import Order, OrderItem, Product, Receipt
from ..models.catalog import MOVEMENT_SALE
from ..models.sales import ORDER_STATUS_COMPLETED
from ..time_utils import epoch_millis, utcnow
from ..validation import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    optional_text,
    parse_non_negative_cents,
    parse_positive_int,
)
from .concurrency import begin_write, lock_for_update, run_with_retry
from .inventory_service import record_movement
from .ledger_service import post_sale


def _parse_cart(items) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Order items are required")

    cart = []
    for i, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {i} must be an object")
        if item.get("productId") in (None, ""):
            raise ValidationError(f"Item {i}: productId is required")
        product_id = parse_positive_int(item.get("productId"), f"items[{i}].productId")
        quantity = parse_positive_int(item.get("quantity"), f"items[{i}].quantity")
        cart.append((product_id, quantity))
    return cart


def _validate_cart(cart: list[tuple[int, int]], products: dict[int, Product]) -> None:
    """Reject the cart as a whole before any stock is touched."""
    missing = sorted({pid for pid, _ in cart if pid not in products})
    if missing:
        raise NotFoundError(
            f"Product {missing[0]} not found",
            details={"product_ids": missing},
        )

    requested: dict[int, int] = {}
    for product_id, quantity in cart:
        requested[product_id] = requested.get(product_id, 0) + quantity

    insufficient = []
    for product_id, qty in requested.items():
        product = products[product_id]
        if product.stock < qty:
            insufficient.append({
                "product_id": product_id,
                "product_name": product.name,
                "requested_quantity": qty,
                "stock": product.stock,
            })

    if insufficient:
        names = ", ".join(row["product_name"] for row in insufficient)
        raise InsufficientStockError(
            f"Insufficient stock for {names}",
            details={"items": insufficient},
        )


def complete_sale(
    *,
    items,
    discount=None,
    tax=None,
    payment_method=None,
    customer_id=None,
    outlet_id=None,
    user_id=None,
) -> tuple[Order, Receipt]:
    """
    Check out a cart: create the order and receipt, decrement stock and post
    the sale to the ledger.

    Raises:
        ValidationError: malformed request, negative discount/tax, negative total
        NotFoundError: a product in the cart does not exist
        InsufficientStockError: a product's stock cannot cover the cart
    """
    cart = _parse_cart(items)
    discount_cents = parse_non_negative_cents(discount, "discount") if discount not in (None, "") else 0
    tax_cents = parse_non_negative_cents(tax, "tax") if tax not in (None, "") else 0
    payment_method = optional_text(payment_method, "paymentMethod", max_length=32) or "cash"
    customer_id = optional_text(customer_id, "customerId", max_length=64)
    outlet_id = optional_text(outlet_id, "outletId", max_length=64)
    user_id = optional_text(user_id, "userId", max_length=64) or "system"

    def _op():
        begin_write()
        product_ids = sorted({pid for pid, _ in cart})
        rows = lock_for_update(
            db.session.query(Product).filter(Product.id.in_(product_ids))
        ).all()
        products = {p.id: p for p in rows}

        _validate_cart(cart, products)

        now = utcnow()
        order = Order(
            order_number=f"ORD-{epoch_millis()}",
            customer_id=customer_id,
            outlet_id=outlet_id,
            user_id=user_id,
            discount_cents=discount_cents,
            tax_cents=tax_cents,
            payment_method=payment_method,
            status=ORDER_STATUS_COMPLETED,
            date=now,
        )
        for product_id, quantity in cart:
            product = products[product_id]
            order.items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                unit_price_cents=product.price_cents,
                unit_cost_cents=product.cost_cents,
                line_total_cents=product.price_cents * quantity,
            ))
        order.recalculate_totals()

        if order.total_cents < 0:
            raise ValidationError(
                "Discount cannot exceed subtotal plus tax",
                details={"subtotal": order.subtotal_cents / 100, "discount": discount_cents / 100},
            )

        db.session.add(order)
        db.session.flush()

        for product_id, quantity in cart:
            record_movement(
                products[product_id],
                MOVEMENT_SALE,
                -quantity,
                reason=f"Sale Order #{order.order_number}",
                reference=str(order.id),
                user_id=user_id,
            )

        receipt = Receipt(
            receipt_number=f"RCP-{epoch_millis()}",
            order_id=order.id,
            order_number=order.order_number,
            order_snapshot=order.to_dict(),
            created_at=now,
        )
        db.session.add(receipt)

        post_sale(order)

        db.session.commit()
        current_app.logger.info(
            "Order %s completed: %d lines, total_cents=%s", order.order_number, len(order.items), order.total_cents
        )
        return order, receipt

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def get_receipt_for_order(order_id: int) -> Receipt:
    receipt = db.session.query(Receipt).filter_by(order_id=order_id).first()
    if receipt is None:
        raise NotFoundError("Receipt not found")
    return receipt


def _orders_query(start: Optional[datetime], end: Optional[datetime], status: Optional[str] = None):
    q = db.session.query(Order)
    if start is not None:
        q = q.filter(Order.date >= start)
    if end is not None:
        q = q.filter(Order.date <= end)
    if status:
        q = q.filter(Order.status == status)
    return q


def list_orders(
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status: Optional[str] = None,
) -> list[Order]:
    return _orders_query(start, end, status).order_by(Order.date.asc(), Order.id.asc()).all()


def sales_summary(*, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
    orders = _orders_query(start, end).all()
    total_orders = len(orders)
    total_revenue_cents = sum(o.total_cents for o in orders)
    total_items = sum(item.quantity for o in orders for item in o.items)
    return {
        "totalOrders": total_orders,
        "totalRevenue": total_revenue_cents / 100,
        "totalItems": total_items,
        "averageOrderValue": round(total_revenue_cents / total_orders / 100, 2) if total_orders else 0,
    }
