"""
Cancellation Workflow - manager-approved removal of a line from an order

LIFECYCLE:
1. Request (cashier) -> pending. Snapshots quantity, price, amount and cost
   from the order line.
2. Approve (manager) -> approved. Removes the line, recomputes the order
   totals (discount and tax carried over unchanged) and restores the
   snapshotted quantity to stock, in one transaction.
3. Reject (manager) -> rejected. Order and stock untouched.

approved and rejected are terminal. Acting on a request that is no longer
pending raises AlreadyProcessedError and changes nothing.

Ledger: by default approval does NOT reverse the sale's ledger entries;
the original posting stays as it was. Set POST_CANCELLATION_REVERSALS to post
a reversing journal for the cancelled line.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import Cancellation, Order, OrderItem, Product
from ..models.catalog import MOVEMENT_CANCELLATION
from ..models.sales import (
    CANCELLATION_STATUS_APPROVED,
    CANCELLATION_STATUS_PENDING,
    CANCELLATION_STATUS_REJECTED,
)
from ..time_utils import utcnow
from ..validation import (
    AlreadyProcessedError,
    ConflictError,
    NotFoundError,
    ValidationError,
    optional_text,
    parse_positive_int,
)
from .concurrency import begin_write, lock_for_update, run_with_retry
from .inventory_service import record_movement
from .ledger_service import post_cancellation_reversal


def request_cancellation(*, order_id, item_id, reason, requested_by=None) -> Cancellation:
    """
    Create a pending cancellation request for one order line.

    Raises:
        ValidationError: missing orderId, itemId or reason
        NotFoundError: order or line not found
        ConflictError: the line already has a pending request
    """
    if order_id in (None, "") or item_id in (None, "") or not (reason and str(reason).strip()):
        raise ValidationError("Order ID, item ID, and reason are required")
    order_id = parse_positive_int(order_id, "orderId")
    item_id = parse_positive_int(item_id, "itemId")
    reason = optional_text(reason, "reason", max_length=255)
    requested_by = optional_text(requested_by, "requestedBy", max_length=64) or "system"

    def _op():
        begin_write()
        order = db.session.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order not found")

        item = db.session.query(OrderItem).filter_by(id=item_id, order_id=order.id).first()
        if item is None:
            raise NotFoundError("Item not found in order")

        duplicate = (
            db.session.query(Cancellation.id)
            .filter_by(order_item_id=item.id, status=CANCELLATION_STATUS_PENDING)
            .first()
        )
        if duplicate:
            raise ConflictError(
                "A cancellation request for this item is already pending",
                details={"cancellation_id": duplicate[0]},
            )

        cancellation = Cancellation(
            order_id=order.id,
            order_number=order.order_number,
            order_item_id=item.id,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            unit_cost_cents=item.unit_cost_cents,
            amount_cents=item.line_total_cents,
            reason=reason,
            status=CANCELLATION_STATUS_PENDING,
            requested_by=requested_by,
            requested_at=utcnow(),
        )
        db.session.add(cancellation)
        db.session.commit()

        current_app.logger.info(
            "Cancellation %s requested for order %s item %s by %s",
            cancellation.id, order.order_number, item.id, requested_by,
        )
        return cancellation

    return run_with_retry(_op)


def _lock_pending(cancellation_id: int) -> Cancellation:
    cancellation = lock_for_update(
        db.session.query(Cancellation).filter_by(id=cancellation_id)
    ).first()
    if cancellation is None:
        raise NotFoundError("Cancellation request not found")
    if not cancellation.is_pending:
        raise AlreadyProcessedError(
            "Cancellation request already processed",
            details={"status": cancellation.status},
        )
    return cancellation


def approve_cancellation(cancellation_id: int, *, approved_by=None) -> Cancellation:
    """
    Approve a pending request: remove the line, recompute the order totals,
    restore stock, and mark the request approved. One transaction.
    """
    approved_by = optional_text(approved_by, "approvedBy", max_length=64) or "manager"

    def _op():
        begin_write()
        cancellation = _lock_pending(cancellation_id)

        order = lock_for_update(db.session.query(Order).filter_by(id=cancellation.order_id)).first()
        if order is None:
            raise NotFoundError("Order not found")

        item = next((i for i in order.items if i.id == cancellation.order_item_id), None)
        if item is None:
            raise ConflictError("Item is no longer on the order")

        product = lock_for_update(db.session.query(Product).filter_by(id=cancellation.product_id)).first()
        if product is None:
            raise NotFoundError("Product not found")

        order.items.remove(item)
        order.recalculate_totals()
        record_movement(
            product,
            MOVEMENT_CANCELLATION,
            cancellation.quantity,
            reason=f"Cancelled item on Order #{cancellation.order_number}",
            reference=str(cancellation.id),
            user_id=approved_by,
        )

        cancellation.status = CANCELLATION_STATUS_APPROVED
        cancellation.approved_by = approved_by
        cancellation.approved_at = utcnow()

        if current_app.config.get("POST_CANCELLATION_REVERSALS"):
            post_cancellation_reversal(cancellation)

        db.session.commit()
        current_app.logger.info(
            "Cancellation %s approved by %s: order %s total_cents=%s, product %s stock=%s",
            cancellation.id, approved_by, order.order_number, order.total_cents, product.id, product.stock,
        )
        return cancellation

    return run_with_retry(_op)


def reject_cancellation(cancellation_id: int, *, rejected_by=None, rejection_reason=None) -> Cancellation:
    """Reject a pending request. The order and stock are not touched."""
    rejected_by = optional_text(rejected_by, "rejectedBy", max_length=64) or "manager"
    rejection_reason = optional_text(rejection_reason, "rejectionReason", max_length=255) or "No reason provided"

    def _op():
        begin_write()
        cancellation = _lock_pending(cancellation_id)

        cancellation.status = CANCELLATION_STATUS_REJECTED
        cancellation.rejected_by = rejected_by
        cancellation.rejected_at = utcnow()
        cancellation.rejection_reason = rejection_reason

        db.session.commit()
        current_app.logger.info("Cancellation %s rejected by %s", cancellation.id, rejected_by)
        return cancellation

    return run_with_retry(_op)


def list_cancellations(
    *,
    status: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[Cancellation]:
    q = db.session.query(Cancellation)
    if status:
        q = q.filter(Cancellation.status == status)
    if start is not None:
        q = q.filter(Cancellation.requested_at >= start)
    if end is not None:
        q = q.filter(Cancellation.requested_at <= end)
    return q.order_by(Cancellation.requested_at.asc(), Cancellation.id.asc()).all()
