from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import cents_to_amount


ORDER_STATUS_COMPLETED = "completed"


class Order(db.Model):
    """
    Completed sale document.

    Created by the order engine with status `completed`. The cancellation
    workflow is the only other writer: it removes lines and recomputes the
    totals in place, it never creates a replacement order.

    order_number is a human label derived from wall-clock time. It is not
    unique and is never used as a key.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_date", "status", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, index=True)

    customer_id = db.Column(db.String(64), nullable=True)
    outlet_id = db.Column(db.String(64), nullable=True)
    user_id = db.Column(db.String(64), nullable=False, default="system")

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_COMPLETED, index=True)

    # Business time of the sale
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def recalculate_totals(self) -> None:
        """subtotal = sum of line totals; total = subtotal - discount + tax."""
        self.subtotal_cents = sum(item.line_total_cents for item in self.items)
        self.total_cents = self.subtotal_cents - (self.discount_cents or 0) + (self.tax_cents or 0)

    @property
    def total_cost_cents(self) -> int:
        return sum((item.unit_cost_cents or 0) * item.quantity for item in self.items)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "items": [item.to_dict() for item in self.items],
            "customerId": self.customer_id,
            "outletId": self.outlet_id,
            "subtotal": cents_to_amount(self.subtotal_cents),
            "discount": cents_to_amount(self.discount_cents),
            "tax": cents_to_amount(self.tax_cents),
            "total": cents_to_amount(self.total_cents),
            "paymentMethod": self.payment_method,
            "status": self.status,
            "date": to_utc_z(self.date),
            "userId": self.user_id,
            "updatedAt": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Line item on an order; price and cost are snapshotted at sale time."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "price": cents_to_amount(self.unit_price_cents),
            "cost": cents_to_amount(self.unit_cost_cents),
            "total": cents_to_amount(self.line_total_cents),
        }


class Receipt(db.Model):
    """
    Receipt issued for an order.

    Holds a frozen copy of the order as it was at checkout; later
    cancellations change the order, never the receipt.
    """
    __tablename__ = "receipts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    receipt_number = db.Column(db.String(32), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, unique=True)
    order_number = db.Column(db.String(32), nullable=False)
    order_snapshot = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    order = db.relationship("Order", backref=db.backref("receipt", uselist=False))

    def to_dict(self) -> dict:
        data = dict(self.order_snapshot or {})
        data.update({
            "id": self.id,
            "orderId": self.order_id,
            "orderNumber": self.order_number,
            "receiptNumber": self.receipt_number,
            "createdAt": to_utc_z(self.created_at),
        })
        return data


CANCELLATION_STATUS_PENDING = "pending"
CANCELLATION_STATUS_APPROVED = "approved"
CANCELLATION_STATUS_REJECTED = "rejected"


class Cancellation(db.Model):
    """
    Item-level cancellation request against a completed order.

    LIFECYCLE:
    pending -> approved | rejected. Both outcomes are terminal.

    Quantity, price and amount are snapshotted from the order line when the
    request is made; approval acts on the snapshot. order_item_id is a plain
    column because approval deletes the referenced line.
    """
    __tablename__ = "cancellations"
    __table_args__ = (
        db.Index("ix_cancellations_status_requested", "status", "requested_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    order_number = db.Column(db.String(32), nullable=False)
    order_item_id = db.Column(db.Integer, nullable=False, index=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_cents = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=CANCELLATION_STATUS_PENDING, index=True)

    requested_by = db.Column(db.String(64), nullable=False, default="system")
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    approved_by = db.Column(db.String(64), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_by = db.Column(db.String(64), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    order = db.relationship("Order", backref=db.backref("cancellations", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_pending(self) -> bool:
        return self.status == CANCELLATION_STATUS_PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "orderNumber": self.order_number,
            "itemId": self.order_item_id,
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "price": cents_to_amount(self.unit_price_cents),
            "amount": cents_to_amount(self.amount_cents),
            "reason": self.reason,
            "status": self.status,
            "requestedBy": self.requested_by,
            "requestedAt": to_utc_z(self.requested_at),
            "approvedBy": self.approved_by,
            "approvedAt": to_utc_z(self.approved_at),
            "rejectedBy": self.rejected_by,
            "rejectedAt": to_utc_z(self.rejected_at),
            "rejectionReason": self.rejection_reason,
        }
