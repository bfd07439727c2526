# Overview: Service-layer operations for stock movements; every change to a product's stock goes through here.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import InventoryTransaction, Product
from ..models.catalog import (
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_STOCK_IN,
    MOVEMENT_STOCK_OUT,
    MOVEMENT_TYPES,
)
from ..time_utils import utcnow
from ..validation import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    optional_text,
    parse_non_negative_int,
    parse_positive_int,
)
from .concurrency import begin_write, lock_for_update, run_with_retry
"""
Inventory Invariants (authoritative)

- Product.stock is changed ONLY through record_movement(), which appends an
  InventoryTransaction with the delta and the before/after quantities in the
  caller's database transaction.
- Stock never goes negative: a movement that would take it below zero raises
  InsufficientStockError and nothing is written.
- For every product, stock == SUM(quantity_delta) over its movements.
- Movements are append-only.
"""


def record_movement(
    product: Product,
    movement_type: str,
    quantity_delta: int,
    *,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    reference: Optional[str] = None,
    user_id: Optional[str] = None,
) -> InventoryTransaction:
    """Apply a stock delta and append its audit row (no commit)."""
    old_quantity = product.stock or 0
    new_quantity = old_quantity + quantity_delta
    if new_quantity < 0:
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}",
            details={"items": [{
                "product_id": product.id,
                "product_name": product.name,
                "requested_quantity": -quantity_delta,
                "stock": old_quantity,
            }]},
        )

    product.stock = new_quantity
    tx = InventoryTransaction(
        product=product,
        type=movement_type,
        quantity_delta=quantity_delta,
        old_quantity=old_quantity,
        new_quantity=new_quantity,
        reason=reason or "",
        notes=notes or "",
        reference=reference,
        user_id=user_id or "system",
        date=utcnow(),
    )
    db.session.add(tx)
    return tx


def _lock_product(product_id: int) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _movement_fields(reason, notes, user_id, default_reason: str) -> dict:
    return {
        "reason": optional_text(reason, "reason", max_length=255) or default_reason,
        "notes": optional_text(notes, "notes", max_length=2000) or "",
        "user_id": optional_text(user_id, "userId", max_length=64) or "system",
    }


def _move(product_id: int, movement_type: str, quantity: int, fields: dict) -> InventoryTransaction:
    def _op():
        begin_write()
        product = _lock_product(product_id)
        delta = quantity if movement_type == MOVEMENT_STOCK_IN else -quantity
        tx = record_movement(product, movement_type, delta, **fields)
        db.session.commit()
        current_app.logger.info(
            "%s of %d for product %s: stock %d -> %d",
            movement_type, quantity, product.id, tx.old_quantity, tx.new_quantity,
        )
        return tx

    return run_with_retry(_op)


def stock_in(*, product_id, quantity, reason=None, notes=None, user_id=None) -> InventoryTransaction:
    """Receive stock for a product."""
    if product_id in (None, "") or quantity in (None, ""):
        raise ValidationError("Product ID and quantity are required")
    product_id = parse_positive_int(product_id, "productId")
    quantity = parse_positive_int(quantity, "quantity")
    fields = _movement_fields(reason, notes, user_id, "Manual Entry")
    return _move(product_id, MOVEMENT_STOCK_IN, quantity, fields)


def stock_out(*, product_id, quantity, reason=None, notes=None, user_id=None) -> InventoryTransaction:
    """
    Remove stock from a product (damage, internal use, supplier return).

    Raises InsufficientStockError when the quantity exceeds stock on hand.
    """
    if product_id in (None, "") or quantity in (None, ""):
        raise ValidationError("Product ID and quantity are required")
    product_id = parse_positive_int(product_id, "productId")
    quantity = parse_positive_int(quantity, "quantity")
    fields = _movement_fields(reason, notes, user_id, "Manual Entry")
    return _move(product_id, MOVEMENT_STOCK_OUT, quantity, fields)


def adjust_stock(*, product_id, new_quantity, reason=None, notes=None, user_id=None) -> InventoryTransaction:
    """
    Set a product's stock to a counted quantity.

    The movement records the difference plus the old and new quantities. A
    count equal to the current stock is still recorded with a zero delta.
    """
    if product_id in (None, "") or new_quantity in (None, ""):
        raise ValidationError("Product ID and new quantity are required")
    product_id = parse_positive_int(product_id, "productId")
    new_quantity = parse_non_negative_int(new_quantity, "newQuantity")
    fields = _movement_fields(reason, notes, user_id, "Stock Adjustment")

    def _op():
        begin_write()
        product = _lock_product(product_id)
        tx = record_movement(product, MOVEMENT_ADJUSTMENT, new_quantity - (product.stock or 0), **fields)
        db.session.commit()
        current_app.logger.info(
            "Stock of product %s adjusted %d -> %d by %s",
            product.id, tx.old_quantity, tx.new_quantity, tx.user_id,
        )
        return tx

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def list_stock() -> list[dict]:
    """Stock level per product, ordered by name."""
    products = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()
    return [
        {
            "productId": p.id,
            "sku": p.sku,
            "name": p.name,
            "stock": p.stock,
            "minStock": p.min_stock,
            "unit": p.unit,
            "isLowStock": p.is_low_stock,
        }
        for p in products
    ]


def list_transactions(
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    type: Optional[str] = None,
    product_id: Optional[int] = None,
) -> list[InventoryTransaction]:
    if type and type not in MOVEMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(MOVEMENT_TYPES)}")

    q = db.session.query(InventoryTransaction)
    if start is not None:
        q = q.filter(InventoryTransaction.date >= start)
    if end is not None:
        q = q.filter(InventoryTransaction.date <= end)
    if type:
        q = q.filter(InventoryTransaction.type == type)
    if product_id is not None:
        q = q.filter(InventoryTransaction.product_id == product_id)
    return q.order_by(InventoryTransaction.date.asc(), InventoryTransaction.id.asc()).all()
