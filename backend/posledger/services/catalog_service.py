# Overview: Service-layer operations for the product catalog.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, OrderItem, Cancellation
from ..models.catalog import MOVEMENT_ADJUSTMENT, MOVEMENT_STOCK_IN
from ..time_utils import epoch_millis
from ..validation import ConflictError, NotFoundError
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import record_movement


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def list_low_stock() -> list[Product]:
    """Products at or below their reorder threshold."""
    return (
        db.session.query(Product)
        .filter(Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _ensure_sku_available(sku: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"SKU already exists: {sku}")


def create_product(*, patch: dict) -> Product:
    """Create product from a validated patch dict (see PRODUCT_POLICY)."""
    def _op():
        data = dict(patch)
        if not data.get("sku"):
            data["sku"] = f"SKU-{epoch_millis()}"
        data.setdefault("min_stock", current_app.config["DEFAULT_MIN_STOCK"])
        _ensure_sku_available(data["sku"])
        opening_stock = data.pop("stock", 0) or 0

        product = Product(stock=0, **data)
        db.session.add(product)
        if opening_stock:
            record_movement(product, MOVEMENT_STOCK_IN, opening_stock, reason="Opening stock")
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(f"SKU already exists: {data['sku']}")
        return product

    return run_with_retry(_op)


def update_product(product_id: int, *, patch: dict) -> Product:
    """Apply a validated patch. A stock change is recorded as an adjustment."""
    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError("Product not found")

        if "sku" in patch and patch["sku"] != product.sku:
            _ensure_sku_available(patch["sku"], exclude_id=product.id)

        changes = dict(patch)
        counted = changes.pop("stock", None)
        for key, value in changes.items():
            setattr(product, key, value)
        if counted is not None and counted != product.stock:
            record_movement(
                product, MOVEMENT_ADJUSTMENT, counted - product.stock, reason="Product edit"
            )

        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    """
    Delete a product that no order or cancellation references.

    Order lines keep a foreign key to the product, so sold products stay in
    the catalog for history. The product's stock movements go with it.
    """
    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found")

        referenced = (
            db.session.query(OrderItem.id).filter_by(product_id=product_id).first()
            or db.session.query(Cancellation.id).filter_by(product_id=product_id).first()
        )
        if referenced:
            raise ConflictError("Product has sales history and cannot be deleted")

        db.session.delete(product)
        db.session.commit()

    run_with_retry(_op)
