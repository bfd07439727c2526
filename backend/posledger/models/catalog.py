from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import cents_to_amount


class Product(db.Model):
    """
    Product master data.

    Stock is a mutable counter owned by the catalog. Completed sales decrement
    it, approved cancellations restore it. The check constraint backs the
    service-level guarantee that stock never goes negative.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_nonnegative"),
        db.CheckConstraint("cost_cents >= 0", name="ck_products_cost_nonnegative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=False, default="General")

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=10)
    unit = db.Column(db.String(16), nullable=False, default="pcs")
    barcode = db.Column(db.String(64), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": cents_to_amount(self.price_cents),
            "cost": cents_to_amount(self.cost_cents),
            "stock": self.stock,
            "minStock": self.min_stock,
            "unit": self.unit,
            "barcode": self.barcode,
            "isLowStock": self.is_low_stock,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


MOVEMENT_STOCK_IN = "stock-in"
MOVEMENT_STOCK_OUT = "stock-out"
MOVEMENT_ADJUSTMENT = "adjustment"
MOVEMENT_SALE = "sale"
MOVEMENT_CANCELLATION = "cancellation"

MOVEMENT_TYPES = (
    MOVEMENT_STOCK_IN,
    MOVEMENT_STOCK_OUT,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_SALE,
    MOVEMENT_CANCELLATION,
)


class InventoryTransaction(db.Model):
    """
    Append-only record of one change to a product's stock counter.

    Every writer of Product.stock (product create/edit, stock in/out/adjust,
    checkout, approved cancellations) adds a row in the same transaction, so
    a product's stock equals the sum of its quantity_delta values.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_invtx_product_date", "product_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    old_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=False, default="")
    notes = db.Column(db.String(2000), nullable=False, default="")
    # order id for sales, cancellation id for cancellations
    reference = db.Column(db.String(64), nullable=True, index=True)
    user_id = db.Column(db.String(64), nullable=False, default="system")

    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = db.relationship(
        "Product",
        backref=db.backref("inventory_transactions", cascade="all, delete-orphan", lazy=True),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product.name if self.product else None,
            "type": self.type,
            "quantity": self.quantity_delta,
            "oldQuantity": self.old_quantity,
            "newQuantity": self.new_quantity,
            "reason": self.reason,
            "notes": self.notes,
            "reference": self.reference,
            "userId": self.user_id,
            "date": to_utc_z(self.date),
        }
