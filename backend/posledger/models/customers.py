from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer contact record.

    Orders reference customers through Order.customer_id, a free-form string
    supplied at checkout; for a registered customer it is str(Customer.id).
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, default="")
    phone = db.Column(db.String(32), nullable=False, default="", index=True)
    whatsapp = db.Column(db.String(32), nullable=False, default="")
    address = db.Column(db.String(500), nullable=False, default="")
    city = db.Column(db.String(128), nullable=False, default="")
    postal_code = db.Column(db.String(16), nullable=False, default="")
    country = db.Column(db.String(64), nullable=False, default="Indonesia")
    customer_type = db.Column(db.String(32), nullable=False, default="retail")
    notes = db.Column(db.String(2000), nullable=False, default="")
    tags = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "whatsapp": self.whatsapp,
            "address": self.address,
            "city": self.city,
            "postalCode": self.postal_code,
            "country": self.country,
            "customerType": self.customer_type,
            "notes": self.notes,
            "tags": list(self.tags or []),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
