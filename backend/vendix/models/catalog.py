from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow
from .records import category_record, product_record


class Product(db.Model):
    """
    Product master data.

    STOCK: `stock` is the single source of truth for on-hand quantity.
    Sales and manual adjustments change it only through guarded updates that
    also append an InventoryMovement row in the same transaction.

    CATEGORY: `category` is free text, soft-referenced to Category by name.
    There is no foreign key; orphaned names are allowed.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("cost_price_cents >= 0", name="ck_products_cost_non_negative"),
        db.CheckConstraint("sale_price_cents >= 0", name="ck_products_sale_non_negative"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)

    # Authoritative storage in cents (callers may only format for display)
    cost_price_cents = db.Column(db.Integer, nullable=False)
    sale_price_cents = db.Column(db.Integer, nullable=False)

    # unit | kilogram | pound
    unit = db.Column(db.String(16), nullable=False, default="unit")
    stock = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return product_record(
            id=self.id,
            name=self.name,
            category=self.category,
            cost_price_cents=self.cost_price_cents,
            sale_price_cents=self.sale_price_cents,
            unit=self.unit,
            stock=self.stock,
            created_at=self.created_at,
        )


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    # Case-sensitive uniqueness (SQLite default BINARY collation)
    name = db.Column(db.String(120), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return category_record(id=self.id, name=self.name)
