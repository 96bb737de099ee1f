from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class Sale(db.Model):
    """
    Sale header. Immutable once committed: there is no update path.

    total_cents always equals the sum of its lines' subtotal_cents.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
        db.Index("ix_sales_sold_at", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sold_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    total_cents = db.Column(db.Integer, nullable=False)

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} total_cents={self.total_cents}>"


class SaleLine(db.Model):
    """Individual line items on a sale; unit price is captured at sale time."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_sale_lines_price_non_negative"),
        db.CheckConstraint("subtotal_cents >= 0", name="ck_sale_lines_subtotal_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(
        db.Integer,
        db.ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = db.Column(db.Float, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<SaleLine id={self.id} sale_id={self.sale_id} product_id={self.product_id}>"
