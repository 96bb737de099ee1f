from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class InventoryMovement(db.Model):
    """
    Append-only stock ledger.

    Rows are written in the same transaction as the stock change they record
    (a sale line or a manual adjustment) and are never updated.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_inventory_movements_quantity_positive"),
        db.CheckConstraint("type IN ('inbound', 'outbound')", name="ck_inventory_movements_type"),
        db.Index("ix_inventory_movements_occurred_at", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    occurred_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    reason = db.Column(db.String(255), nullable=True)

    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<InventoryMovement id={self.id} {self.type} {self.quantity} product_id={self.product_id}>"
