# Overview: Embedded relational backend (SQLite through Flask-SQLAlchemy).

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Mapping, Sequence

from flask import Flask, has_app_context
from sqlalchemy import func, text, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from ..extensions import db
from ..models import Category, InventoryMovement, License, Product, Sale, SaleLine
from ..models.records import (
    movement_record,
    sale_line_record,
    sale_summary_record,
)
from ..time_utils import offset_modifier, to_storage_z
from ..validation import (
    BackendUnavailableError,
    NotFoundError,
    QUANTITY_PLACES,
    ReferentialConflict,
    ValidationError,
)
from .base import EMBEDDED, LICENSE_ROW_ID, StorageBackend, UnitOfWork
from .raw_query import ensure_select_statement

logger = logging.getLogger(__name__)


class SqlUnitOfWork(UnitOfWork):
    def __init__(self, session):
        self.session = session

    def insert_product(self, values: Mapping[str, Any]) -> int:
        product = Product(**values)
        self.session.add(product)
        self.session.flush()
        return product.id

    def product_exists(self, product_id: int) -> bool:
        return self.session.query(Product.id).filter_by(id=product_id).first() is not None

    def update_product(self, product_id: int, values: Mapping[str, Any]) -> bool:
        if not values:
            return self.product_exists(product_id)
        result = self.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def product_reference_counts(self, product_id: int) -> tuple[int, int]:
        lines = self.session.query(func.count(SaleLine.id)).filter_by(product_id=product_id).scalar()
        movements = (
            self.session.query(func.count(InventoryMovement.id))
            .filter_by(product_id=product_id)
            .scalar()
        )
        return int(lines or 0), int(movements or 0)

    def delete_product(self, product_id: int) -> bool:
        try:
            deleted = (
                self.session.query(Product)
                .filter_by(id=product_id)
                .delete(synchronize_session=False)
            )
            self.session.flush()
        except IntegrityError as exc:
            # ON DELETE RESTRICT from sale_lines.product_id
            raise ReferentialConflict(f"product #{product_id} is referenced by sale line items") from exc
        return deleted > 0

    def upsert_category(self, name: str) -> None:
        # Runs under BEGIN IMMEDIATE: no other writer can insert between the check and the add.
        exists = self.session.query(Category.id).filter_by(name=name).first()
        if exists is None:
            self.session.add(Category(name=name))
            self.session.flush()

    def insert_sale(self, *, sold_at, total_cents: int) -> int:
        sale = Sale(sold_at=sold_at, total_cents=total_cents)
        self.session.add(sale)
        self.session.flush()
        return sale.id

    def insert_sale_line(self, *, sale_id, product_id, quantity, unit_price_cents, subtotal_cents) -> int:
        if not self.product_exists(product_id):
            raise NotFoundError(f"product #{product_id} not found")
        line = SaleLine(
            sale_id=sale_id,
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            subtotal_cents=subtotal_cents,
        )
        self.session.add(line)
        self.session.flush()
        return line.id

    def decrement_stock(self, product_id: int, quantity: float) -> bool:
        # Single conditional UPDATE: the sufficiency check and the write are one statement.
        result = self.session.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=func.round(Product.stock - quantity, QUANTITY_PLACES))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment_stock(self, product_id: int, quantity: float) -> bool:
        result = self.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=func.round(Product.stock + quantity, QUANTITY_PLACES))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def insert_movement(self, *, product_id, type, quantity, reason, occurred_at) -> int:
        movement = InventoryMovement(
            product_id=product_id,
            type=type,
            quantity=quantity,
            reason=reason,
            occurred_at=occurred_at,
        )
        self.session.add(movement)
        self.session.flush()
        return movement.id

    def put_license(self, *, key, activated_at, expires_at) -> None:
        self.session.merge(
            License(id=LICENSE_ROW_ID, key=key, activated_at=activated_at, expires_at=expires_at)
        )
        self.session.flush()

    def clear_all(self) -> dict[str, int]:
        counts = {}
        for model in (InventoryMovement, SaleLine, Sale, Product, Category):
            counts[model.__tablename__] = (
                self.session.query(model).delete(synchronize_session=False)
            )
        self.session.flush()
        return counts


class SqlBackend(StorageBackend):
    """
    Embedded relational backend.

    Uses the Flask-SQLAlchemy session bound to the owning app. Calls made
    outside an app context (worker threads, scripts) push one for their
    duration, so each thread works with its own session and connection.
    """
    mode = EMBEDDED
    retryable_errors = (OperationalError,)

    def __init__(self, app: Flask):
        self.app = app

    @contextmanager
    def _context(self):
        if has_app_context():
            yield
        else:
            with self.app.app_context():
                yield

    @property
    def _is_sqlite(self) -> bool:
        return db.engine.dialect.name == "sqlite"

    # -- lifecycle --------------------------------------------------------

    def open(self) -> None:
        with self._context():
            with db.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
        logger.info("Embedded database opened: %s", self.app.config.get("SQLALCHEMY_DATABASE_URI"))

    def close(self) -> None:
        with self._context():
            db.session.remove()
            db.engine.dispose()
        logger.info("Embedded database closed")

    def ensure_schema(self) -> None:
        try:
            with self._context():
                # create_all orders tables by foreign-key dependency and skips existing ones
                db.create_all()
        except SQLAlchemyError as exc:
            logger.exception("Schema creation failed")
            raise BackendUnavailableError("could not create database schema") from exc

    @contextmanager
    def transaction(self):
        with self._context():
            session = db.session
            try:
                if self._is_sqlite:
                    # foreign_keys is per connection and ignored inside a transaction
                    session.execute(text("PRAGMA foreign_keys = ON"))
                    session.execute(text("BEGIN IMMEDIATE"))
                yield SqlUnitOfWork(session)
                session.commit()
            except BaseException:
                session.rollback()
                raise

    # -- reads ------------------------------------------------------------

    def get_product(self, product_id: int) -> dict | None:
        with self._context():
            product = db.session.get(Product, product_id)
            return product.to_dict() if product else None

    def list_products(self, category: str | None = None) -> list[dict]:
        with self._context():
            q = db.session.query(Product)
            if category is not None:
                q = q.filter(Product.category == category)
            return [p.to_dict() for p in q.order_by(Product.id.asc()).all()]

    def list_categories(self) -> list[dict]:
        with self._context():
            rows = db.session.query(Category).order_by(Category.name.asc(), Category.id.asc()).all()
            return [c.to_dict() for c in rows]

    def _sale_summaries(self, order_by, limit: int) -> list[dict]:
        item_count = (
            db.session.query(func.count(SaleLine.id))
            .filter(SaleLine.sale_id == Sale.id)
            .correlate(Sale)
            .scalar_subquery()
        )
        rows = (
            db.session.query(Sale.id, Sale.sold_at, Sale.total_cents, item_count.label("item_count"))
            .order_by(*order_by)
            .limit(limit)
            .all()
        )
        return [
            sale_summary_record(
                id=r.id, sold_at=r.sold_at, total_cents=r.total_cents, item_count=r.item_count
            )
            for r in rows
        ]

    def list_sales_summary(self, limit: int) -> list[dict]:
        with self._context():
            return self._sale_summaries((Sale.id.desc(),), limit)

    def recent_sales(self, limit: int) -> list[dict]:
        with self._context():
            return self._sale_summaries((Sale.sold_at.desc(), Sale.id.desc()), limit)

    def get_sale_lines(self, sale_id: int) -> list[dict]:
        with self._context():
            rows = (
                db.session.query(SaleLine, Product.name)
                .join(Product, Product.id == SaleLine.product_id)
                .filter(SaleLine.sale_id == sale_id)
                .order_by(SaleLine.id.asc())
                .all()
            )
            return [
                sale_line_record(
                    id=line.id,
                    sale_id=line.sale_id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    subtotal_cents=line.subtotal_cents,
                    product_name=name,
                )
                for line, name in rows
            ]

    def list_movements(self, limit: int, product_id: int | None = None) -> list[dict]:
        with self._context():
            q = (
                db.session.query(InventoryMovement, Product.name)
                .join(Product, Product.id == InventoryMovement.product_id)
            )
            if product_id is not None:
                q = q.filter(InventoryMovement.product_id == product_id)
            rows = q.order_by(InventoryMovement.id.desc()).limit(limit).all()
            return [
                movement_record(
                    id=m.id,
                    product_id=m.product_id,
                    type=m.type,
                    quantity=m.quantity,
                    occurred_at=m.occurred_at,
                    reason=m.reason,
                    product_name=name,
                )
                for m, name in rows
            ]

    def get_license(self) -> dict | None:
        with self._context():
            row = db.session.get(License, LICENSE_ROW_ID)
            return row.to_dict() if row else None

    # -- aggregation ------------------------------------------------------

    def sales_totals(self, *, period, offset_minutes, start=None, end=None) -> list[dict]:
        if period == "day":
            fmt = "%Y-%m-%d"
        elif period == "month":
            fmt = "%Y-%m"
        else:
            raise ValidationError("period must be day or month")

        with self._context():
            period_expr = func.strftime(fmt, Sale.sold_at, offset_modifier(offset_minutes))
            q = db.session.query(
                period_expr.label("period"),
                func.count(Sale.id).label("sales_count"),
                func.coalesce(func.sum(Sale.total_cents), 0).label("total_cents"),
            )
            if start is not None:
                q = q.filter(Sale.sold_at >= start)
            if end is not None:
                q = q.filter(Sale.sold_at < end)
            rows = q.group_by("period").order_by("period").all()
            return [
                {
                    "period": r.period,
                    "sales_count": int(r.sales_count or 0),
                    "total_cents": int(r.total_cents or 0),
                }
                for r in rows
            ]

    def financial_totals(self) -> dict:
        with self._context():
            revenue = db.session.query(func.coalesce(func.sum(Sale.total_cents), 0)).scalar()
            cost = (
                db.session.query(
                    func.coalesce(func.sum(SaleLine.quantity * Product.cost_price_cents), 0)
                )
                .select_from(SaleLine)
                .join(Product, Product.id == SaleLine.product_id)
                .scalar()
            )
            sale_count = db.session.query(func.count(Sale.id)).scalar()
            product_count = db.session.query(func.count(Product.id)).scalar()
            return {
                "revenue_cents": int(revenue or 0),
                "cost_cents": float(cost or 0),
                "sale_count": int(sale_count or 0),
                "product_count": int(product_count or 0),
            }

    def low_stock(self, threshold: float, limit: int) -> list[dict]:
        with self._context():
            rows = (
                db.session.query(Product)
                .filter(Product.stock <= threshold)
                .order_by(Product.stock.asc(), Product.id.asc())
                .limit(limit)
                .all()
            )
            return [p.to_dict() for p in rows]

    def run_raw_query(self, query_text: str, params: Sequence | Mapping | None = None) -> list[dict]:
        ensure_select_statement(query_text)
        with self._context():
            try:
                if isinstance(params, (list, tuple)):
                    # qmark placeholders go straight to the driver
                    result = db.session.connection().exec_driver_sql(query_text, tuple(params))
                else:
                    result = db.session.execute(text(query_text), dict(params or {}))
                return [dict(row._mapping) for row in result]
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise ValidationError(f"query failed: {exc.__class__.__name__}") from exc

    def snapshot(self) -> dict[str, list[dict]]:
        with self._context():
            out = {}
            for table in db.metadata.sorted_tables:
                rows = db.session.execute(table.select().order_by(*table.primary_key.columns))
                out[table.name] = [
                    {k: (to_storage_z(v) if hasattr(v, "isoformat") else v) for k, v in row._mapping.items()}
                    for row in rows
                ]
            return out
