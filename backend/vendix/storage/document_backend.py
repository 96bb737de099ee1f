# Overview: Document-store backend; mirrors the relational schema as indexed collections.

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Mapping, Sequence

from ..models.records import (
    category_record,
    license_record,
    movement_record,
    product_record,
    sale_line_record,
    sale_summary_record,
)
from ..time_utils import local_day_key, local_month_key, parse_iso_datetime, to_storage_z, utcnow
from ..validation import (
    BackendUnavailableError,
    NotFoundError,
    ReferentialConflict,
    ValidationError,
    round_quantity,
)
from .base import DOCUMENT, LICENSE_ROW_ID, StorageBackend, UnitOfWork
from .document_store import DocumentStore
from .raw_query import parse_select

logger = logging.getLogger(__name__)

# Bump only when adding collections or indexes; declarations are additive.
SCHEMA_VERSION = 5

# collection -> secondary indexes (same logical keys the SQL schema indexes)
SCHEMA = {
    "products": ("name", "category"),
    "categories": ("name",),
    "sales": ("sold_at",),
    "sale_lines": ("sale_id", "product_id"),
    "inventory_movements": ("product_id", "occurred_at"),
    "license": (),
}

PRODUCT_COLUMNS = ("name", "category", "cost_price_cents", "sale_price_cents", "unit", "stock")


def _dt(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return parse_iso_datetime(value)


class DocumentUnitOfWork(UnitOfWork):
    def __init__(self, store: DocumentStore):
        self.store = store
        self.products = store.collection("products")
        self.categories = store.collection("categories")
        self.sales = store.collection("sales")
        self.sale_lines = store.collection("sale_lines")
        self.movements = store.collection("inventory_movements")
        self.license = store.collection("license")

    def insert_product(self, values: Mapping[str, Any]) -> int:
        doc = {
            "name": values["name"],
            "category": values.get("category"),
            "cost_price_cents": values["cost_price_cents"],
            "sale_price_cents": values["sale_price_cents"],
            "unit": values.get("unit") or "unit",
            "stock": float(values.get("stock") or 0),
            "created_at": to_storage_z(utcnow()),
        }
        return self.products.add(doc)

    def product_exists(self, product_id: int) -> bool:
        return product_id in self.products.rows

    def update_product(self, product_id: int, values: Mapping[str, Any]) -> bool:
        # update-by-key is otherwise silent about missing rows
        if not self.product_exists(product_id):
            return False
        return self.products.update(product_id, {k: v for k, v in values.items() if k in PRODUCT_COLUMNS})

    def product_reference_counts(self, product_id: int) -> tuple[int, int]:
        return (
            self.sale_lines.count_where("product_id", product_id),
            self.movements.count_where("product_id", product_id),
        )

    def delete_product(self, product_id: int) -> bool:
        # no native foreign keys: emulate RESTRICT (sale lines) and CASCADE (movements)
        if self.sale_lines.count_where("product_id", product_id):
            raise ReferentialConflict(f"product #{product_id} is referenced by sale line items")
        if not self.products.delete(product_id):
            return False
        for key in self.movements.keys_where("product_id", product_id):
            self.movements.delete(key)
        return True

    def upsert_category(self, name: str) -> None:
        if not self.categories.count_where("name", name):
            self.categories.add({"name": name})

    def insert_sale(self, *, sold_at, total_cents: int) -> int:
        return self.sales.add({"sold_at": to_storage_z(sold_at), "total_cents": total_cents})

    def insert_sale_line(self, *, sale_id, product_id, quantity, unit_price_cents, subtotal_cents) -> int:
        if sale_id not in self.sales.rows:
            raise NotFoundError(f"sale #{sale_id} not found")
        if not self.product_exists(product_id):
            raise NotFoundError(f"product #{product_id} not found")
        return self.sale_lines.add(
            {
                "sale_id": sale_id,
                "product_id": product_id,
                "quantity": quantity,
                "unit_price_cents": unit_price_cents,
                "subtotal_cents": subtotal_cents,
            }
        )

    def decrement_stock(self, product_id: int, quantity: float) -> bool:
        # No conditional-update primitive: re-read and check immediately before
        # the write, inside the same (serialised) transaction.
        product = self.products.rows.get(product_id)
        if product is None or product.get("stock", 0) < quantity:
            return False
        return self.products.update(product_id, {"stock": round_quantity(product["stock"] - quantity)})

    def increment_stock(self, product_id: int, quantity: float) -> bool:
        product = self.products.rows.get(product_id)
        if product is None:
            return False
        return self.products.update(product_id, {"stock": round_quantity(product.get("stock", 0) + quantity)})

    def insert_movement(self, *, product_id, type, quantity, reason, occurred_at) -> int:
        if not self.product_exists(product_id):
            raise NotFoundError(f"product #{product_id} not found")
        return self.movements.add(
            {
                "product_id": product_id,
                "type": type,
                "quantity": quantity,
                "occurred_at": to_storage_z(occurred_at),
                "reason": reason,
            }
        )

    def put_license(self, *, key, activated_at, expires_at) -> None:
        self.license.put(
            {
                "id": LICENSE_ROW_ID,
                "key": key,
                "activated_at": to_storage_z(activated_at),
                "expires_at": to_storage_z(expires_at) if expires_at else None,
            }
        )

    def clear_all(self) -> dict[str, int]:
        return {
            name: self.store.collection(name).clear()
            for name in ("inventory_movements", "sale_lines", "sales", "products", "categories")
        }


class DocumentBackend(StorageBackend):
    mode = DOCUMENT

    def __init__(self, path: str | None = None, name: str = "vendix"):
        self.store = DocumentStore(name, path)

    # -- lifecycle --------------------------------------------------------

    def open(self) -> None:
        self.store.load()
        logger.info("Document store %r opened (%s)", self.store.name, self.store.path or "in memory")

    def close(self) -> None:
        logger.info("Document store %r closed", self.store.name)

    def ensure_schema(self) -> None:
        try:
            self.store.declare(SCHEMA_VERSION, SCHEMA)
        except OSError as exc:
            logger.exception("Document store schema declaration failed")
            raise BackendUnavailableError("could not write the document store") from exc

    @contextmanager
    def transaction(self):
        with self.store.transaction() as store:
            yield DocumentUnitOfWork(store)

    # -- reads ------------------------------------------------------------

    def _product_names(self) -> dict[int, str]:
        return {doc["id"]: doc["name"] for doc in self.store.collection("products").all()}

    def get_product(self, product_id: int) -> dict | None:
        with self.store.read():
            doc = self.store.collection("products").get(product_id)
            return product_record(**doc) if doc else None

    def list_products(self, category: str | None = None) -> list[dict]:
        with self.store.read():
            products = self.store.collection("products")
            docs = products.all() if category is None else products.where("category", category)
            return [product_record(**doc) for doc in docs]

    def list_categories(self) -> list[dict]:
        with self.store.read():
            docs = self.store.collection("categories").all()
            docs.sort(key=lambda d: (d["name"], d["id"]))
            return [category_record(**doc) for doc in docs]

    def _summaries(self, docs: list[dict]) -> list[dict]:
        lines = self.store.collection("sale_lines")
        return [
            sale_summary_record(
                id=doc["id"],
                sold_at=doc["sold_at"],
                total_cents=doc["total_cents"],
                item_count=lines.count_where("sale_id", doc["id"]),
            )
            for doc in docs
        ]

    def list_sales_summary(self, limit: int) -> list[dict]:
        with self.store.read():
            docs = sorted(self.store.collection("sales").all(), key=lambda d: d["id"], reverse=True)
            return self._summaries(docs[:limit])

    def recent_sales(self, limit: int) -> list[dict]:
        with self.store.read():
            docs = sorted(
                self.store.collection("sales").all(),
                key=lambda d: (_dt(d["sold_at"]), d["id"]),
                reverse=True,
            )
            return self._summaries(docs[:limit])

    def get_sale_lines(self, sale_id: int) -> list[dict]:
        with self.store.read():
            names = self._product_names()
            return [
                sale_line_record(**doc, product_name=names.get(doc["product_id"]))
                for doc in self.store.collection("sale_lines").where("sale_id", sale_id)
                if doc["product_id"] in names
            ]

    def list_movements(self, limit: int, product_id: int | None = None) -> list[dict]:
        with self.store.read():
            names = self._product_names()
            movements = self.store.collection("inventory_movements")
            docs = movements.all() if product_id is None else movements.where("product_id", product_id)
            docs = [d for d in docs if d["product_id"] in names]
            docs.sort(key=lambda d: d["id"], reverse=True)
            return [
                movement_record(**doc, product_name=names[doc["product_id"]])
                for doc in docs[:limit]
            ]

    def get_license(self) -> dict | None:
        with self.store.read():
            doc = self.store.collection("license").get(LICENSE_ROW_ID)
            return license_record(**doc) if doc else None

    # -- aggregation ------------------------------------------------------

    def sales_totals(self, *, period, offset_minutes, start=None, end=None) -> list[dict]:
        if period == "day":
            bucket = local_day_key
        elif period == "month":
            bucket = local_month_key
        else:
            raise ValidationError("period must be day or month")

        totals: dict[str, dict] = {}
        with self.store.read():
            for doc in self.store.collection("sales").all():
                sold_at = _dt(doc["sold_at"])
                if start is not None and sold_at < start:
                    continue
                if end is not None and sold_at >= end:
                    continue
                key = bucket(sold_at, offset_minutes)
                row = totals.setdefault(key, {"period": key, "sales_count": 0, "total_cents": 0})
                row["sales_count"] += 1
                row["total_cents"] += doc["total_cents"]
        return [totals[k] for k in sorted(totals)]

    def financial_totals(self) -> dict:
        with self.store.read():
            products = self.store.collection("products")
            sales = self.store.collection("sales").all()
            cost = 0.0
            for line in self.store.collection("sale_lines").all():
                product = products.rows.get(line["product_id"])
                if product is not None:
                    cost += line["quantity"] * product["cost_price_cents"]
            return {
                "revenue_cents": sum(s["total_cents"] for s in sales),
                "cost_cents": cost,
                "sale_count": len(sales),
                "product_count": len(products),
            }

    def low_stock(self, threshold: float, limit: int) -> list[dict]:
        with self.store.read():
            docs = [d for d in self.store.collection("products").all() if d["stock"] <= threshold]
            docs.sort(key=lambda d: (d["stock"], d["id"]))
            return [product_record(**doc) for doc in docs[:limit]]

    def run_raw_query(self, query_text: str, params: Sequence | Mapping | None = None) -> list[dict]:
        query = parse_select(query_text, params)
        with self.store.read():
            if query.collection not in self.store.collections:
                raise ValidationError(f"unknown collection: {query.collection}")
            return query.apply(self.store.collection(query.collection).all())

    def snapshot(self) -> dict[str, list[dict]]:
        with self.store.read():
            return {name: coll.all() for name, coll in self.store.collections.items()}
