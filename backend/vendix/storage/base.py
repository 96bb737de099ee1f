"""
Storage interface shared by the embedded SQL backend and the document store.

Business rules (validation, the sale state machine, the ledger contract)
live in the service layer and only talk to these two abstractions:

- StorageBackend: lifecycle, schema, transaction scope and read queries.
- UnitOfWork: the write primitives available inside one transaction scope.

Every write goes through `StorageBackend.transaction()`, which is
all-or-nothing: if the block raises, nothing it wrote stays visible.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Mapping, Sequence

EMBEDDED = "embedded"
DOCUMENT = "document"

# Creation order respects foreign keys: products/categories before sales,
# sales before sale lines, products before movements.
ENTITY_NAMES = (
    "products",
    "categories",
    "sales",
    "sale_lines",
    "inventory_movements",
    "license",
)

LICENSE_ROW_ID = 1


class UnitOfWork(ABC):
    """Write primitives bound to an open transaction scope."""

    # -- catalog ----------------------------------------------------------
    @abstractmethod
    def insert_product(self, values: Mapping[str, Any]) -> int: ...

    @abstractmethod
    def product_exists(self, product_id: int) -> bool: ...

    @abstractmethod
    def update_product(self, product_id: int, values: Mapping[str, Any]) -> bool:
        """Return False when no product has this id."""

    @abstractmethod
    def product_reference_counts(self, product_id: int) -> tuple[int, int]:
        """(sale line count, inventory movement count) referencing the product."""

    @abstractmethod
    def delete_product(self, product_id: int) -> bool: ...

    @abstractmethod
    def upsert_category(self, name: str) -> None: ...

    # -- sales ------------------------------------------------------------
    @abstractmethod
    def insert_sale(self, *, sold_at: datetime, total_cents: int) -> int: ...

    @abstractmethod
    def insert_sale_line(
        self,
        *,
        sale_id: int,
        product_id: int,
        quantity: float,
        unit_price_cents: int,
        subtotal_cents: int,
    ) -> int: ...

    # -- stock ledger -----------------------------------------------------
    @abstractmethod
    def decrement_stock(self, product_id: int, quantity: float) -> bool:
        """
        Guarded decrement: subtract only if stock >= quantity, as one step.
        Return False when the guard fails (or the product does not exist).
        """

    @abstractmethod
    def increment_stock(self, product_id: int, quantity: float) -> bool: ...

    @abstractmethod
    def insert_movement(
        self,
        *,
        product_id: int,
        type: str,
        quantity: float,
        reason: str,
        occurred_at: datetime,
    ) -> int: ...

    # -- license / maintenance -------------------------------------------
    @abstractmethod
    def put_license(self, *, key: str, activated_at: datetime, expires_at: datetime | None) -> None: ...

    @abstractmethod
    def clear_all(self) -> dict[str, int]:
        """Delete every business row (license excluded); return per-entity counts."""


class StorageBackend(ABC):
    mode: str = ""
    # Exceptions signalling lock contention that the caller may retry.
    retryable_errors: tuple[type[BaseException], ...] = ()

    # -- lifecycle --------------------------------------------------------
    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def ensure_schema(self) -> None:
        """Idempotent, additive-only schema creation."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager[UnitOfWork]: ...

    # -- reads ------------------------------------------------------------
    @abstractmethod
    def get_product(self, product_id: int) -> dict | None: ...

    @abstractmethod
    def list_products(self, category: str | None = None) -> list[dict]: ...

    @abstractmethod
    def list_categories(self) -> list[dict]: ...

    @abstractmethod
    def list_sales_summary(self, limit: int) -> list[dict]: ...

    @abstractmethod
    def get_sale_lines(self, sale_id: int) -> list[dict]: ...

    @abstractmethod
    def list_movements(self, limit: int, product_id: int | None = None) -> list[dict]: ...

    @abstractmethod
    def get_license(self) -> dict | None: ...

    # -- aggregation ------------------------------------------------------
    @abstractmethod
    def sales_totals(
        self,
        *,
        period: str,
        offset_minutes: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict]:
        """[{period, sales_count, total_cents}] ordered by period; period is 'day' or 'month'."""

    @abstractmethod
    def financial_totals(self) -> dict:
        """{revenue_cents, cost_cents (float, unrounded), sale_count, product_count}"""

    @abstractmethod
    def low_stock(self, threshold: float, limit: int) -> list[dict]: ...

    @abstractmethod
    def recent_sales(self, limit: int) -> list[dict]: ...

    @abstractmethod
    def run_raw_query(self, query_text: str, params: Sequence | Mapping | None = None) -> list[dict]: ...

    @abstractmethod
    def snapshot(self) -> dict[str, list[dict]]: ...
