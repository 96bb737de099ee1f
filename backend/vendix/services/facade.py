# Overview: Query/command facade; the single entry point UI collaborators call.

"""
PosFacade

Every caller (HTTP routes, CLI commands, tests) goes through this object.
It resolves the live backend from Storage, makes sure the schema exists
before the first real call and then delegates to the service modules.
Nothing here branches on which backend is active.

Availability contract:
- mutations raise BackendUnavailableError when no backend can be opened
- reads degrade to an empty result ([], None, zeroed summary)
"""
from __future__ import annotations

import functools
import logging
import threading

from ..storage import Storage
from ..storage.base import StorageBackend
from ..validation import BackendUnavailableError
from . import (
    import_service,
    inventory_service,
    license_service,
    maintenance_service,
    products_service,
    reporting_service,
    sales_service,
)

logger = logging.getLogger(__name__)

EMPTY_FINANCIAL_SUMMARY = {
    "revenue_cents": 0,
    "cost_cents": 0,
    "profit_cents": 0,
    "average_ticket_cents": 0,
    "revenue": 0.0,
    "cost": 0.0,
    "profit": 0.0,
    "average_ticket": 0.0,
    "sale_count": 0,
    "product_count": 0,
}

EMPTY_VALUATION = {
    "items": [],
    "total_cost_value_cents": 0,
    "total_retail_value_cents": 0,
    "total_cost_value": 0.0,
    "total_retail_value": 0.0,
}


def _mutation(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        return func(self, self.require_backend(), *args, **kwargs)
    return wrapper


def _query(default):
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                backend = self.require_backend()
            except BackendUnavailableError:
                logger.warning("%s: storage unavailable, returning empty result", func.__name__)
                return default() if callable(default) else default
            return func(self, backend, *args, **kwargs)
        return wrapper
    return decorator


class PosFacade:
    def __init__(
        self,
        storage: Storage,
        *,
        report_offset_minutes: int = -300,
        low_stock_threshold: float = 5.0,
        license_master_key: str | None = None,
    ):
        self.storage = storage
        self.report_offset_minutes = report_offset_minutes
        self.low_stock_threshold = low_stock_threshold
        self.license_master_key = license_master_key
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    @classmethod
    def from_app(cls, app, storage: Storage) -> "PosFacade":
        return cls(
            storage,
            report_offset_minutes=int(app.config["REPORT_UTC_OFFSET_MINUTES"]),
            low_stock_threshold=float(app.config["LOW_STOCK_THRESHOLD"]),
            license_master_key=app.config.get("LICENSE_MASTER_KEY"),
        )

    # -- backend / schema -------------------------------------------------

    @property
    def mode(self) -> str | None:
        return self.storage.mode

    def require_backend(self) -> StorageBackend:
        backend = self.storage.connect()
        if backend is None:
            raise BackendUnavailableError(f"{self.storage.mode} storage backend is unavailable")
        self._ensure_schema(backend)
        return backend

    def _ensure_schema(self, backend: StorageBackend) -> None:
        if self._schema_ready:
            return
        with self._schema_lock:
            if not self._schema_ready:
                backend.ensure_schema()
                self._schema_ready = True

    def ensure_schema(self) -> None:
        """Create missing tables/collections; safe to call any number of times."""
        backend = self.storage.connect()
        if backend is None:
            raise BackendUnavailableError(f"{self.storage.mode} storage backend is unavailable")
        with self._schema_lock:
            backend.ensure_schema()
            self._schema_ready = True

    def close(self) -> None:
        self.storage.close()
        self._schema_ready = False

    # -- catalog ----------------------------------------------------------

    @_mutation
    def create_product(self, backend, data) -> int:
        return products_service.create_product(backend, data)

    @_query(list)
    def list_products(self, backend, category=None) -> list[dict]:
        return products_service.list_products(backend, category)

    @_query(None)
    def get_product(self, backend, product_id) -> dict | None:
        return products_service.get_product(backend, product_id)

    @_mutation
    def update_product(self, backend, product_id, fields) -> None:
        products_service.update_product(backend, product_id, fields)

    @_mutation
    def delete_product(self, backend, product_id) -> None:
        products_service.delete_product(backend, product_id)

    @_query(list)
    def list_categories(self, backend) -> list[dict]:
        return products_service.list_categories(backend)

    @_mutation
    def upsert_category(self, backend, name) -> None:
        products_service.upsert_category(backend, name)

    # -- sales ------------------------------------------------------------

    @_mutation
    def record_sale(self, backend, line_items, sold_at=None) -> int:
        return sales_service.record_sale(backend, line_items, sold_at)

    @_query(list)
    def list_sales_summary(self, backend, limit=sales_service.DEFAULT_SUMMARY_LIMIT) -> list[dict]:
        return sales_service.list_sales_summary(backend, limit)

    @_query(list)
    def get_sale_line_items(self, backend, sale_id) -> list[dict]:
        return sales_service.get_sale_line_items(backend, sale_id)

    # -- inventory ledger -------------------------------------------------

    @_mutation
    def record_movement(self, backend, product_id, type, quantity, reason=None) -> int:
        return inventory_service.record_movement(backend, product_id, type, quantity, reason)

    @_query(list)
    def list_movements(self, backend, limit=inventory_service.DEFAULT_MOVEMENT_LIMIT, product_id=None) -> list[dict]:
        return inventory_service.list_movements(backend, limit, product_id)

    # -- reporting --------------------------------------------------------

    @_query(list)
    def daily_sales(self, backend, days=reporting_service.DEFAULT_DAILY_DAYS) -> list[dict]:
        return reporting_service.daily_sales(backend, days, offset_minutes=self.report_offset_minutes)

    @_query(list)
    def monthly_sales(self, backend, year=None) -> list[dict]:
        return reporting_service.monthly_sales(backend, year, offset_minutes=self.report_offset_minutes)

    @_query(lambda: dict(EMPTY_FINANCIAL_SUMMARY))
    def financial_summary(self, backend) -> dict:
        return reporting_service.financial_summary(backend)

    @_query(list)
    def low_stock(self, backend, threshold=None, limit=reporting_service.DEFAULT_LOW_STOCK_LIMIT) -> list[dict]:
        if threshold is None:
            threshold = self.low_stock_threshold
        return reporting_service.low_stock(backend, threshold, limit)

    @_query(list)
    def recent_sales(self, backend, limit=reporting_service.DEFAULT_RECENT_LIMIT) -> list[dict]:
        return reporting_service.recent_sales(backend, limit)

    @_query(lambda: {**EMPTY_VALUATION, "items": []})
    def inventory_valuation(self, backend) -> dict:
        return reporting_service.inventory_valuation(backend)

    @_query(list)
    def run_raw_query(self, backend, query_text, params=None) -> list[dict]:
        return reporting_service.run_raw_query(backend, query_text, params)

    # -- license ----------------------------------------------------------

    @_mutation
    def activate_license(self, backend, key, expires_at=None) -> dict:
        return license_service.activate_license(
            backend, key, master_key=self.license_master_key, expires_at=expires_at
        )

    @_query(None)
    def get_license(self, backend) -> dict | None:
        return license_service.get_license(backend)

    @_query(False)
    def is_licensed(self, backend) -> bool:
        return license_service.is_licensed(backend, master_key=self.license_master_key)

    # -- import / maintenance ---------------------------------------------

    @_mutation
    def import_products(self, backend, path) -> dict:
        return import_service.import_products(backend, path)

    @_mutation
    def import_product_rows(self, backend, stream, filename) -> dict:
        return import_service.import_rows(backend, import_service.read_rows(stream, filename))

    @_query(dict)
    def snapshot(self, backend) -> dict:
        return maintenance_service.snapshot(backend)

    @_mutation
    def clear_database(self, backend) -> dict:
        return maintenance_service.clear_database(backend)
