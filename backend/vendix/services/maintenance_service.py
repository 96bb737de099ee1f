# Overview: Debug/maintenance operations: full data snapshot and clearing business data.

from __future__ import annotations

import logging

from ..storage.base import StorageBackend
from .concurrency import run_write

logger = logging.getLogger(__name__)


def snapshot(backend: StorageBackend) -> dict[str, list[dict]]:
    """Every row of every table/collection, keyed by entity name."""
    return backend.snapshot()


def clear_database(backend: StorageBackend) -> dict[str, int]:
    """
    Delete all business rows in reverse dependency order: movements, sale
    line items, sales, products, categories. The license row is kept.
    """
    def _op():
        with backend.transaction() as uow:
            return uow.clear_all()

    counts = run_write(backend, _op, action="database clear")
    logger.warning("Database cleared: %s", counts)
    return counts
