# Overview: Service-layer operations for the product catalog and categories.

# backend/vendix/services/products_service.py
"""
Products and categories.

Product.stock is the single source of truth for on-hand quantity. It is set
once at creation (opening balance, no ledger row) and afterwards only moves
through inventory movements and sales, never through update_product.

Categories are a soft reference: Product.category is free text and the
categories table is a deduplicated pick list kept in step by upserting every
non-empty category a product is written with, in the same transaction.
"""
from __future__ import annotations

import logging

from ..storage.base import StorageBackend
from ..validation import (
    PRODUCT_CREATE_POLICY,
    PRODUCT_UPDATE_POLICY,
    NotFoundError,
    ReferentialConflict,
    coerce_product_id,
    normalize_category,
    validate_payload,
)
from .concurrency import run_write

logger = logging.getLogger(__name__)


def create_product(backend: StorageBackend, payload: dict) -> int:
    patch = validate_payload(payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    patch.setdefault("unit", "unit")
    patch.setdefault("stock", 0.0)

    def _op():
        with backend.transaction() as uow:
            if patch.get("category"):
                uow.upsert_category(patch["category"])
            return uow.insert_product(patch)

    product_id = run_write(backend, _op, action="product create")
    logger.info("Product #%s created (%s)", product_id, patch["name"])
    return product_id


def list_products(backend: StorageBackend, category: str | None = None) -> list[dict]:
    return backend.list_products(normalize_category(category))


def get_product(backend: StorageBackend, product_id) -> dict | None:
    return backend.get_product(coerce_product_id(product_id))


def update_product(backend: StorageBackend, product_id, payload: dict) -> None:
    product_id = coerce_product_id(product_id)
    patch = validate_payload(payload, policy=PRODUCT_UPDATE_POLICY, partial=True)

    def _op():
        with backend.transaction() as uow:
            if not uow.update_product(product_id, patch):
                raise NotFoundError(f"product #{product_id} not found")
            if patch.get("category"):
                uow.upsert_category(patch["category"])

    run_write(backend, _op, action="product update")


def delete_product(backend: StorageBackend, product_id) -> None:
    """
    Delete a product that nothing references.

    Sale line items and inventory movements are history; a product with
    either is kept (ReferentialConflict) so reports and audit stay intact.
    """
    product_id = coerce_product_id(product_id)

    def _op():
        with backend.transaction() as uow:
            if not uow.product_exists(product_id):
                raise NotFoundError(f"product #{product_id} not found")
            lines, movements = uow.product_reference_counts(product_id)
            if lines or movements:
                raise ReferentialConflict(
                    f"product #{product_id} is referenced by {lines} sale line item(s) "
                    f"and {movements} inventory movement(s)"
                )
            uow.delete_product(product_id)

    run_write(backend, _op, action="product delete")
    logger.info("Product #%s deleted", product_id)


def list_categories(backend: StorageBackend) -> list[dict]:
    return backend.list_categories()


def upsert_category(backend: StorageBackend, name) -> None:
    """Insert-if-absent; blank names are ignored."""
    name = normalize_category(name)
    if name is None:
        return

    def _op():
        with backend.transaction() as uow:
            uow.upsert_category(name)

    run_write(backend, _op, action="category upsert")
