# Overview: Service-layer operations for the inventory movement ledger.

from __future__ import annotations

import logging

from ..storage.base import StorageBackend
from ..time_utils import normalize_datetime
from ..validation import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    coerce_product_id,
    normalize_limit,
    normalize_movement_type,
    normalize_quantity,
    normalize_reason,
)
from .concurrency import run_write

"""
Inventory ledger invariants

- Product.stock is authoritative; movements are the append-only audit trail.
- Every movement and its stock adjustment are written in one transaction.
- Outbound movements use the same guarded decrement as sales: stock never
  goes below zero, InsufficientStockError otherwise.
- A blank manual reason is stored as "inventory adjustment".
"""

logger = logging.getLogger(__name__)

DEFAULT_MOVEMENT_LIMIT = 50


def record_movement(
    backend: StorageBackend,
    product_id,
    type,
    quantity,
    reason=None,
    occurred_at=None,
) -> int:
    product_id = coerce_product_id(product_id)
    movement_type = normalize_movement_type(type)
    quantity = normalize_quantity(quantity)
    reason = normalize_reason(reason)
    try:
        occurred_at = normalize_datetime(occurred_at)
    except ValueError:
        raise ValidationError("occurred_at must be an ISO-8601 datetime") from None

    def _op():
        with backend.transaction() as uow:
            if not uow.product_exists(product_id):
                raise NotFoundError(f"product #{product_id} not found")
            if movement_type == "inbound":
                uow.increment_stock(product_id, quantity)
            elif not uow.decrement_stock(product_id, quantity):
                raise InsufficientStockError(product_id, quantity)
            return uow.insert_movement(
                product_id=product_id,
                type=movement_type,
                quantity=quantity,
                reason=reason,
                occurred_at=occurred_at,
            )

    movement_id = run_write(backend, _op, action="movement")
    logger.info(
        "Movement #%s recorded: product #%s %s %s (%s)",
        movement_id, product_id, movement_type, quantity, reason,
    )
    return movement_id


def list_movements(backend: StorageBackend, limit: int = DEFAULT_MOVEMENT_LIMIT, product_id=None) -> list[dict]:
    if product_id is not None:
        product_id = coerce_product_id(product_id)
    return backend.list_movements(normalize_limit(limit), product_id=product_id)
