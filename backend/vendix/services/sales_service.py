# Overview: Sale transaction engine; atomic sale header, line items, stock and ledger writes.

"""
Sale Transaction Engine

A sale moves through:

    Idle -> Validating -> Reserving Stock -> Committing -> Committed
                 |               |
                 v               v
              (raise)       RollingBack -> Aborted

Validating happens before any write. Everything after it runs inside one
backend transaction scope, in this order:

    a. insert the sale header (total = sum of line subtotals)
    b. insert every line item
    c. guarded stock decrement for every line, in caller order; the first
       line whose guard fails aborts the sale with InsufficientStockError
    d. insert one outbound inventory movement per line ("sale #<id>")

Any raise inside the scope rolls every write back. Unit prices are the ones
captured in the cart; they are never re-derived from the current product.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from ..storage.base import StorageBackend
from ..time_utils import normalize_datetime
from ..validation import (
    EmptyCartError,
    InsufficientStockError,
    ValidationError,
    VendixError,
    coerce_product_id,
    line_subtotal_cents,
    normalize_limit,
    normalize_quantity,
    to_cents,
)
from .concurrency import run_write

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_LIMIT = 50

# Carts built by the UI use camelCase keys.
_LINE_KEY_ALIASES = {
    "productId": "product_id",
    "unitPrice": "unit_price",
}


def sale_reason(sale_id: int) -> str:
    return f"sale #{sale_id}"


def _normalize_line(raw, index: int) -> dict:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"line {index}: must be an object")
    item = {_LINE_KEY_ALIASES.get(k, k): v for k, v in raw.items()}
    for key in ("product_id", "quantity", "unit_price"):
        if item.get(key) is None:
            raise ValidationError(f"line {index}: {key} is required")
    try:
        product_id = coerce_product_id(item["product_id"])
        quantity = normalize_quantity(item["quantity"])
        unit_price_cents = to_cents(item["unit_price"], "unit_price")
    except ValidationError as exc:
        raise ValidationError(f"line {index}: {exc}") from None
    return {
        "product_id": product_id,
        "quantity": quantity,
        "unit_price_cents": unit_price_cents,
        "subtotal_cents": line_subtotal_cents(quantity, unit_price_cents),
    }


def validate_cart(line_items) -> list[dict]:
    if line_items is None or isinstance(line_items, (str, bytes, Mapping)):
        raise EmptyCartError("cart is empty")
    lines = [_normalize_line(raw, i) for i, raw in enumerate(line_items, start=1)]
    if not lines:
        raise EmptyCartError("cart is empty")
    return lines


def record_sale(backend: StorageBackend, line_items, sold_at=None) -> int:
    lines = validate_cart(line_items)
    try:
        sold_at = normalize_datetime(sold_at)
    except ValueError:
        raise ValidationError("sold_at must be an ISO-8601 datetime") from None
    total_cents = sum(line["subtotal_cents"] for line in lines)

    def _op():
        with backend.transaction() as uow:
            sale_id = uow.insert_sale(sold_at=sold_at, total_cents=total_cents)

            for line in lines:
                uow.insert_sale_line(sale_id=sale_id, **line)

            for line in lines:
                if not uow.decrement_stock(line["product_id"], line["quantity"]):
                    raise InsufficientStockError(line["product_id"], line["quantity"])

            reason = sale_reason(sale_id)
            for line in lines:
                uow.insert_movement(
                    product_id=line["product_id"],
                    type="outbound",
                    quantity=line["quantity"],
                    reason=reason,
                    occurred_at=sold_at,
                )
            return sale_id

    try:
        sale_id = run_write(backend, _op, action="sale")
    except VendixError as exc:
        logger.warning("Sale rolled back: %s", exc)
        raise

    logger.info("Sale #%s committed: %d line(s), total_cents=%d", sale_id, len(lines), total_cents)
    return sale_id


def list_sales_summary(backend: StorageBackend, limit: int = DEFAULT_SUMMARY_LIMIT) -> list[dict]:
    return backend.list_sales_summary(normalize_limit(limit))


def get_sale_line_items(backend: StorageBackend, sale_id) -> list[dict]:
    return backend.get_sale_lines(coerce_product_id(sale_id, "sale_id"))

