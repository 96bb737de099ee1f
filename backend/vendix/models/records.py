"""
Caller-facing record shapes.

Both storage backends build their return values through these functions so a
product, sale or movement looks the same no matter where it was read from.
Money is carried as integer cents plus a 2-decimal float view.
"""
from __future__ import annotations

from datetime import datetime

from ..time_utils import parse_iso_datetime, to_utc_z
from ..validation import cents_to_amount


def _ts(value) -> str | None:
    # Stored strings keep microseconds; callers always see whole seconds.
    if isinstance(value, str):
        value = parse_iso_datetime(value)
    if isinstance(value, datetime):
        return to_utc_z(value)
    return value


def product_record(
    *,
    id: int,
    name: str,
    category: str | None,
    cost_price_cents: int,
    sale_price_cents: int,
    unit: str,
    stock: float,
    created_at=None,
) -> dict:
    return {
        "id": id,
        "name": name,
        "category": category,
        "cost_price_cents": cost_price_cents,
        "sale_price_cents": sale_price_cents,
        "cost_price": cents_to_amount(cost_price_cents),
        "sale_price": cents_to_amount(sale_price_cents),
        "unit": unit,
        "stock": float(stock or 0),
        "created_at": _ts(created_at),
    }


def category_record(*, id: int, name: str) -> dict:
    return {"id": id, "name": name}


def sale_summary_record(*, id: int, sold_at, total_cents: int, item_count: int) -> dict:
    return {
        "id": id,
        "sold_at": _ts(sold_at),
        "total_cents": total_cents,
        "total": cents_to_amount(total_cents),
        "item_count": int(item_count or 0),
    }


def sale_line_record(
    *,
    id: int,
    sale_id: int,
    product_id: int,
    quantity: float,
    unit_price_cents: int,
    subtotal_cents: int,
    product_name: str | None = None,
) -> dict:
    return {
        "id": id,
        "sale_id": sale_id,
        "product_id": product_id,
        "product_name": product_name,
        "quantity": float(quantity),
        "unit_price_cents": unit_price_cents,
        "subtotal_cents": subtotal_cents,
        "unit_price": cents_to_amount(unit_price_cents),
        "subtotal": cents_to_amount(subtotal_cents),
    }


def movement_record(
    *,
    id: int,
    product_id: int,
    type: str,
    quantity: float,
    occurred_at,
    reason: str | None,
    product_name: str | None = None,
) -> dict:
    return {
        "id": id,
        "product_id": product_id,
        "product_name": product_name,
        "type": type,
        "quantity": float(quantity),
        "occurred_at": _ts(occurred_at),
        "reason": reason,
    }


def license_record(*, id: int, key: str, activated_at, expires_at=None) -> dict:
    return {
        "id": id,
        "key": key,
        "activated_at": _ts(activated_at),
        "expires_at": _ts(expires_at),
    }
