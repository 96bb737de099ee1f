# Overview: Service-layer read-only aggregation queries for dashboards and reports.

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from ..storage.base import StorageBackend
from ..time_utils import local_today
from ..validation import ValidationError, cents_to_amount, normalize_limit, normalize_quantity

# Every day/month bucket shifts stored UTC timestamps by one fixed offset
# (REPORT_UTC_OFFSET_MINUTES). Range bounds are computed in local time and
# shifted back to UTC before they reach a backend.

DEFAULT_DAILY_DAYS = 7
DEFAULT_LOW_STOCK_LIMIT = 5
DEFAULT_RECENT_LIMIT = 5
MAX_DAILY_DAYS = 366


class ReportError(ValidationError):
    """Raised when report parameters are unusable."""


def _with_amount(row: dict) -> dict:
    return {**row, "total": cents_to_amount(row["total_cents"])}


def _round_cents(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def daily_sales(backend: StorageBackend, days: int = DEFAULT_DAILY_DAYS, *, offset_minutes: int) -> list[dict]:
    """
    Totals per local day for the last `days` days (today included), oldest
    first. Days without sales are present with zero totals.
    """
    days = normalize_limit(days, "days")
    if days > MAX_DAILY_DAYS:
        raise ReportError(f"days cannot exceed {MAX_DAILY_DAYS}")

    first_local = local_today(offset_minutes) - timedelta(days=days - 1)
    start_utc = first_local - timedelta(minutes=offset_minutes)
    rows = {
        r["period"]: r
        for r in backend.sales_totals(period="day", offset_minutes=offset_minutes, start=start_utc)
    }

    out = []
    for i in range(days):
        key = (first_local + timedelta(days=i)).strftime("%Y-%m-%d")
        row = rows.get(key, {"period": key, "sales_count": 0, "total_cents": 0})
        out.append(_with_amount(row))
    return out


def monthly_sales(backend: StorageBackend, year: int | None = None, *, offset_minutes: int) -> list[dict]:
    """
    Totals per local month. With a year, all twelve months of that year are
    returned (zero-filled); without one, only months that have sales.
    """
    if year is None:
        rows = backend.sales_totals(period="month", offset_minutes=offset_minutes)
        return [_with_amount(r) for r in rows]

    try:
        year = int(year)
        start_local = datetime(year, 1, 1)
        end_local = datetime(year + 1, 1, 1)
    except (TypeError, ValueError, OverflowError):
        raise ReportError("year must be a valid calendar year") from None

    shift = timedelta(minutes=offset_minutes)
    rows = {
        r["period"]: r
        for r in backend.sales_totals(
            period="month",
            offset_minutes=offset_minutes,
            start=start_local - shift,
            end=end_local - shift,
        )
    }
    out = []
    for month in range(1, 13):
        key = f"{year:04d}-{month:02d}"
        out.append(_with_amount(rows.get(key, {"period": key, "sales_count": 0, "total_cents": 0})))
    return out


def financial_summary(backend: StorageBackend) -> dict:
    """
    Revenue, cost of goods sold and profit over all recorded sales.

    Cost uses each product's current cost price (line quantity x cost).
    """
    totals = backend.financial_totals()
    revenue_cents = int(totals["revenue_cents"])
    cost_cents = _round_cents(totals["cost_cents"])
    profit_cents = revenue_cents - cost_cents
    sale_count = int(totals["sale_count"])
    average_ticket_cents = _round_cents(revenue_cents / sale_count) if sale_count else 0
    return {
        "revenue_cents": revenue_cents,
        "cost_cents": cost_cents,
        "profit_cents": profit_cents,
        "average_ticket_cents": average_ticket_cents,
        "revenue": cents_to_amount(revenue_cents),
        "cost": cents_to_amount(cost_cents),
        "profit": cents_to_amount(profit_cents),
        "average_ticket": cents_to_amount(average_ticket_cents),
        "sale_count": sale_count,
        "product_count": int(totals["product_count"]),
    }


def low_stock(backend: StorageBackend, threshold, limit: int = DEFAULT_LOW_STOCK_LIMIT) -> list[dict]:
    threshold = normalize_quantity(threshold, "threshold", allow_zero=True)
    return backend.low_stock(threshold, normalize_limit(limit))


def recent_sales(backend: StorageBackend, limit: int = DEFAULT_RECENT_LIMIT) -> list[dict]:
    return backend.recent_sales(normalize_limit(limit))


def inventory_valuation(backend: StorageBackend) -> dict:
    """Stock valued at cost and at sale price, per product and in total."""
    items = []
    total_cost = Decimal(0)
    total_retail = Decimal(0)
    for p in backend.list_products():
        stock = Decimal(str(p["stock"]))
        cost_value = _round_cents(stock * p["cost_price_cents"])
        retail_value = _round_cents(stock * p["sale_price_cents"])
        total_cost += cost_value
        total_retail += retail_value
        items.append(
            {
                "product_id": p["id"],
                "name": p["name"],
                "category": p["category"],
                "stock": p["stock"],
                "cost_value_cents": cost_value,
                "retail_value_cents": retail_value,
                "cost_value": cents_to_amount(cost_value),
                "retail_value": cents_to_amount(retail_value),
            }
        )
    return {
        "items": items,
        "total_cost_value_cents": int(total_cost),
        "total_retail_value_cents": int(total_retail),
        "total_cost_value": cents_to_amount(int(total_cost)),
        "total_retail_value": cents_to_amount(int(total_retail)),
    }


def run_raw_query(backend: StorageBackend, query_text: str, params=None) -> list[dict]:
    if params is not None and not isinstance(params, (list, tuple, dict)):
        raise ValidationError("params must be a list or an object")
    return backend.run_raw_query(query_text, params)
