# Overview: Flask API routes for sales; parses input and returns JSON responses.

from flask import Blueprint, request

from .. import get_facade
from ..validation import VendixError
from . import error_response

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales():
    """Sale summaries, newest first. Query params: limit (default 50)."""
    limit = request.args.get("limit", 50)
    try:
        items = get_facade().list_sales_summary(limit)
    except VendixError as e:
        return error_response(e)
    return {"items": items, "count": len(items)}


@sales_bp.post("")
def record_sale_route():
    """
    Record a sale from a cart.

    Body:
    {
        "items": [{"product_id": 1, "quantity": 3, "unit_price": 2.00}, ...],
        "sold_at": "2025-01-31T15:00:00Z"   (optional)
    }

    409 with product_id when a line exceeds available stock.
    """
    payload = request.get_json(silent=True) or {}
    facade = get_facade()
    try:
        sale_id = facade.record_sale(payload.get("items"), payload.get("sold_at"))
    except VendixError as e:
        return error_response(e)
    return {"id": sale_id, "lines": facade.get_sale_line_items(sale_id)}, 201


@sales_bp.get("/<int:sale_id>/lines")
def sale_lines(sale_id: int):
    items = get_facade().get_sale_line_items(sale_id)
    return {"sale_id": sale_id, "items": items, "count": len(items)}
