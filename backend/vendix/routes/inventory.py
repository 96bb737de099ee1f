# Overview: Flask API routes for the inventory movement ledger.

# backend/vendix/routes/inventory.py
"""
Inventory movements.

Inbound movements add stock; outbound movements remove it under the same
guard as sales (409 when stock would go negative). Time fields are returned
as ISO-8601 'Z' strings.
"""
from flask import Blueprint, request

from .. import get_facade
from ..validation import VendixError
from . import error_response

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/movements")
def list_movements():
    """
    Query params:
    - limit: int (optional, default 50)
    - product_id: int (optional)
    """
    limit = request.args.get("limit", 50)
    product_id = request.args.get("product_id")
    try:
        items = get_facade().list_movements(limit, product_id=product_id)
    except VendixError as e:
        return error_response(e)
    return {"items": items, "count": len(items)}


@inventory_bp.post("/movements")
def record_movement_route():
    payload = request.get_json(silent=True) or {}
    facade = get_facade()
    try:
        movement_id = facade.record_movement(
            payload.get("product_id"),
            payload.get("type"),
            payload.get("quantity"),
            payload.get("reason"),
        )
    except VendixError as e:
        return error_response(e)
    return {"id": movement_id, "product": facade.get_product(payload.get("product_id"))}, 201
