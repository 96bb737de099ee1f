# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/vendix/routes/products.py
from flask import Blueprint, request

from .. import get_facade
from ..validation import VendixError
from . import error_response

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products in id order.

    Query params:
    - category: str (optional) - exact category name
    """
    category = request.args.get("category")
    try:
        items = get_facade().list_products(category=category)
    except VendixError as e:
        return error_response(e)
    return {"items": items, "count": len(items)}


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    facade = get_facade()
    try:
        product_id = facade.create_product(payload)
    except VendixError as e:
        return error_response(e)
    return facade.get_product(product_id), 201


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    product = get_facade().get_product(product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    """Partial update. Stock is not editable here; use inventory movements."""
    payload = request.get_json(silent=True) or {}
    facade = get_facade()
    try:
        facade.update_product(product_id, payload)
    except VendixError as e:
        return error_response(e)
    return facade.get_product(product_id), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """409 when sale line items or inventory movements reference the product."""
    try:
        get_facade().delete_product(product_id)
    except VendixError as e:
        return error_response(e)
    return {"ok": True}, 200


@products_bp.post("/import")
def import_products_route():
    """Upload an .xlsx or .csv file as multipart field `file`."""
    if "file" not in request.files:
        return {"error": "file is required"}, 400
    file = request.files["file"]
    try:
        result = get_facade().import_product_rows(file.stream, file.filename or "")
    except VendixError as e:
        return error_response(e)
    return result, 201
