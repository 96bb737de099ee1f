# Overview: Flask API routes for the category pick list.

from flask import Blueprint, request

from .. import get_facade
from ..validation import VendixError
from . import error_response

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories():
    items = get_facade().list_categories()
    return {"items": items, "count": len(items)}


@categories_bp.post("")
def upsert_category_route():
    """Idempotent: posting an existing (or blank) name changes nothing."""
    payload = request.get_json(silent=True) or {}
    facade = get_facade()
    try:
        facade.upsert_category(payload.get("name"))
    except VendixError as e:
        return error_response(e)
    items = facade.list_categories()
    return {"items": items, "count": len(items)}, 200
