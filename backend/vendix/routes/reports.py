# Overview: Flask API routes for read-only reports and the raw query escape hatch.

from flask import Blueprint, request

from .. import get_facade
from ..validation import VendixError
from . import error_response

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
def summary():
    return get_facade().financial_summary()


@reports_bp.get("/daily")
def daily():
    """Query params: days (default 7)."""
    try:
        items = get_facade().daily_sales(request.args.get("days", 7))
    except VendixError as e:
        return error_response(e)
    return {"items": items}


@reports_bp.get("/monthly")
def monthly():
    """Query params: year (optional; all twelve months when given)."""
    try:
        items = get_facade().monthly_sales(request.args.get("year"))
    except VendixError as e:
        return error_response(e)
    return {"items": items}


@reports_bp.get("/low-stock")
def low_stock():
    """Query params: threshold (default LOW_STOCK_THRESHOLD), limit (default 5)."""
    try:
        items = get_facade().low_stock(
            request.args.get("threshold"), request.args.get("limit", 5)
        )
    except VendixError as e:
        return error_response(e)
    return {"items": items}


@reports_bp.get("/recent-sales")
def recent_sales():
    try:
        items = get_facade().recent_sales(request.args.get("limit", 5))
    except VendixError as e:
        return error_response(e)
    return {"items": items}


@reports_bp.get("/valuation")
def valuation():
    return get_facade().inventory_valuation()


@reports_bp.post("/query")
def raw_query():
    """
    Read-only query escape hatch.

    Body: {"query": "SELECT ...", "params": [...] | {...}}
    """
    payload = request.get_json(silent=True) or {}
    try:
        rows = get_facade().run_raw_query(payload.get("query"), payload.get("params"))
    except VendixError as e:
        return error_response(e)
    return {"rows": rows, "count": len(rows)}
