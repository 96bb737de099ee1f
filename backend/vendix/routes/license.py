# Overview: Flask API routes for license activation and status.

from flask import Blueprint, request, current_app

from .. import get_facade
from ..validation import VendixError
from . import error_response

license_bp = Blueprint("license", __name__, url_prefix="/api/license")


@license_bp.get("")
def license_status():
    facade = get_facade()
    return {"licensed": facade.is_licensed(), "license": facade.get_license()}


@license_bp.post("")
def activate():
    payload = request.get_json(silent=True) or {}
    facade = get_facade()
    try:
        row = facade.activate_license(payload.get("key"), payload.get("expires_at"))
    except VendixError as e:
        return error_response(e)
    current_app.logger.info("License activated via API")
    return {"licensed": facade.is_licensed(), "license": row}, 201
