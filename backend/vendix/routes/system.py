# backend/vendix/routes/system.py
"""
System health endpoint.

Reports which storage backend was selected and whether it answers.
"""

import time
from flask import Blueprint, current_app

from .. import get_facade
from ..time_utils import utcnow, to_utc_z
from ..validation import BackendUnavailableError

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_storage_health() -> dict:
    """
    Open the backend (and schema) and count products.

    Returns dict with status and details.
    """
    facade = get_facade()
    start_time = time.time()
    try:
        backend = facade.require_backend()
        product_count = len(backend.list_products())
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "mode": facade.mode,
                "products": product_count,
            },
        }
    except BackendUnavailableError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Storage health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Storage unavailable",
            "details": {"mode": facade.mode},
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: storage backend healthy
    - 503: storage backend could not be opened
    """
    storage_health = check_storage_health()
    http_status = 200 if storage_health["status"] == "healthy" else 503
    return {
        "status": storage_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "licensed": get_facade().is_licensed(),
        "checks": {"storage": storage_health},
    }, http_status
