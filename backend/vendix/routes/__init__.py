# Overview: Shared error-to-response mapping for the JSON blueprints.

from flask import current_app

from ..validation import (
    BackendUnavailableError,
    InsufficientStockError,
    NotFoundError,
    ReferentialConflict,
    TransactionAbortedError,
    ValidationError,
    VendixError,
)

ERROR_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (InsufficientStockError, 409),
    (ReferentialConflict, 409),
    (BackendUnavailableError, 503),
    (TransactionAbortedError, 500),
)


def error_response(exc: VendixError):
    for cls, status in ERROR_STATUS:
        if isinstance(exc, cls):
            break
    else:
        status = 500

    body = {"error": str(exc)}
    if isinstance(exc, InsufficientStockError):
        body["product_id"] = exc.product_id
    if status >= 500:
        current_app.logger.error("%s: %s", exc.__class__.__name__, exc)
    return body, status
