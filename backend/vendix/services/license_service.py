# Overview: Service-layer operations for the single-row product license.

from __future__ import annotations

import logging

from ..storage.base import StorageBackend
from ..time_utils import normalize_datetime, parse_iso_datetime, utcnow
from ..validation import ValidationError
from .concurrency import run_write

logger = logging.getLogger(__name__)

MASTER_KEY = "VENDIX-2025-PRO"
KEY_MAX_LENGTH = 64


def normalize_key(key) -> str:
    if not isinstance(key, str) or not key.strip():
        raise ValidationError("license key is required")
    key = key.strip().upper()
    if len(key) > KEY_MAX_LENGTH:
        raise ValidationError(f"license key exceeds max length {KEY_MAX_LENGTH}")
    return key


def activate_license(backend: StorageBackend, key, *, master_key: str | None = None, expires_at=None) -> dict:
    """
    Store the license row (id 1), replacing any previous activation.

    Only the master key activates; anything else is rejected before a write.
    """
    key = normalize_key(key)
    if key != (master_key or MASTER_KEY):
        logger.warning("License activation rejected")
        raise ValidationError("invalid license key")
    try:
        expires = normalize_datetime(expires_at) if expires_at is not None else None
    except ValueError:
        raise ValidationError("expires_at must be an ISO-8601 datetime") from None

    def _op():
        with backend.transaction() as uow:
            uow.put_license(key=key, activated_at=utcnow(), expires_at=expires)

    run_write(backend, _op, action="license activation")
    logger.info("License activated")
    return backend.get_license()


def get_license(backend: StorageBackend) -> dict | None:
    return backend.get_license()


def is_licensed(backend: StorageBackend, *, master_key: str | None = None, now=None) -> bool:
    row = backend.get_license()
    if row is None or row["key"] != (master_key or MASTER_KEY):
        return False
    expires_at = parse_iso_datetime(row["expires_at"]) if row["expires_at"] else None
    if expires_at is None:
        return True
    return expires_at >= (now or utcnow())
