# Overview: Storage backend selector; owns the per-app backend handle.

"""
Storage backend selection.

The embedded relational backend is preferred whenever the host can load the
database driver; otherwise the document store takes over. The choice is made
once per app (STORAGE_MODE = auto | embedded | document) and the resulting
backend handle is shared by every caller of that app.
"""
from __future__ import annotations

import logging
import threading

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from .base import DOCUMENT, EMBEDDED, StorageBackend

logger = logging.getLogger(__name__)

STORAGE_MODES = ("auto", EMBEDDED, DOCUMENT)


def embedded_database_supported(database_uri: str | None) -> bool:
    """True when the DB-API driver for the configured URL can be imported."""
    if not database_uri:
        return False
    try:
        make_url(database_uri).get_dialect().import_dbapi()
    except (ArgumentError, NoSuchModuleError, ImportError):
        return False
    return True


def select_storage_mode(config) -> str:
    mode = (config.get("STORAGE_MODE") or "auto").strip().lower()
    if mode not in STORAGE_MODES:
        raise ValueError(f"STORAGE_MODE must be one of: {', '.join(STORAGE_MODES)}")
    if mode != "auto":
        return mode
    if embedded_database_supported(config.get("SQLALCHEMY_DATABASE_URI")):
        return EMBEDDED
    return DOCUMENT


class Storage:
    def __init__(self, app=None):
        self.app = None
        self.mode: str | None = None
        self._backend: StorageBackend | None = None
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.app = app
        self.mode = select_storage_mode(app.config)
        logger.info("Storage mode selected: %s", self.mode)

    @property
    def is_embedded(self) -> bool:
        return self.mode == EMBEDDED

    def _build(self) -> StorageBackend:
        if self.mode == EMBEDDED:
            from .sql_backend import SqlBackend
            return SqlBackend(self.app)
        from .document_backend import DocumentBackend
        return DocumentBackend(self.app.config.get("DOCUMENT_STORE_PATH"))

    def connect(self) -> StorageBackend | None:
        """
        Return the live backend, opening it on first use.

        Idempotent. When opening fails the error is logged and None is
        returned; the next call tries again.
        """
        if self._backend is not None:
            return self._backend
        with self._lock:
            if self._backend is None:
                backend = self._build()
                try:
                    backend.open()
                except Exception:
                    logger.exception("Could not open the %s storage backend", self.mode)
                    return None
                self._backend = backend
        return self._backend

    def close(self) -> None:
        with self._lock:
            if self._backend is not None:
                self._backend.close()
                self._backend = None
