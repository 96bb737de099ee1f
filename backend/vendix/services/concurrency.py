# Overview: Retry helper for lock contention and the shared write-transaction wrapper.

from __future__ import annotations

import logging
import time

from ..validation import TransactionAbortedError, VendixError

logger = logging.getLogger(__name__)


def run_with_retry(func, *, retry_on: tuple = (), attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a write operation with retry on lock-contention failures.

    `retry_on` comes from the active backend (SQLite raises OperationalError
    for "database is locked"). The operation must open its own transaction
    so every attempt starts clean.
    """
    if not retry_on:
        return func()
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning("Write contention (attempt %d/%d): %s", attempt + 1, attempts, exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_write(backend, func, *, action: str = "write"):
    """
    Run one write transaction (`func` opens it) with contention retry.

    Domain errors propagate unchanged. Anything else that escapes the
    transaction scope has already been rolled back by the backend and is
    re-raised as TransactionAbortedError.
    """
    try:
        return run_with_retry(func, retry_on=backend.retryable_errors)
    except VendixError:
        raise
    except Exception as exc:
        logger.warning("%s rolled back after unexpected error: %r", action, exc)
        raise TransactionAbortedError(f"{action} could not be completed") from exc
