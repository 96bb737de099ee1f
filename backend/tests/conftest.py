"""
Pytest fixtures for Vendix backend tests.

Behavioural fixtures are parametrised over both storage backends, so every
test that uses `facade` (or `app`/`client`) runs once against the embedded
SQLite backend and once against the document store.
"""

import pytest

from vendix import create_app
from vendix.storage.document_backend import DocumentUnitOfWork
from vendix.storage.sql_backend import SqlUnitOfWork

BACKENDS = ("embedded", "document")


def make_app(mode: str, **overrides):
    config = {
        'TESTING': True,
        'STORAGE_MODE': mode,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'DOCUMENT_STORE_PATH': ':memory:',
        'REPORT_UTC_OFFSET_MINUTES': -300,
        'LOW_STOCK_THRESHOLD': 5.0,
        'LICENSE_MASTER_KEY': None,
    }
    config.update(overrides)
    return create_app(config)


@pytest.fixture(params=BACKENDS)
def app(request):
    """Create application for testing, once per storage backend."""
    app = make_app(request.param)
    yield app
    app.extensions["vendix"].close()


@pytest.fixture
def facade(app):
    return app.extensions["vendix"]


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_product(facade):
    """Factory: create a product and return its id."""
    def _make(name="Product", *, stock=10, cost_price=1.00, sale_price=2.00, **extra):
        payload = {
            "name": name,
            "cost_price": cost_price,
            "sale_price": sale_price,
            "stock": stock,
        }
        payload.update(extra)
        return facade.create_product(payload)
    return _make


@pytest.fixture
def failing_movement_insert(monkeypatch):
    """Make the ledger write blow up inside the transaction, on both backends."""
    def _fail(self, **kwargs):
        raise RuntimeError("disk I/O error")

    for uow_class in (SqlUnitOfWork, DocumentUnitOfWork):
        monkeypatch.setattr(uow_class, "insert_movement", _fail)
