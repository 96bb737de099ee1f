import pytest

from vendix.storage import Storage, embedded_database_supported, select_storage_mode
from vendix.validation import BackendUnavailableError

from conftest import make_app


def test_embedded_supported_for_sqlite():
    assert embedded_database_supported("sqlite:///:memory:") is True


@pytest.mark.parametrize("uri", [None, "", "nosuchdialect://user@host/db", "not a url"])
def test_embedded_not_supported(uri):
    assert embedded_database_supported(uri) is False


@pytest.mark.parametrize(
    "config, expected",
    [
        ({"STORAGE_MODE": "auto", "SQLALCHEMY_DATABASE_URI": "sqlite:///x.db"}, "embedded"),
        ({"STORAGE_MODE": "auto", "SQLALCHEMY_DATABASE_URI": "nosuchdialect://x"}, "document"),
        ({"STORAGE_MODE": "document", "SQLALCHEMY_DATABASE_URI": "sqlite:///x.db"}, "document"),
        ({"STORAGE_MODE": " Embedded ", "SQLALCHEMY_DATABASE_URI": "sqlite:///x.db"}, "embedded"),
        ({"SQLALCHEMY_DATABASE_URI": "sqlite:///x.db"}, "embedded"),
    ],
)
def test_select_storage_mode(config, expected):
    assert select_storage_mode(config) == expected


def test_select_storage_mode_rejects_unknown():
    with pytest.raises(ValueError):
        select_storage_mode({"STORAGE_MODE": "cloud"})


def test_connect_is_idempotent(app):
    storage = Storage(app)
    first = storage.connect()
    assert first is not None
    assert storage.connect() is first
    storage.close()


def test_unreadable_document_store_degrades(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    facade = make_app("document", DOCUMENT_STORE_PATH=str(path)).extensions["vendix"]

    assert facade.storage.connect() is None
    assert facade.list_products() == []
    assert facade.get_product(1) is None
    assert facade.financial_summary()["revenue_cents"] == 0
    assert facade.is_licensed() is False
    with pytest.raises(BackendUnavailableError):
        facade.create_product({"name": "Cola", "cost_price": 1, "sale_price": 2})
    with pytest.raises(BackendUnavailableError):
        facade.record_sale([{"product_id": 1, "quantity": 1, "unit_price": 1}])


def test_unopenable_embedded_database_degrades(tmp_path):
    uri = f"sqlite:///{tmp_path / 'missing-dir' / 'vendix.sqlite3'}"
    facade = make_app("embedded", SQLALCHEMY_DATABASE_URI=uri).extensions["vendix"]

    assert facade.storage.connect() is None
    assert facade.list_movements(5) == []
    with pytest.raises(BackendUnavailableError):
        facade.record_movement(1, "inbound", 1)
