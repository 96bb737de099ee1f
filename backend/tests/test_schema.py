from sqlalchemy import inspect

from vendix.extensions import db
from vendix.storage.base import ENTITY_NAMES

from conftest import make_app


def test_ensure_schema_is_idempotent(facade, make_product):
    product_id = make_product("Cola")

    facade.ensure_schema()
    facade.ensure_schema()

    assert facade.get_product(product_id)["name"] == "Cola"


def test_embedded_schema_tables_and_indexes():
    app = make_app("embedded")
    facade = app.extensions["vendix"]
    facade.ensure_schema()

    with app.app_context():
        inspector = inspect(db.engine)
        assert set(ENTITY_NAMES) <= set(inspector.get_table_names())
        product_indexes = {ix["name"] for ix in inspector.get_indexes("products")}
        assert "ix_products_category" in product_indexes
        line_fks = {fk["referred_table"] for fk in inspector.get_foreign_keys("sale_lines")}
        assert line_fks == {"sales", "products"}
    facade.close()


def test_document_schema_collections_and_indexes():
    app = make_app("document")
    facade = app.extensions["vendix"]
    facade.ensure_schema()

    store = facade.storage.connect().store
    assert set(store.collections) == set(ENTITY_NAMES)
    assert store.version >= 1
    assert set(store.collection("sale_lines").indexes) == {"sale_id", "product_id"}
    assert "category" in store.collection("products").indexes
    assert "sold_at" in store.collection("sales").indexes
