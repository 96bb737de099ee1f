import json

import pytest

from vendix.storage.document_store import Collection, DocumentStore

from conftest import make_app


def test_collection_indexes_follow_writes():
    coll = Collection("products", indexes=("category",))
    a = coll.add({"name": "Cola", "category": "Drinks"})
    b = coll.add({"name": "Bread", "category": "Bakery"})

    assert coll.keys_where("category", "Drinks") == [a]
    coll.update(a, {"category": "Bakery"})
    assert coll.keys_where("category", "Drinks") == []
    assert coll.keys_where("category", "Bakery") == [a, b]
    coll.delete(b)
    assert coll.where("category", "Bakery") == [{"id": a, "name": "Cola", "category": "Bakery"}]


def test_transaction_rolls_back_on_error():
    store = DocumentStore("test")
    store.declare(1, {"products": ("name",)})
    with store.transaction():
        store.collection("products").add({"name": "kept"})

    with pytest.raises(RuntimeError):
        with store.transaction():
            store.collection("products").add({"name": "lost"})
            store.collection("products").update(1, {"name": "changed"})
            raise RuntimeError("boom")

    products = store.collection("products")
    assert products.all() == [{"id": 1, "name": "kept"}]
    assert products.keys_where("name", "lost") == []
    # generated keys are not consumed by a rolled-back transaction
    assert products.add({"name": "next"}) == 2


def test_nested_transaction_joins_outer_scope():
    store = DocumentStore("test")
    store.declare(1, {"sales": ()})

    with pytest.raises(ValueError):
        with store.transaction():
            store.collection("sales").add({"total_cents": 1})
            with store.transaction():
                store.collection("sales").add({"total_cents": 2})
            raise ValueError("outer fails")

    assert store.collection("sales").all() == []


def test_persistence_round_trip(tmp_path):
    path = tmp_path / "store.json"
    store = DocumentStore("vendix", str(path))
    store.declare(3, {"products": ("category",)})
    with store.transaction():
        store.collection("products").add({"name": "Cola", "category": "Drinks"})

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["version"] == 3

    reopened = DocumentStore("vendix", str(path))
    reopened.load()
    products = reopened.collection("products")
    assert products.where("category", "Drinks")[0]["name"] == "Cola"
    assert products.add({"name": "Water"}) == 2


def test_declare_is_additive(tmp_path):
    store = DocumentStore("vendix")
    store.declare(1, {"products": ("name",)})
    with store.transaction():
        store.collection("products").add({"name": "Cola", "category": "Drinks"})

    store.declare(2, {"products": ("name", "category"), "categories": ("name",)})
    store.declare(1, {"products": ()})

    assert store.version == 2
    assert store.collection("products").keys_where("category", "Drinks") == [1]
    assert store.collection("products").indexes.keys() == {"name", "category"}
    assert store.collection("categories").all() == []


def test_failed_transaction_leaves_file_untouched(tmp_path):
    path = tmp_path / "store.json"
    store = DocumentStore("vendix", str(path))
    store.declare(1, {"products": ()})
    before = path.read_text(encoding="utf-8")

    with pytest.raises(KeyError):
        with store.transaction():
            store.collection("products").add({"name": "Cola"})
            store.collection("missing")

    assert path.read_text(encoding="utf-8") == before


def test_document_backend_persists_between_apps(tmp_path):
    path = str(tmp_path / "vendix.store.json")

    first = make_app("document", DOCUMENT_STORE_PATH=path).extensions["vendix"]
    product_id = first.create_product({"name": "Cola", "cost_price": 1, "sale_price": 2, "stock": 5})
    first.record_sale([{"product_id": product_id, "quantity": 2, "unit_price": 2}])
    first.close()

    second = make_app("document", DOCUMENT_STORE_PATH=path).extensions["vendix"]
    assert second.get_product(product_id)["stock"] == 3
    assert second.list_sales_summary(5)[0]["total"] == 4.0
    assert second.list_movements(5)[0]["reason"].startswith("sale #")
