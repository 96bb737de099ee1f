import pytest

from vendix.validation import NotFoundError, ReferentialConflict, ValidationError


def test_create_product_defaults(facade):
    product_id = facade.create_product({"name": "Rice", "cost_price": 1.5, "sale_price": "2.25"})

    product = facade.get_product(product_id)
    assert product["name"] == "Rice"
    assert product["stock"] == 0
    assert product["unit"] == "unit"
    assert product["category"] is None
    assert product["cost_price_cents"] == 150
    assert product["sale_price"] == 2.25
    assert product["created_at"].endswith("Z")


def test_create_product_requires_prices(facade):
    with pytest.raises(ValidationError, match="cost_price"):
        facade.create_product({"name": "Rice", "sale_price": 2})
    with pytest.raises(ValidationError):
        facade.create_product({"name": "Rice", "cost_price": -1, "sale_price": 2})
    with pytest.raises(ValidationError):
        facade.create_product({"name": "   ", "cost_price": 1, "sale_price": 2})
    assert facade.list_products() == []


def test_create_product_rejects_unknown_fields_and_units(facade):
    with pytest.raises(ValidationError, match="Field not allowed: sku"):
        facade.create_product({"name": "Rice", "cost_price": 1, "sale_price": 2, "sku": "X"})
    with pytest.raises(ValidationError, match="unit"):
        facade.create_product({"name": "Rice", "cost_price": 1, "sale_price": 2, "unit": "litre"})


def test_create_product_upserts_category(facade, make_product):
    make_product("Cola", category="Drinks")
    make_product("Water", category="Drinks")
    make_product("Bread", category="Bakery")
    make_product("Loose", category="  ")

    assert [c["name"] for c in facade.list_categories()] == ["Bakery", "Drinks"]


def test_upsert_category_is_idempotent(facade):
    facade.upsert_category("Snacks")
    facade.upsert_category("Snacks")
    facade.upsert_category("")
    facade.upsert_category(None)

    assert [c["name"] for c in facade.list_categories()] == ["Snacks"]


def test_list_products_by_category_in_id_order(facade, make_product):
    a = make_product("Cola", category="Drinks")
    b = make_product("Bread", category="Bakery")
    c = make_product("Water", category="Drinks")

    assert [p["id"] for p in facade.list_products()] == [a, b, c]
    assert [p["id"] for p in facade.list_products(category="Drinks")] == [a, c]
    assert facade.list_products(category="Nope") == []


def test_update_product_partial(facade, make_product):
    product_id = make_product("Cola", sale_price=2.00)

    facade.update_product(product_id, {"sale_price": 2.50, "category": "Drinks"})

    product = facade.get_product(product_id)
    assert product["name"] == "Cola"
    assert product["sale_price_cents"] == 250
    assert product["category"] == "Drinks"
    assert [c["name"] for c in facade.list_categories()] == ["Drinks"]


def test_update_product_rejects_stock(facade, make_product):
    product_id = make_product(stock=4)

    with pytest.raises(ValidationError, match="inventory movement"):
        facade.update_product(product_id, {"stock": 100})
    assert facade.get_product(product_id)["stock"] == 4


def test_update_missing_product(facade):
    with pytest.raises(NotFoundError):
        facade.update_product(999, {"name": "Ghost"})


def test_delete_product(facade, make_product):
    product_id = make_product()

    facade.delete_product(product_id)

    assert facade.get_product(product_id) is None
    with pytest.raises(NotFoundError):
        facade.delete_product(product_id)


def test_delete_product_referenced_by_sale_is_restricted(facade, make_product):
    product_id = make_product(stock=5)
    facade.record_sale([{"product_id": product_id, "quantity": 1, "unit_price": 2}])

    with pytest.raises(ReferentialConflict):
        facade.delete_product(product_id)
    assert facade.get_product(product_id) is not None


def test_delete_product_referenced_by_movement_is_restricted(facade, make_product):
    product_id = make_product(stock=0)
    facade.record_movement(product_id, "inbound", 3)

    with pytest.raises(ReferentialConflict):
        facade.delete_product(product_id)
    assert facade.get_product(product_id)["stock"] == 3
