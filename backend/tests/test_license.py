from datetime import timedelta

import pytest

from vendix.services.license_service import MASTER_KEY
from vendix.time_utils import to_utc_z, utcnow
from vendix.validation import ValidationError

from conftest import make_app


def test_not_licensed_by_default(facade):
    assert facade.get_license() is None
    assert facade.is_licensed() is False


def test_activate_with_master_key(facade):
    row = facade.activate_license(" vendix-2025-pro ")

    assert row["id"] == 1
    assert row["key"] == MASTER_KEY
    assert row["activated_at"].endswith("Z")
    assert row["expires_at"] is None
    assert facade.is_licensed() is True


def test_activation_replaces_single_row(facade):
    facade.activate_license(MASTER_KEY)
    facade.activate_license(MASTER_KEY)

    assert len(facade.snapshot()["license"]) == 1


@pytest.mark.parametrize("key", ["WRONG-KEY", "", None])
def test_invalid_key_is_rejected(facade, key):
    with pytest.raises(ValidationError):
        facade.activate_license(key)
    assert facade.get_license() is None


def test_expired_license_is_inactive(facade):
    facade.activate_license(MASTER_KEY, expires_at=to_utc_z(utcnow() - timedelta(days=1)))
    assert facade.is_licensed() is False

    facade.activate_license(MASTER_KEY, expires_at=to_utc_z(utcnow() + timedelta(days=30)))
    assert facade.is_licensed() is True


def test_master_key_from_config():
    facade = make_app("document", LICENSE_MASTER_KEY="SHOP-KEY").extensions["vendix"]

    with pytest.raises(ValidationError):
        facade.activate_license(MASTER_KEY)
    facade.activate_license("shop-key")
    assert facade.is_licensed() is True


def test_snapshot_lists_every_entity(facade, make_product):
    make_product(category="Drinks")

    snapshot = facade.snapshot()

    assert set(snapshot) == {
        "products", "categories", "sales", "sale_lines", "inventory_movements", "license",
    }
    assert len(snapshot["products"]) == 1
    assert snapshot["categories"][0]["name"] == "Drinks"


def test_clear_database_keeps_license(facade, make_product):
    product_id = make_product(stock=5, category="Drinks")
    facade.record_sale([{"product_id": product_id, "quantity": 2, "unit_price": 1}])
    facade.record_movement(product_id, "inbound", 1)
    facade.activate_license(MASTER_KEY)

    counts = facade.clear_database()

    assert counts == {
        "inventory_movements": 2,
        "sale_lines": 1,
        "sales": 1,
        "products": 1,
        "categories": 1,
    }
    assert facade.list_products() == []
    assert facade.list_categories() == []
    assert facade.list_sales_summary(5) == []
    assert facade.is_licensed() is True
