import pytest

from vendix.validation import (
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    TransactionAbortedError,
    ValidationError,
)


def test_basic_sale(facade, make_product):
    a = make_product("A", stock=10, cost_price=1.00, sale_price=2.00)

    sale_id = facade.record_sale([{"productId": a, "quantity": 3, "unitPrice": 2.00}])

    assert facade.get_product(a)["stock"] == 7

    lines = facade.get_sale_line_items(sale_id)
    assert len(lines) == 1
    assert lines[0]["product_name"] == "A"
    assert lines[0]["subtotal_cents"] == 600
    assert lines[0]["subtotal"] == 6.00

    movements = facade.list_movements(10)
    assert len(movements) == 1
    assert movements[0]["type"] == "outbound"
    assert movements[0]["quantity"] == 3
    assert movements[0]["reason"] == f"sale #{sale_id}"

    [summary] = facade.list_sales_summary(10)
    assert summary["id"] == sale_id
    assert summary["total"] == 6.00
    assert summary["item_count"] == 1


def test_insufficient_stock_rolls_back(facade, make_product):
    b = make_product("B", stock=2)

    with pytest.raises(InsufficientStockError) as excinfo:
        facade.record_sale([{"product_id": b, "quantity": 5, "unit_price": 1.00}])

    assert excinfo.value.product_id == b
    assert facade.get_product(b)["stock"] == 2
    assert facade.list_sales_summary(10) == []
    assert facade.list_movements(10) == []


def test_failure_on_later_line_undoes_earlier_lines(facade, make_product):
    a = make_product("A", stock=10)
    b = make_product("B", stock=1)

    with pytest.raises(InsufficientStockError) as excinfo:
        facade.record_sale([
            {"product_id": a, "quantity": 3, "unit_price": 2},
            {"product_id": b, "quantity": 2, "unit_price": 2},
        ])

    assert excinfo.value.product_id == b
    assert facade.get_product(a)["stock"] == 10
    assert facade.get_product(b)["stock"] == 1
    assert facade.list_sales_summary(10) == []
    assert facade.list_movements(10) == []
    assert facade.snapshot()["sale_lines"] == []


def test_first_failing_line_in_caller_order_is_reported(facade, make_product):
    a = make_product("A", stock=1)
    b = make_product("B", stock=1)

    with pytest.raises(InsufficientStockError) as excinfo:
        facade.record_sale([
            {"product_id": a, "quantity": 5, "unit_price": 1},
            {"product_id": b, "quantity": 5, "unit_price": 1},
        ])

    assert excinfo.value.product_id == a


def test_conservation_with_repeated_product(facade, make_product):
    a = make_product("A", stock=10)
    b = make_product("B", stock=4)

    sale_id = facade.record_sale([
        {"product_id": a, "quantity": 2, "unit_price": 1.25},
        {"product_id": b, "quantity": 4, "unit_price": 0.99},
        {"product_id": a, "quantity": 3, "unit_price": 1.25},
    ])

    lines = facade.get_sale_line_items(sale_id)
    [summary] = facade.list_sales_summary(1)
    assert summary["total_cents"] == sum(line["subtotal_cents"] for line in lines) == 250 + 396 + 375
    assert summary["item_count"] == 3
    assert facade.get_product(a)["stock"] == 5
    assert facade.get_product(b)["stock"] == 0


def test_fractional_quantity_rounds_subtotal_half_up(facade, make_product):
    cheese = make_product("Cheese", stock=2.5, unit="kilogram")

    sale_id = facade.record_sale([{"product_id": cheese, "quantity": 0.75, "unit_price": 3.99}])

    [line] = facade.get_sale_line_items(sale_id)
    # 0.75 x 399 = 299.25 cents
    assert line["subtotal_cents"] == 299
    assert facade.get_product(cheese)["stock"] == 1.75


def test_exact_stock_can_be_sold(facade, make_product):
    a = make_product(stock=3)

    facade.record_sale([{"product_id": a, "quantity": 3, "unit_price": 1}])

    assert facade.get_product(a)["stock"] == 0


@pytest.mark.parametrize("cart", [[], None])
def test_empty_cart(facade, cart):
    with pytest.raises(EmptyCartError):
        facade.record_sale(cart)


@pytest.mark.parametrize(
    "line",
    [
        {"product_id": 1, "quantity": 0, "unit_price": 1},
        {"product_id": 1, "quantity": -2, "unit_price": 1},
        {"product_id": 1, "quantity": 1, "unit_price": -1},
        {"product_id": 1, "quantity": "abc", "unit_price": 1},
        {"product_id": 1, "quantity": 1},
        {"quantity": 1, "unit_price": 1},
    ],
)
def test_malformed_lines_are_rejected_before_any_write(facade, make_product, line):
    make_product(stock=10)

    with pytest.raises(ValidationError):
        facade.record_sale([line])

    assert facade.list_sales_summary(10) == []


def test_unknown_product_aborts_sale(facade, make_product):
    a = make_product(stock=10)

    with pytest.raises(NotFoundError):
        facade.record_sale([
            {"product_id": a, "quantity": 1, "unit_price": 1},
            {"product_id": 999, "quantity": 1, "unit_price": 1},
        ])

    assert facade.get_product(a)["stock"] == 10
    assert facade.list_sales_summary(10) == []


def test_unit_price_comes_from_cart_not_product(facade, make_product):
    a = make_product(sale_price=2.00)

    sale_id = facade.record_sale([{"product_id": a, "quantity": 1, "unit_price": 1.50}])
    facade.update_product(a, {"sale_price": 9.99})

    [line] = facade.get_sale_line_items(sale_id)
    assert line["unit_price_cents"] == 150


def test_sold_at_is_kept_and_serialised_as_utc(facade, make_product):
    a = make_product()

    sale_id = facade.record_sale(
        [{"product_id": a, "quantity": 1, "unit_price": 1}],
        sold_at="2025-03-01T07:30:00-05:00",
    )

    [summary] = facade.list_sales_summary(1)
    assert summary["id"] == sale_id
    assert summary["sold_at"] == "2025-03-01T12:30:00Z"


def test_invalid_sold_at(facade, make_product):
    a = make_product()
    with pytest.raises(ValidationError):
        facade.record_sale([{"product_id": a, "quantity": 1, "unit_price": 1}], sold_at="yesterday")


def test_sales_summary_newest_first_with_limit(facade, make_product):
    a = make_product(stock=10)
    ids = [
        facade.record_sale([{"product_id": a, "quantity": 1, "unit_price": 1}])
        for _ in range(3)
    ]

    assert [s["id"] for s in facade.list_sales_summary(10)] == list(reversed(ids))
    assert [s["id"] for s in facade.list_sales_summary(2)] == [ids[2], ids[1]]
    with pytest.raises(ValidationError):
        facade.list_sales_summary(0)


def test_sale_lines_of_unknown_sale(facade):
    assert facade.get_sale_line_items(12345) == []


def test_unexpected_failure_aborts_whole_sale(facade, make_product, failing_movement_insert):
    a = make_product("A", stock=5)

    with pytest.raises(TransactionAbortedError) as excinfo:
        facade.record_sale([{"product_id": a, "quantity": 2, "unit_price": 1.00}])

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert facade.get_product(a)["stock"] == 5
    assert facade.list_sales_summary(10) == []
    assert facade.list_movements(10) == []
    assert facade.snapshot()["sale_lines"] == []
