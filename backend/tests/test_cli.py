import json

from vendix.services.license_service import MASTER_KEY


def test_db_init(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["db", "init"])

    assert result.exit_code == 0
    assert "PASS Schema ready" in result.output


def test_license_commands(app):
    runner = app.test_cli_runner()

    assert "No license activated" in runner.invoke(args=["license", "status"]).output

    bad = runner.invoke(args=["license", "activate", "WRONG"])
    assert bad.exit_code != 0
    assert "ValidationError" in bad.output

    assert runner.invoke(args=["license", "activate", MASTER_KEY]).exit_code == 0
    assert "License active" in runner.invoke(args=["license", "status"]).output


def test_products_import_and_reports(app, tmp_path):
    path = tmp_path / "products.csv"
    path.write_text("nombre,precio_costo,precio_venta,stock\nPan,0.1,0.25,40\n", encoding="utf-8")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["products", "import", str(path)])
    assert result.exit_code == 0
    assert "Imported 1 product(s)" in result.output

    facade = app.extensions["vendix"]
    product_id = facade.list_products()[0]["id"]
    facade.record_sale([{"product_id": product_id, "quantity": 4, "unit_price": 0.25}])

    result = runner.invoke(args=["reports", "summary"])
    assert result.exit_code == 0
    assert "Revenue:        1.00" in result.output
    assert "Profit:         0.60" in result.output


def test_snapshot_and_clear(app, tmp_path):
    facade = app.extensions["vendix"]
    facade.create_product({"name": "Cola", "cost_price": 1, "sale_price": 2})
    runner = app.test_cli_runner()

    out = tmp_path / "dump.json"
    assert runner.invoke(args=["db", "snapshot", "--output", str(out)]).exit_code == 0
    assert len(json.loads(out.read_text(encoding="utf-8"))["products"]) == 1

    aborted = runner.invoke(args=["db", "clear"], input="n\n")
    assert aborted.exit_code != 0
    assert len(facade.list_products()) == 1

    result = runner.invoke(args=["db", "clear", "--yes"])
    assert result.exit_code == 0
    assert "products: 1 deleted" in result.output
    assert facade.list_products() == []
