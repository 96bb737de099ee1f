import pytest
from openpyxl import Workbook

from vendix.services.import_service import ProductImportError
from vendix.validation import ValidationError


def _write_xlsx(path, rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    wb.save(path)


def test_import_xlsx_with_spanish_headers(facade, tmp_path):
    path = tmp_path / "productos.xlsx"
    _write_xlsx(path, [
        ["nombre", "categoria", "precio_costo", "precio_venta", "unidad_medida", "stock"],
        ["Arroz", "Granos", 1.2, 1.8, "kilogramo", 25],
        ["Frijol", "Granos", 1.5, 2.3, "kg", 10.5],
        ["Gaseosa", "Bebidas", 0.6, 1, "unidad", 48],
        [None, None, None, None, None, None],
    ])

    result = facade.import_products(str(path))

    assert result == {"imported": 3, "categories": 2, "errors": []}
    products = facade.list_products()
    assert [p["name"] for p in products] == ["Arroz", "Frijol", "Gaseosa"]
    assert products[0]["unit"] == "kilogram"
    assert products[1]["stock"] == 10.5
    assert products[2]["sale_price_cents"] == 100
    assert [c["name"] for c in facade.list_categories()] == ["Bebidas", "Granos"]


def test_import_csv_reports_bad_rows(facade, tmp_path):
    path = tmp_path / "products.csv"
    path.write_text(
        "name,category,cost_price,sale_price,unit,stock\n"
        "Cola,Drinks,0.50,1.00,unit,24\n"
        "Broken,Drinks,abc,1.00,unit,1\n"
        "NoPrice,Drinks,0.50,,unit,1\n"
        "Water,,0.20,0.50,,6\n",
        encoding="utf-8",
    )

    result = facade.import_products(str(path))

    assert result["imported"] == 2
    assert result["categories"] == 1
    assert [e["row"] for e in result["errors"]] == [3, 4]
    assert "sale_price" in result["errors"][1]["error"]
    water = facade.list_products()[1]
    assert water["category"] is None
    assert water["unit"] == "unit"


def test_import_rejects_unknown_format(facade, tmp_path):
    path = tmp_path / "products.txt"
    path.write_text("name\nCola\n", encoding="utf-8")

    with pytest.raises(ProductImportError):
        facade.import_products(str(path))


def test_import_missing_file(facade, tmp_path):
    with pytest.raises(ValidationError):
        facade.import_products(str(tmp_path / "nope.xlsx"))
