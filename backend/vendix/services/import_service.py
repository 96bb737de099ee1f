# Overview: Bulk product import from spreadsheet (.xlsx) and CSV files.

from __future__ import annotations

import csv
import io
import logging
import os
from typing import Any, BinaryIO

from ..storage.base import StorageBackend
from ..validation import ValidationError
from . import products_service

logger = logging.getLogger(__name__)

XLSX_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}

# Header -> product payload key. Spanish headers come from the shop's
# legacy spreadsheet template.
HEADER_ALIASES = {
    "name": "name",
    "nombre": "name",
    "category": "category",
    "categoria": "category",
    "categoría": "category",
    "cost_price": "cost_price",
    "precio_costo": "cost_price",
    "sale_price": "sale_price",
    "precio_venta": "sale_price",
    "unit": "unit",
    "unidad_medida": "unit",
    "stock": "stock",
}

# Spanish unit names used by the same template.
UNIT_ALIASES = {
    "unidad": "unit",
    "kilogramo": "kilogram",
    "kg": "kilogram",
    "libra": "pound",
    "lb": "pound",
}


class ProductImportError(ValidationError):
    """Raised when an import file cannot be read at all."""


def _header_key(value: Any) -> str | None:
    if value is None:
        return None
    return HEADER_ALIASES.get(str(value).strip().lower())


def _read_xlsx(stream: BinaryIO) -> list[dict]:
    from openpyxl import load_workbook

    wb = load_workbook(stream, read_only=True, data_only=True)
    try:
        data = list(wb.worksheets[0].values)
    finally:
        wb.close()
    if not data:
        return []
    headers = [_header_key(h) for h in data[0]]
    rows = []
    for values in data[1:]:
        if values is None or all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
            continue
        rows.append({h: v for h, v in zip(headers, values) if h is not None})
    return rows


def _read_csv(stream: BinaryIO) -> list[dict]:
    text = io.StringIO(stream.read().decode("utf-8-sig"))
    reader = csv.DictReader(text)
    rows = []
    for raw in reader:
        row = {}
        for header, value in raw.items():
            key = _header_key(header)
            if key is None:
                continue
            row[key] = value.strip() if isinstance(value, str) else value
        if any(v not in (None, "") for v in row.values()):
            rows.append(row)
    return rows


def read_rows(stream: BinaryIO, filename: str) -> list[dict]:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    try:
        if ext == "csv":
            return _read_csv(stream)
        if ext in XLSX_EXTENSIONS:
            return _read_xlsx(stream)
    except (UnicodeDecodeError, csv.Error, OSError, KeyError, ValueError) as exc:
        raise ProductImportError(f"could not read {filename}: {exc}") from exc
    raise ProductImportError("Unsupported file format (use .xlsx or .csv)")


def _row_payload(row: dict) -> dict:
    payload = {k: v for k, v in row.items() if v not in (None, "")}
    unit = payload.get("unit")
    if isinstance(unit, str):
        payload["unit"] = UNIT_ALIASES.get(unit.strip().lower(), unit.strip().lower())
    return payload


def import_rows(backend: StorageBackend, rows: list[dict]) -> dict:
    """
    Create one product per row. A bad row is reported and skipped; it never
    aborts the rows around it. Row numbers count the header as row 1.
    """
    imported = 0
    categories: set[str] = set()
    errors = []
    for row_number, row in enumerate(rows, start=2):
        payload = _row_payload(row)
        try:
            products_service.create_product(backend, payload)
        except ValidationError as exc:
            errors.append({"row": row_number, "error": str(exc)})
            continue
        imported += 1
        category = payload.get("category")
        if isinstance(category, str) and category.strip():
            categories.add(category.strip())

    logger.info("Product import finished: %d imported, %d rejected", imported, len(errors))
    return {"imported": imported, "categories": len(categories), "errors": errors}


def import_products(backend: StorageBackend, path: str) -> dict:
    if not os.path.isfile(path):
        raise ProductImportError(f"file not found: {path}")
    with open(path, "rb") as fh:
        rows = read_rows(fh, path)
    return import_rows(backend, rows)
