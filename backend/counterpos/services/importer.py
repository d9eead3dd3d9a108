"""Bulk product import from an Excel workbook.

Row checks, in order: required fields, price, stock, barcode already in the
catalog. Rows passing those are then de-duplicated by barcode; the first
occurrence in sheet order wins and later ones are reported as errors.
"""

import logging
import zipfile
from decimal import Decimal, InvalidOperation
from io import BytesIO

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError

from counterpos.core.config import settings
from counterpos.schemas.product import ImportErrorRow, ImportResult, Product
from counterpos.services.errors import InvalidInputError

logger = logging.getLogger(__name__)

# Canonical field -> accepted header spellings (English, or the Arabic sheet layout)
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "barcode": ("barcode", "الباركود"),
    "name": ("name", "product name", "اسم المنتج"),
    "price": ("price", "السعر"),
    "stock": ("stock", "الرصيد"),
    "image_url": ("image url", "image_url", "رابط الصورة"),
    "is_taxable": ("taxable", "is_taxable", "خاضع للضريبة"),
}

TRUTHY = {"true", "yes", "نعم"}

_HEADER_LOOKUP = {alias: field for field, aliases in COLUMN_ALIASES.items() for alias in aliases}


def _canonical_header(value) -> str:
    header = str(value).strip() if value is not None else ""
    return _HEADER_LOOKUP.get(header.lower(), header)


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def read_product_rows(content: bytes) -> list[tuple[int, dict[str, str]]]:
    """Read the first sheet into (sheet row number, {field: text}) pairs, skipping blank rows."""
    try:
        workbook = openpyxl.load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        logger.warning("Rejected import file: %s", exc)
        raise InvalidInputError("The file is not a valid Excel workbook")

    try:
        worksheet = workbook.worksheets[0]
        row_iter = worksheet.iter_rows(values_only=True)
        header_row = next(row_iter, None)
        if header_row is None:
            return []
        headers = [_canonical_header(value) for value in header_row]

        rows: list[tuple[int, dict[str, str]]] = []
        for row_number, values in enumerate(row_iter, start=2):
            data = {
                header: _cell_text(value)
                for header, value in zip(headers, values)
                if header
            }
            if any(data.values()):
                rows.append((row_number, data))
        return rows
    finally:
        workbook.close()


def _parse_decimal(raw: str) -> Decimal | None:
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _parse_stock(raw: str) -> int | None:
    value = _parse_decimal(raw)
    if value is None or value != value.to_integral_value():
        return None
    return int(value)


def validate_product_rows(
    rows: list[tuple[int, dict[str, str]]],
    existing_barcodes: set[str],
) -> ImportResult:
    errors: list[ImportErrorRow] = []
    parsed: list[tuple[int, dict[str, str], Product]] = []

    for row_number, data in rows:
        barcode = data.get("barcode", "").strip()
        name = data.get("name", "").strip()
        price_raw = data.get("price", "").strip()
        stock_raw = data.get("stock", "").strip()
        price = _parse_decimal(price_raw) if price_raw else None
        stock = _parse_stock(stock_raw) if stock_raw else 0

        if not barcode or not name or not price_raw:
            error = "Barcode, product name and price are required"
        elif price is None or price <= 0:
            error = "Price must be a valid number greater than zero"
        elif stock is None or stock < 0:
            error = "Stock must be a non-negative whole number"
        elif barcode in existing_barcodes:
            error = f"Barcode {barcode} already exists in the catalog"
        else:
            try:
                product = Product(
                    id=barcode,
                    name=name,
                    price=price,
                    image_url=data.get("image_url", "") or settings.DEFAULT_IMAGE_URL,
                    is_taxable=data.get("is_taxable", "").strip().lower() in TRUTHY,
                    stock=stock,
                )
            except ValidationError as exc:
                error = f"Invalid product data: {exc.errors()[0]['msg']}"
            else:
                parsed.append((row_number, data, product))
                continue
        errors.append(ImportErrorRow(row=row_number, data=data, error=error))

    seen: set[str] = set()
    products: list[Product] = []
    for row_number, data, product in parsed:
        if product.id in seen:
            errors.append(ImportErrorRow(
                row=row_number,
                data=data,
                error=f"Barcode {product.id} is duplicated within the file",
            ))
            continue
        seen.add(product.id)
        products.append(product)

    errors.sort(key=lambda e: e.row)
    return ImportResult(products=products, errors=errors)
