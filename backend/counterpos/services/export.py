"""Excel writers for the sales-detail and stock snapshot exports."""

from collections.abc import Sequence
from io import BytesIO

import openpyxl
from openpyxl.styles import Font, PatternFill
from pydantic import BaseModel

from counterpos.schemas.report import SalesExportRow, StockRow

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SALES_HEADERS: dict[str, str] = {
    "transaction_id": "Transaction ID",
    "kind": "Type",
    "original_transaction_id": "Original Transaction",
    "date": "Date",
    "time": "Time",
    "barcode": "Barcode",
    "name": "Product Name",
    "quantity": "Quantity",
    "unit_price": "Unit Price",
    "line_total": "Line Total",
    "invoice_total": "Invoice Total",
    "amount": "Amount Received/Refunded",
    "change_due": "Change",
}

STOCK_HEADERS: dict[str, str] = {
    "barcode": "Barcode",
    "name": "Product Name",
    "stock": "Available Stock",
}


def _write_sheet(title: str, headers: dict[str, str], rows: Sequence[BaseModel]) -> bytes:
    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.title = title

    for col, label in enumerate(headers.values(), 1):
        cell = worksheet.cell(row=1, column=col, value=label)
        cell.font = Font(bold=True)
        cell.fill = PatternFill(start_color="CCCCCC", end_color="CCCCCC", fill_type="solid")

    for row_idx, row in enumerate(rows, 2):
        values = row.model_dump()
        for col_idx, field in enumerate(headers, 1):
            worksheet.cell(row=row_idx, column=col_idx, value=values[field])

    for column in worksheet.columns:
        width = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
        worksheet.column_dimensions[column[0].column_letter].width = min(width + 2, 50)

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def sales_workbook(rows: Sequence[SalesExportRow]) -> bytes:
    return _write_sheet("Sales Report", SALES_HEADERS, rows)


def stock_workbook(rows: Sequence[StockRow]) -> bytes:
    return _write_sheet("Stock", STOCK_HEADERS, rows)
