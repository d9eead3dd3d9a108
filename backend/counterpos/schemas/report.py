"""Report schemas."""

import enum
from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class ReportPeriod(str, enum.Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


class ProductSales(BaseModel):
    barcode: str
    name: str
    quantity: int
    revenue: Decimal


class SalesReport(BaseModel):
    period: ReportPeriod
    reference_date: date
    total_revenue: Decimal
    sale_count: int
    return_count: int
    transaction_count: int
    products: list[ProductSales]


class SalesExportRow(BaseModel):
    transaction_id: str
    kind: str
    original_transaction_id: str
    date: str
    time: str
    barcode: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    invoice_total: Decimal
    amount: Decimal | None  # received for sales, refunded for returns
    change_due: Decimal | None


class StockRow(BaseModel):
    barcode: str
    name: str
    stock: int
