"""Derived views over the ledger and catalog. Pure functions, no side effects."""

from collections.abc import Iterable
from datetime import date, datetime, tzinfo
from decimal import Decimal
from zoneinfo import ZoneInfo

from counterpos.core.config import settings
from counterpos.schemas.product import Product
from counterpos.schemas.report import (
    ProductSales,
    ReportPeriod,
    SalesExportRow,
    SalesReport,
    StockRow,
)
from counterpos.schemas.transaction import Transaction, TransactionKind
from counterpos.services.errors import InvalidInputError, NotFoundError
from counterpos.services.pricing import money


def store_timezone() -> tzinfo:
    return ZoneInfo(settings.STORE_TIMEZONE)


def _local(timestamp: datetime, tz: tzinfo) -> datetime:
    return timestamp.astimezone(tz)


def in_period(timestamp: datetime, period: ReportPeriod, reference: date, tz: tzinfo) -> bool:
    local = _local(timestamp, tz)
    if local.year != reference.year:
        return False
    if period == ReportPeriod.YEAR:
        return True
    if local.month != reference.month:
        return False
    if period == ReportPeriod.MONTH:
        return True
    return local.day == reference.day


def summarize_period(
    transactions: Iterable[Transaction],
    period: ReportPeriod,
    reference: date,
    tz: tzinfo | None = None,
) -> SalesReport:
    """Net revenue and per-product net quantities for the day/month/year containing `reference`."""
    tz = tz or store_timezone()
    selected = [tx for tx in transactions if in_period(tx.timestamp, period, reference, tz)]

    sale_count = sum(1 for tx in selected if tx.kind == TransactionKind.SALE)
    return_count = len(selected) - sale_count

    per_product: dict[str, ProductSales] = {}
    for tx in selected:
        sign = -1 if tx.kind == TransactionKind.RETURN else 1
        for item in tx.items:
            entry = per_product.get(item.id)
            if entry is None:
                entry = per_product[item.id] = ProductSales(
                    barcode=item.id, name=item.name, quantity=0, revenue=Decimal("0")
                )
            entry.quantity += item.quantity * sign
            entry.revenue += item.price * item.quantity * sign

    products = sorted(per_product.values(), key=lambda p: p.quantity, reverse=True)
    for entry in products:
        entry.revenue = money(entry.revenue)

    return SalesReport(
        period=period,
        reference_date=reference,
        total_revenue=money(sum((tx.total for tx in selected), Decimal("0"))),
        sale_count=sale_count,
        return_count=return_count,
        transaction_count=len(selected),
        products=products,
    )


def transactions_between(
    transactions: Iterable[Transaction],
    start: date,
    end: date,
    tz: tzinfo | None = None,
) -> list[Transaction]:
    """Transactions whose local date falls within [start, end], inclusive."""
    if start > end:
        raise InvalidInputError("The start date must not be after the end date")
    tz = tz or store_timezone()
    return [tx for tx in transactions if start <= _local(tx.timestamp, tz).date() <= end]


def sales_export_rows(
    transactions: Iterable[Transaction],
    start: date,
    end: date,
    tz: tzinfo | None = None,
) -> list[SalesExportRow]:
    tz = tz or store_timezone()
    selected = transactions_between(transactions, start, end, tz)
    if not selected:
        raise NotFoundError("No transactions in the selected date range")

    rows: list[SalesExportRow] = []
    for tx in selected:
        local = _local(tx.timestamp, tz)
        is_return = tx.kind == TransactionKind.RETURN
        for item in tx.items:
            rows.append(SalesExportRow(
                transaction_id=tx.id,
                kind=tx.kind.value,
                original_transaction_id=tx.original_transaction_id or "",
                date=local.strftime("%Y-%m-%d"),
                time=local.strftime("%H:%M:%S"),
                barcode=item.id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.price,
                line_total=money(item.price * item.quantity),
                invoice_total=tx.total,
                amount=-tx.total if is_return else tx.amount_received,
                change_due=tx.change_due,
            ))
    return rows


def stock_rows(products: Iterable[Product]) -> list[StockRow]:
    rows = [StockRow(barcode=p.id, name=p.name, stock=p.stock) for p in products]
    if not rows:
        raise NotFoundError("No products to export")
    return rows
