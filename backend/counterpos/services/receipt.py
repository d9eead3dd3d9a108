"""Receipt generation service for thermal printers."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from counterpos.core.config import settings
from counterpos.schemas.transaction import Transaction, TransactionKind
from counterpos.services.pricing import calculate_totals, money

WIDTH = 32


class ReceiptLine(BaseModel):
    """Single line in receipt."""
    text: str
    align: Literal["left", "center", "right"] = "left"
    bold: bool = False
    double_height: bool = False
    double_width: bool = False


class ReceiptItem(BaseModel):
    """Product item in receipt."""
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    taxable: bool = False


class ReceiptData(BaseModel):
    """Complete receipt data for printing."""
    store_name: str
    currency: str

    transaction_id: str
    kind: TransactionKind
    original_transaction_id: str | None = None
    transaction_date: datetime
    cashier_name: str | None = None

    items: list[ReceiptItem]

    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal

    amount_paid: Decimal | None = None
    change: Decimal | None = None

    footer_message: str = "Thank you for shopping with us!"


def build_receipt_data(tx: Transaction, cashier_name: str | None = None) -> ReceiptData:
    """Recompute the receipt breakdown from the stored lines."""
    totals = calculate_totals(tx.items)
    is_return = tx.kind == TransactionKind.RETURN
    return ReceiptData(
        store_name=settings.STORE_NAME,
        currency=settings.CURRENCY,
        transaction_id=tx.id,
        kind=tx.kind,
        original_transaction_id=tx.original_transaction_id,
        transaction_date=tx.timestamp.astimezone(ZoneInfo(settings.STORE_TIMEZONE)),
        cashier_name=cashier_name,
        items=[
            ReceiptItem(
                name=item.name,
                quantity=item.quantity,
                unit_price=item.price,
                subtotal=money(item.price * item.quantity),
                taxable=item.is_taxable,
            )
            for item in tx.items
        ],
        subtotal=totals.subtotal,
        tax_amount=totals.tax,
        total=tx.total,
        amount_paid=-tx.total if is_return else tx.amount_received,
        change=tx.change_due,
    )


def generate_receipt_lines(receipt_data: ReceiptData) -> list[ReceiptLine]:
    """Generate formatted receipt lines for thermal printer (58mm/80mm)."""
    currency = receipt_data.currency
    is_return = receipt_data.kind == TransactionKind.RETURN
    lines: list[ReceiptLine] = []

    # Header
    lines.append(ReceiptLine(
        text=receipt_data.store_name,
        align="center",
        bold=True,
        double_width=True,
    ))
    if is_return:
        lines.append(ReceiptLine(text="RETURN", align="center", bold=True))
    lines.append(ReceiptLine(text="=" * WIDTH, align="center"))

    lines.append(ReceiptLine(text=f"Receipt: {receipt_data.transaction_id}", bold=True))
    if receipt_data.original_transaction_id:
        lines.append(ReceiptLine(text=f"Original sale: {receipt_data.original_transaction_id}"))
    lines.append(ReceiptLine(
        text=receipt_data.transaction_date.strftime("%d/%m/%Y %H:%M:%S")
    ))
    if receipt_data.cashier_name:
        lines.append(ReceiptLine(text=f"Cashier: {receipt_data.cashier_name}"))

    lines.append(ReceiptLine(text="-" * WIDTH))

    for item in receipt_data.items:
        name = f"{item.name} *" if item.taxable else item.name
        lines.append(ReceiptLine(text=name))
        lines.append(ReceiptLine(
            text=f"  {item.quantity} x {item.unit_price:,.2f} = {item.subtotal:,.2f} {currency}"
        ))

    lines.append(ReceiptLine(text="-" * WIDTH))

    lines.append(ReceiptLine(
        text=f"Subtotal: {receipt_data.subtotal:,.2f} {currency}",
        align="right",
    ))
    if receipt_data.tax_amount > 0:
        rate = settings.TAX_RATE * 100
        lines.append(ReceiptLine(
            text=f"Tax ({rate:.0f}%): {receipt_data.tax_amount:,.2f} {currency}",
            align="right",
        ))

    lines.append(ReceiptLine(text="=" * WIDTH))
    label = "REFUND" if is_return else "TOTAL"
    lines.append(ReceiptLine(
        text=f"{label}: {abs(receipt_data.total):,.2f} {currency}",
        align="right",
        bold=True,
        double_height=True,
    ))

    if not is_return and receipt_data.amount_paid is not None:
        lines.append(ReceiptLine(text="-" * WIDTH))
        lines.append(ReceiptLine(
            text=f"Cash received: {receipt_data.amount_paid:,.2f} {currency}",
            align="right",
        ))
        if receipt_data.change and receipt_data.change > 0:
            lines.append(ReceiptLine(
                text=f"Change: {receipt_data.change:,.2f} {currency}",
                align="right",
            ))

    # Footer
    lines.append(ReceiptLine(text="=" * WIDTH))
    lines.append(ReceiptLine(
        text=receipt_data.footer_message,
        align="center",
        bold=True,
    ))
    lines.append(ReceiptLine(text=" "))  # Blank line for printer to cut

    return lines


def format_receipt_text(receipt_data: ReceiptData) -> str:
    """Generate plain text receipt for preview/testing."""
    lines = generate_receipt_lines(receipt_data)
    return "\n".join(line.text for line in lines)


def generate_esc_pos_commands(receipt_data: ReceiptData) -> bytes:
    """
    Generate ESC/POS commands for thermal printer.
    Compatible with most 58mm/80mm thermal printers.
    """
    lines = generate_receipt_lines(receipt_data)

    ESC = b'\x1b'
    GS = b'\x1d'

    # Initialize printer
    commands = ESC + b'@'

    for line in lines:
        if line.align == "center":
            commands += ESC + b'a\x01'
        elif line.align == "right":
            commands += ESC + b'a\x02'
        else:
            commands += ESC + b'a\x00'

        commands += ESC + (b'E\x01' if line.bold else b'E\x00')

        if line.double_height and line.double_width:
            commands += GS + b'!\x30'
        elif line.double_height:
            commands += GS + b'!\x10'
        elif line.double_width:
            commands += GS + b'!\x20'
        else:
            commands += GS + b'!\x00'

        commands += line.text.encode('utf-8') + b'\n'

    # Cut paper (full cut)
    commands += GS + b'V\x00'

    return commands
