"""Cart totals, tax and refund arithmetic."""

from collections.abc import Iterable
from decimal import Decimal, ROUND_HALF_UP

from counterpos.core.config import settings
from counterpos.schemas.transaction import CartLine, CartTotals

CENT = Decimal("0.01")


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(line: CartLine) -> Decimal:
    return line.price * line.quantity


def calculate_totals(lines: Iterable[CartLine], tax_rate: Decimal | None = None) -> CartTotals:
    """Subtotal of all lines; tax only on taxable lines."""
    rate = settings.TAX_RATE if tax_rate is None else tax_rate
    subtotal = Decimal("0")
    taxable = Decimal("0")
    for line in lines:
        amount = line_total(line)
        subtotal += amount
        if line.is_taxable:
            taxable += amount

    tax = money(taxable * rate)
    subtotal = money(subtotal)
    return CartTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def refund_amount(lines: Iterable[tuple[CartLine, int]], tax_rate: Decimal | None = None) -> Decimal:
    """Refund for (original line, quantity) pairs, tax included on taxable lines."""
    rate = settings.TAX_RATE if tax_rate is None else tax_rate
    refund = Decimal("0")
    for line, quantity in lines:
        amount = line.price * quantity
        refund += amount * (1 + rate) if line.is_taxable else amount
    return money(refund)
