"""Cart, ledger and purchase-invoice schemas."""

import enum
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from counterpos.schemas.product import Product


class TransactionKind(str, enum.Enum):
    SALE = "sale"
    RETURN = "return"


# ── Cart ───────────────────────────────────────────
class CartLine(Product):
    quantity: int = Field(..., ge=1)


class CartTotals(BaseModel):
    subtotal: Decimal
    tax: Decimal
    total: Decimal


class CartResponse(CartTotals):
    items: list[CartLine]
    suggestion: str | None = None
    suggestion_pending: bool = False


class SuggestionResponse(BaseModel):
    suggestion: str | None = None
    pending: bool = False


class CartAddRequest(BaseModel):
    barcode: str = Field(..., min_length=1)


class CartQuantityUpdate(BaseModel):
    quantity: int


# ── Ledger ─────────────────────────────────────────
class TransactionItem(CartLine):
    returned: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _returned_within_quantity(self):
        if self.returned > self.quantity:
            raise ValueError(f"returned ({self.returned}) exceeds quantity ({self.quantity})")
        return self


class Transaction(BaseModel):
    id: str
    timestamp: datetime
    kind: TransactionKind
    original_transaction_id: str | None = None
    items: list[TransactionItem]
    total: Decimal  # negative for returns
    amount_received: Decimal | None = None
    change_due: Decimal | None = None

    @model_validator(mode="after")
    def _return_links_original(self):
        if (self.kind == TransactionKind.RETURN) != (self.original_transaction_id is not None):
            raise ValueError("original_transaction_id must be set exactly for return transactions")
        return self


class TransactionListResponse(BaseModel):
    items: list[Transaction]
    total: int


# ── Checkout / returns ─────────────────────────────
class CheckoutRequest(BaseModel):
    amount_received: Decimal = Field(..., ge=0)


class ReturnRequest(BaseModel):
    items: dict[str, int] = Field(..., min_length=1, description="barcode -> quantity to return")


class ReturnQuote(BaseModel):
    original_transaction_id: str
    items: dict[str, int]
    refund: Decimal


# ── Purchase invoice ───────────────────────────────
class PurchaseInvoiceRequest(BaseModel):
    items: dict[str, int] = Field(..., min_length=1, description="barcode -> received quantity")


class PurchaseInvoiceResult(BaseModel):
    received: dict[str, int]
    stock: dict[str, int]
