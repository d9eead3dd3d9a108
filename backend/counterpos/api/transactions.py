"""Checkout, ledger lookup, receipts and returns."""

from fastapi import APIRouter, Depends, Response, status

from counterpos.core.deps import get_current_user, get_store, require_capability
from counterpos.schemas.auth import Capability, User
from counterpos.schemas.transaction import (
    CheckoutRequest,
    ReturnQuote,
    ReturnRequest,
    Transaction,
    TransactionKind,
    TransactionListResponse,
)
from counterpos.services.receipt import (
    ReceiptData,
    ReceiptLine,
    build_receipt_data,
    format_receipt_text,
    generate_esc_pos_commands,
    generate_receipt_lines,
)
from counterpos.services.store import PosStore

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("/checkout", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def checkout(
    body: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    """Settle the caller's cart as a sale.

    Deducts stock, appends the sale to the ledger and empties the cart.
    """
    return await store.checkout(current_user.id, body.amount_received)


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    kind: TransactionKind | None = None,
    current_user: User = Depends(require_capability(Capability.VIEW_REPORTS)),
    store: PosStore = Depends(get_store),
):
    items = [tx for tx in store.transactions if kind is None or tx.kind == kind]
    return TransactionListResponse(items=items, total=len(items))


@router.get("/{transaction_id}", response_model=Transaction)
async def get_transaction(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    return store.get_transaction(transaction_id)


@router.get("/{transaction_id}/receipt", response_model=ReceiptData)
async def get_receipt_data(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    return build_receipt_data(store.get_transaction(transaction_id))


@router.get("/{transaction_id}/receipt/preview", response_model=list[ReceiptLine])
async def get_receipt_preview(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    """Get formatted receipt lines for preview."""
    return generate_receipt_lines(build_receipt_data(store.get_transaction(transaction_id)))


@router.get("/{transaction_id}/receipt/text", response_class=Response)
async def get_receipt_text(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    text = format_receipt_text(build_receipt_data(store.get_transaction(transaction_id)))
    return Response(content=text, media_type="text/plain; charset=utf-8")


@router.get("/{transaction_id}/receipt/escpos", response_class=Response)
async def get_receipt_escpos(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    """ESC/POS bytes to send straight to a thermal printer."""
    escpos_bytes = generate_esc_pos_commands(build_receipt_data(store.get_transaction(transaction_id)))
    return Response(
        content=escpos_bytes,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="receipt_{transaction_id}.bin"'
        },
    )


@router.post("/{transaction_id}/return/quote", response_model=ReturnQuote)
async def quote_return(
    transaction_id: str,
    body: ReturnRequest,
    current_user: User = Depends(require_capability(Capability.PROCESS_RETURNS)),
    store: PosStore = Depends(get_store),
):
    """Clamp the requested quantities and price the refund without recording anything."""
    return store.quote_return(transaction_id, body.items)


@router.post("/{transaction_id}/return", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def process_return(
    transaction_id: str,
    body: ReturnRequest,
    current_user: User = Depends(require_capability(Capability.PROCESS_RETURNS)),
    store: PosStore = Depends(get_store),
):
    return await store.process_return(transaction_id, body.items)
