"""Per-session cart endpoints.

Every handler is a coroutine: cart changes schedule the debounced suggestion
task on the running loop.
"""

from fastapi import APIRouter, Depends

from counterpos.ai.suggestions import SuggestionDebouncer
from counterpos.core.deps import get_current_user, get_store, get_suggestions
from counterpos.schemas.auth import User
from counterpos.schemas.transaction import (
    CartAddRequest,
    CartQuantityUpdate,
    CartResponse,
    SuggestionResponse,
)
from counterpos.services.cart import Cart
from counterpos.services.store import PosStore

router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_response(cart: Cart, user_id: int, suggestions: SuggestionDebouncer) -> CartResponse:
    totals = cart.totals()
    return CartResponse(
        items=cart.lines(),
        subtotal=totals.subtotal,
        tax=totals.tax,
        total=totals.total,
        suggestion=suggestions.current(user_id),
        suggestion_pending=suggestions.pending(user_id),
    )


@router.get("", response_model=CartResponse)
async def view_cart(
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
    suggestions: SuggestionDebouncer = Depends(get_suggestions),
):
    return _cart_response(store.cart_for(current_user.id), current_user.id, suggestions)


@router.post("/items", response_model=CartResponse)
async def add_item(
    body: CartAddRequest,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
    suggestions: SuggestionDebouncer = Depends(get_suggestions),
):
    """Add one unit of the scanned barcode."""
    cart = store.add_to_cart(current_user.id, body.barcode.strip())
    return _cart_response(cart, current_user.id, suggestions)


@router.put("/items/{barcode}", response_model=CartResponse)
async def set_item_quantity(
    barcode: str,
    body: CartQuantityUpdate,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
    suggestions: SuggestionDebouncer = Depends(get_suggestions),
):
    """Set a line's quantity; zero or less removes the line."""
    cart = store.set_cart_quantity(current_user.id, barcode, body.quantity)
    return _cart_response(cart, current_user.id, suggestions)


@router.delete("/items/{barcode}", response_model=CartResponse)
async def remove_item(
    barcode: str,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
    suggestions: SuggestionDebouncer = Depends(get_suggestions),
):
    cart = store.remove_from_cart(current_user.id, barcode)
    return _cart_response(cart, current_user.id, suggestions)


@router.delete("", response_model=CartResponse)
async def clear_cart(
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
    suggestions: SuggestionDebouncer = Depends(get_suggestions),
):
    cart = store.clear_cart(current_user.id)
    return _cart_response(cart, current_user.id, suggestions)


@router.get("/suggestion", response_model=SuggestionResponse)
async def get_suggestion(
    current_user: User = Depends(get_current_user),
    suggestions: SuggestionDebouncer = Depends(get_suggestions),
):
    """Latest suggestion for the caller's cart; `pending` while a newer one is being computed."""
    return SuggestionResponse(
        suggestion=suggestions.current(current_user.id),
        pending=suggestions.pending(current_user.id),
    )
