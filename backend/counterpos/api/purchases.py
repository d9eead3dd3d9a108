from fastapi import APIRouter, Depends

from counterpos.core.deps import get_store, require_capability
from counterpos.schemas.auth import Capability, User
from counterpos.schemas.transaction import PurchaseInvoiceRequest, PurchaseInvoiceResult
from counterpos.services.store import PosStore

router = APIRouter(prefix="/purchases", tags=["purchases"])


@router.post("", response_model=PurchaseInvoiceResult)
async def receive_purchase(
    body: PurchaseInvoiceRequest,
    current_user: User = Depends(require_capability(Capability.MANAGE_PURCHASES)),
    store: PosStore = Depends(get_store),
):
    """Add supplier-received quantities to stock.

    Lines with a quantity of zero or less, or an unknown barcode, are ignored.
    """
    return await store.receive_purchase(body.items)
