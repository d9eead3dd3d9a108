from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from counterpos.core.config import settings
from counterpos.core.deps import get_current_user, get_store, require_capability
from counterpos.schemas.auth import Capability, User
from counterpos.schemas.product import (
    ImportResult,
    Product,
    ProductCreate,
    ProductListResponse,
    ProductUpdate,
)
from counterpos.services.importer import read_product_rows, validate_product_rows
from counterpos.services.store import PosStore

router = APIRouter(prefix="/products", tags=["products"])

# Max upload size in bytes
MAX_UPLOAD_BYTES = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024


@router.get("", response_model=ProductListResponse)
async def list_products(
    search: str | None = Query(None, description="Case-insensitive match on name or barcode"),
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    items = store.search_products(search)
    return ProductListResponse(items=items, total=len(items))


@router.post("", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    current_user: User = Depends(require_capability(Capability.MANAGE_PRODUCTS)),
    store: PosStore = Depends(get_store),
):
    return await store.add_product(data)


@router.post("/import", response_model=ImportResult)
async def import_products(
    file: UploadFile = File(...),
    dry_run: bool = Query(False, description="Validate only, do not add products"),
    current_user: User = Depends(require_capability(Capability.MANAGE_PRODUCTS)),
    store: PosStore = Depends(get_store),
):
    """Bulk-add products from an .xlsx sheet.

    Rows that fail validation are reported with their sheet row number;
    valid rows are added unless `dry_run` is set.
    """
    if file.size and file.size > MAX_UPLOAD_BYTES:
        raise HTTPException(400, f"File too large. Max {settings.MAX_UPLOAD_SIZE_MB}MB")

    # Read in chunks to limit memory usage
    chunks = []
    total_size = 0
    while True:
        chunk = await file.read(64 * 1024)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > MAX_UPLOAD_BYTES:
            raise HTTPException(400, f"File too large. Max {settings.MAX_UPLOAD_SIZE_MB}MB")
        chunks.append(chunk)

    # openpyxl parsing is blocking
    rows = await run_in_threadpool(read_product_rows, b"".join(chunks))
    result = validate_product_rows(rows, set(store.products))
    if dry_run:
        result.dry_run = True
        return result

    added = await store.import_products(result.products)
    result.imported = len(added)
    return result


@router.get("/{barcode}", response_model=Product)
async def get_product(
    barcode: str,
    current_user: User = Depends(get_current_user),
    store: PosStore = Depends(get_store),
):
    return store.get_product(barcode)


@router.patch("/{barcode}", response_model=Product)
async def update_product(
    barcode: str,
    data: ProductUpdate,
    current_user: User = Depends(require_capability(Capability.MANAGE_PRODUCTS)),
    store: PosStore = Depends(get_store),
):
    """Edit name, price, image, taxability or stock. The barcode is immutable."""
    return await store.update_product(barcode, data)
