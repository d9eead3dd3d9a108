from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ── Product ──
class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., gt=0)
    image_url: str = ""
    is_taxable: bool = False
    stock: int = Field(default=0, ge=0)

    @field_validator("name", "image_url", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class Product(ProductBase):
    """Catalog record. `id` is the barcode and never changes once created."""
    id: str = Field(..., min_length=1, max_length=100)

    @field_validator("id", mode="before")
    @classmethod
    def _strip_id(cls, value):
        return value.strip() if isinstance(value, str) else value


class ProductCreate(Product):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(None, gt=0)
    image_url: Optional[str] = None
    is_taxable: Optional[bool] = None
    stock: Optional[int] = Field(None, ge=0)

    @field_validator("name", "image_url", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class ProductListResponse(BaseModel):
    items: list[Product]
    total: int


# ── Import ──
class ImportErrorRow(BaseModel):
    row: int
    data: dict
    error: str


class ImportResult(BaseModel):
    products: list[Product]
    errors: list[ImportErrorRow]
    imported: int = 0
    dry_run: bool = False
