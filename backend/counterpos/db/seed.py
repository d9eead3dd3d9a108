"""Seed data used when storage holds no snapshot for a collection.

Permission matrix:
┌──────────────────────┬───────┬──────────────────────┐
│ Capability           │ Admin │ User                 │
├──────────────────────┼───────┼──────────────────────┤
│ products:manage      │  ✓    │ if granted           │
│ reports:view         │  ✓    │ if granted           │
│ purchases:manage     │  ✓    │ if granted           │
│ returns:process      │  ✓    │ if granted           │
│ user administration  │  ✓    │                      │
│ cart / checkout      │  ✓    │  ✓                   │
└──────────────────────┴───────┴──────────────────────┘
"""

from decimal import Decimal

from counterpos.core.config import settings
from counterpos.schemas.auth import Permissions, Role, User
from counterpos.schemas.product import Product


def default_users() -> list[User]:
    return [
        User(id=1, username="admin", password="admin123", role=Role.ADMIN),
        User(id=2, username="user", password="user123", role=Role.USER, permissions=Permissions()),
    ]


def default_products() -> list[Product]:
    image = settings.DEFAULT_IMAGE_URL
    return [
        Product(id="6221031490019", name="Bottled Water 1.5L", price=Decimal("7.50"), image_url=image, is_taxable=False, stock=120),
        Product(id="6223000413021", name="Instant Coffee 200g", price=Decimal("145.00"), image_url=image, is_taxable=True, stock=24),
        Product(id="6224000127050", name="White Sugar 1kg", price=Decimal("32.00"), image_url=image, is_taxable=False, stock=60),
        Product(id="6221024240140", name="Potato Chips 80g", price=Decimal("10.00"), image_url=image, is_taxable=True, stock=80),
        Product(id="6281007032513", name="Dish Soap 750ml", price=Decimal("38.50"), image_url=image, is_taxable=True, stock=30),
        Product(id="6223001360125", name="Full Cream Milk 1L", price=Decimal("36.00"), image_url=image, is_taxable=False, stock=40),
    ]
