"""Shared fixtures: a small catalog, three users and a controllable clock."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from io import BytesIO

import openpyxl
import pytest

from counterpos.schemas.auth import Permissions, Role, User
from counterpos.schemas.product import Product
from counterpos.services.storage import InMemorySnapshotStorage
from counterpos.services.store import PosStore

START = datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc)

ADMIN_ID = 1
CASHIER_ID = 2
CLERK_ID = 3


class FakeClock:
    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_product(barcode: str, name: str, price: str, *, taxable: bool = False, stock: int = 10) -> Product:
    return Product(
        id=barcode,
        name=name,
        price=Decimal(price),
        image_url="https://example.test/img.png",
        is_taxable=taxable,
        stock=stock,
    )


def make_workbook(headers, rows) -> bytes:
    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.append(list(headers))
    for row in rows:
        worksheet.append(list(row))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemorySnapshotStorage()


@pytest.fixture
def products():
    return [
        make_product("A100", "Arabica Coffee", "100.00", taxable=True, stock=10),
        make_product("B050", "Basmati Rice", "50.00", taxable=False, stock=5),
        make_product("C010", "Cola Can", "10.00", taxable=True, stock=0),
    ]


@pytest.fixture
def users():
    return [
        User(id=ADMIN_ID, username="admin", password="admin123", role=Role.ADMIN),
        User(id=CASHIER_ID, username="user", password="user123", role=Role.USER, permissions=Permissions()),
        User(id=CLERK_ID, username="clerk", password="clerk123", role=Role.USER, permissions=Permissions.all_granted()),
    ]


@pytest.fixture
def store(storage, products, users, clock):
    return PosStore(storage, products=products, transactions=[], users=users, clock=clock)
