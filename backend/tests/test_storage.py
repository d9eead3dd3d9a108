"""Snapshot storage backends and loading the store from them."""

import asyncio
import json
from decimal import Decimal

import pytest

from counterpos.services.storage import (
    MEMORY_URL,
    InMemorySnapshotStorage,
    SqlSnapshotStorage,
    StorageError,
    create_storage,
)
from counterpos.services.store import PRODUCTS_KEY, TRANSACTIONS_KEY, USERS_KEY, PosStore

from conftest import CASHIER_ID, CLERK_ID


@pytest.mark.asyncio
async def test_in_memory_storage_round_trip():
    storage = InMemorySnapshotStorage()
    assert await storage.load("pos-users") is None

    await storage.save("pos-users", "[]")
    assert await storage.load("pos-users") == "[]"


@pytest.mark.asyncio
async def test_sql_storage_overwrites_whole_value(tmp_path):
    storage = await SqlSnapshotStorage.connect(f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}")
    try:
        assert await storage.load(PRODUCTS_KEY) is None
        await storage.save(PRODUCTS_KEY, '[{"id": "1"}]')
        await storage.save(PRODUCTS_KEY, "[]")
        assert await storage.load(PRODUCTS_KEY) == "[]"
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_sql_storage_survives_reconnect(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}"
    first = await SqlSnapshotStorage.connect(url)
    await first.save(USERS_KEY, '["kept"]')
    await first.close()

    second = await SqlSnapshotStorage.connect(url)
    try:
        assert await second.load(USERS_KEY) == '["kept"]'
    finally:
        await second.close()


@pytest.mark.asyncio
async def test_create_storage_memory_url():
    assert isinstance(await create_storage(MEMORY_URL), InMemorySnapshotStorage)


@pytest.mark.asyncio
async def test_create_storage_falls_back_when_database_unusable(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'missing-dir' / 'pos.db'}"
    assert isinstance(await create_storage(url), InMemorySnapshotStorage)


# ── Loading the store ──────────────────────────────


@pytest.mark.asyncio
async def test_load_seeds_empty_storage():
    storage = InMemorySnapshotStorage()

    store = await PosStore.load(storage)

    assert [u.username for u in store.users] == ["admin", "user"]
    assert store.authenticate("admin", "admin123").is_admin
    assert len(store.products) == 6
    assert store.transactions == []
    assert set(storage.data) == {USERS_KEY, PRODUCTS_KEY, TRANSACTIONS_KEY}


@pytest.mark.asyncio
async def test_load_restores_persisted_state():
    storage = InMemorySnapshotStorage()
    store = await PosStore.load(storage)
    barcode = next(iter(store.products))
    before = store.products[barcode].stock
    store.add_to_cart(CASHIER_ID, barcode)
    sale = await store.checkout(CASHIER_ID, Decimal("10000"))

    reloaded = await PosStore.load(storage)

    assert reloaded.get_transaction(sale.id) == sale
    assert reloaded.products[barcode].stock == before - 1
    assert len(reloaded.cart_for(CASHIER_ID)) == 0


@pytest.mark.asyncio
async def test_unreadable_snapshot_falls_back_without_overwriting():
    storage = InMemorySnapshotStorage({PRODUCTS_KEY: "not json", TRANSACTIONS_KEY: "[]"})

    store = await PosStore.load(storage)

    assert len(store.products) == 6
    assert storage.data[PRODUCTS_KEY] == "not json"
    assert USERS_KEY in storage.data


@pytest.mark.asyncio
async def test_storage_read_failure_uses_defaults():
    class BrokenStorage(InMemorySnapshotStorage):
        async def load(self, key):
            raise StorageError("offline")

    store = await PosStore.load(BrokenStorage())

    assert len(store.users) == 2
    assert store.transactions == []


@pytest.mark.asyncio
async def test_overlapping_checkouts_persist_latest_ledger(products, users, clock):
    class SlowLedgerStorage(InMemorySnapshotStorage):
        def __init__(self):
            super().__init__()
            self.slow_once = True

        async def save(self, key, value):
            if key == TRANSACTIONS_KEY and self.slow_once:
                self.slow_once = False
                await asyncio.sleep(0.05)
            await super().save(key, value)

    storage = SlowLedgerStorage()
    store = PosStore(storage, products=products, transactions=[], users=users, clock=clock)
    store.add_to_cart(CASHIER_ID, "A100")
    store.add_to_cart(CLERK_ID, "B050")

    await asyncio.gather(
        store.checkout(CASHIER_ID, Decimal("200")),
        store.checkout(CLERK_ID, Decimal("200")),
    )

    persisted = json.loads(storage.data[TRANSACTIONS_KEY])
    assert len(store.transactions) == 2
    assert [t["id"] for t in persisted] == [t.id for t in store.transactions]
    assert {p["id"]: p["stock"] for p in json.loads(storage.data[PRODUCTS_KEY])}["B050"] == 4
