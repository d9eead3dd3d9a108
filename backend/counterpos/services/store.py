"""Central application state.

Holds the catalog, the transaction ledger, the user list and the open carts,
and is the only place they are mutated. Every mutation validates first,
applies the change, then rewrites the affected collections in full through
the snapshot storage (best-effort: write failures are logged, not raised).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import TypeAdapter, ValidationError

from counterpos.db.seed import default_products, default_users
from counterpos.core.config import settings
from counterpos.schemas.auth import PasswordChange, Permissions, Role, User, UserCreate
from counterpos.schemas.product import Product, ProductCreate, ProductUpdate
from counterpos.schemas.transaction import (
    CartLine,
    PurchaseInvoiceResult,
    ReturnQuote,
    Transaction,
    TransactionItem,
    TransactionKind,
)
from counterpos.services.cart import Cart
from counterpos.services.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientPaymentError,
    InsufficientStockError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
)
from counterpos.services.pricing import money, refund_amount
from counterpos.services.storage import SnapshotStorage, StorageError

logger = logging.getLogger(__name__)

USERS_KEY = "pos-users"
PRODUCTS_KEY = "pos-products"
TRANSACTIONS_KEY = "pos-transactions"

MIN_PASSWORD_LENGTH = 6

_users_adapter = TypeAdapter(list[User])
_products_adapter = TypeAdapter(list[Product])
_transactions_adapter = TypeAdapter(list[Transaction])

CartListener = Callable[[int, list[CartLine]], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PosStore:
    def __init__(
        self,
        storage: SnapshotStorage,
        *,
        products: list[Product],
        transactions: list[Transaction],
        users: list[User],
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._storage = storage
        self._clock = clock
        self.products: dict[str, Product] = {p.id: p for p in products}
        self.transactions: list[Transaction] = list(transactions)
        self.users: list[User] = list(users)
        self._carts: dict[int, Cart] = {}
        self.cart_listener: CartListener | None = None
        self._persist_lock = asyncio.Lock()

    # ── Loading / persistence ──────────────────────

    @classmethod
    async def load(cls, storage: SnapshotStorage, **kwargs) -> PosStore:
        """Read every collection once; fall back to seed data when absent or unreadable."""
        seeded: list[str] = []

        async def read(key, adapter, default):
            try:
                payload = await storage.load(key)
            except StorageError:
                logger.exception("Failed to read %s, using defaults", key)
                return default()
            if payload is None:
                seeded.append(key)
                return default()
            try:
                return adapter.validate_json(payload)
            except ValidationError:
                logger.exception("Stored %s snapshot is unreadable, using defaults", key)
                return default()

        store = cls(
            storage,
            users=await read(USERS_KEY, _users_adapter, default_users),
            products=await read(PRODUCTS_KEY, _products_adapter, default_products),
            transactions=await read(TRANSACTIONS_KEY, _transactions_adapter, list),
            **kwargs,
        )
        if seeded:
            logger.info("Seeding empty collections: %s", ", ".join(seeded))
            await store._persist(*seeded)
        return store

    def _serialize(self, key: str) -> str:
        if key == USERS_KEY:
            return _users_adapter.dump_json(self.users).decode()
        if key == PRODUCTS_KEY:
            return _products_adapter.dump_json(list(self.products.values())).decode()
        if key == TRANSACTIONS_KEY:
            return _transactions_adapter.dump_json(self.transactions).decode()
        raise KeyError(key)

    async def _persist(self, *keys: str) -> None:
        # One writer at a time; each snapshot is taken from current state once the lock is held
        async with self._persist_lock:
            for key in keys:
                try:
                    await self._storage.save(key, self._serialize(key))
                except StorageError:
                    logger.exception("Failed to save %s", key)

    # ── Catalog ────────────────────────────────────

    def get_product(self, barcode: str) -> Product:
        product = self.products.get(barcode)
        if product is None:
            raise NotFoundError(f"Product {barcode} not found")
        return product

    def search_products(self, query: str | None = None) -> list[Product]:
        products = list(self.products.values())
        if not query or not query.strip():
            return products
        needle = query.strip().lower()
        return [p for p in products if needle in p.name.lower() or needle in p.id.lower()]

    async def add_product(self, data: ProductCreate) -> Product:
        if data.id in self.products:
            raise ConflictError(f"A product with barcode {data.id} already exists")
        product = Product(**data.model_dump())
        if not product.image_url:
            product.image_url = settings.DEFAULT_IMAGE_URL
        # Newest first, like the import
        self.products = {product.id: product, **self.products}
        await self._persist(PRODUCTS_KEY)
        logger.info("Product added: %s", product.id)
        return product

    async def update_product(self, barcode: str, data: ProductUpdate) -> Product:
        product = self.get_product(barcode)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if changes.get("image_url") == "":
            changes["image_url"] = settings.DEFAULT_IMAGE_URL
        updated = Product.model_validate({**product.model_dump(), **changes, "id": product.id})
        self.products[barcode] = updated
        await self._persist(PRODUCTS_KEY)
        logger.info("Product updated: %s (%s)", barcode, ", ".join(sorted(changes)) or "no changes")
        return updated

    async def import_products(self, products: list[Product]) -> list[Product]:
        """Add already-validated products, skipping any barcode that exists by now."""
        new = [p for p in products if p.id not in self.products]
        if not new:
            return []
        self.products = {**{p.id: p for p in new}, **self.products}
        await self._persist(PRODUCTS_KEY)
        logger.info("Imported %d products (%d skipped)", len(new), len(products) - len(new))
        return new

    # ── Carts ──────────────────────────────────────

    def cart_for(self, user_id: int) -> Cart:
        return self._carts.setdefault(user_id, Cart())

    def _cart_changed(self, user_id: int) -> None:
        if self.cart_listener is not None:
            self.cart_listener(user_id, self.cart_for(user_id).lines())

    def add_to_cart(self, user_id: int, barcode: str) -> Cart:
        cart = self.cart_for(user_id)
        cart.add(self.get_product(barcode))
        self._cart_changed(user_id)
        return cart

    def set_cart_quantity(self, user_id: int, barcode: str, quantity: int) -> Cart:
        cart = self.cart_for(user_id)
        cart.set_quantity(self.get_product(barcode), quantity)
        self._cart_changed(user_id)
        return cart

    def remove_from_cart(self, user_id: int, barcode: str) -> Cart:
        cart = self.cart_for(user_id)
        cart.remove(barcode)
        self._cart_changed(user_id)
        return cart

    def clear_cart(self, user_id: int) -> Cart:
        cart = self.cart_for(user_id)
        cart.clear()
        self._cart_changed(user_id)
        return cart

    # ── Ledger ─────────────────────────────────────

    def _new_transaction_id(self, prefix: str, now: datetime) -> str:
        taken = {t.id for t in self.transactions}
        millis = int(now.timestamp() * 1000)
        while f"{prefix}-{millis}" in taken:
            millis += 1
        return f"{prefix}-{millis}"

    def get_transaction(self, transaction_id: str) -> Transaction:
        for tx in self.transactions:
            if tx.id == transaction_id:
                return tx
        raise NotFoundError(f"Transaction {transaction_id} not found")

    def find_sale(self, transaction_id: str) -> Transaction:
        tx = next(
            (t for t in self.transactions if t.id == transaction_id.strip() and t.kind == TransactionKind.SALE),
            None,
        )
        if tx is None:
            raise NotFoundError(f"No sale transaction found with id {transaction_id}")
        return tx

    async def checkout(self, user_id: int, amount_received: Decimal) -> Transaction:
        cart = self.cart_for(user_id)
        if not len(cart):
            raise InvalidInputError("Cart is empty")

        totals = cart.totals()
        if amount_received < totals.total:
            raise InsufficientPaymentError(
                f"Amount received ({amount_received}) is less than the total ({totals.total})"
            )

        lines = cart.lines()
        for line in lines:
            product = self.get_product(line.id)
            if line.quantity > product.stock:
                raise InsufficientStockError(
                    f"Only {product.stock} of {product.id} left in stock, cart has {line.quantity}"
                )

        for line in lines:
            product = self.products[line.id]
            self.products[line.id] = product.model_copy(update={"stock": product.stock - line.quantity})

        now = self._clock()
        tx = Transaction(
            id=self._new_transaction_id("txn", now),
            timestamp=now,
            kind=TransactionKind.SALE,
            items=[TransactionItem(**line.model_dump()) for line in lines],
            total=totals.total,
            amount_received=money(amount_received),
            change_due=money(amount_received - totals.total),
        )
        self.transactions.append(tx)
        cart.clear()
        self._cart_changed(user_id)

        await self._persist(PRODUCTS_KEY, TRANSACTIONS_KEY)
        logger.info("Sale %s recorded: %d lines, total=%s", tx.id, len(tx.items), tx.total)
        return tx

    def quote_return(self, transaction_id: str, requested: dict[str, int]) -> ReturnQuote:
        """Clamp requested quantities to what is still returnable and price the refund."""
        original = self.find_sale(transaction_id)
        accepted: dict[str, int] = {}
        priced: list[tuple[TransactionItem, int]] = []
        for barcode, quantity in requested.items():
            item = next((i for i in original.items if i.id == barcode), None)
            if item is None:
                continue
            quantity = min(quantity, item.quantity - item.returned)
            if quantity <= 0:
                continue
            accepted[barcode] = quantity
            priced.append((item, quantity))

        if not accepted:
            raise InvalidInputError("Nothing to return for this transaction")

        return ReturnQuote(
            original_transaction_id=original.id,
            items=accepted,
            refund=refund_amount(priced),
        )

    async def process_return(self, transaction_id: str, requested: dict[str, int]) -> Transaction:
        quote = self.quote_return(transaction_id, requested)
        original = self.find_sale(quote.original_transaction_id)

        for barcode, quantity in quote.items.items():
            product = self.products.get(barcode)
            if product is not None:
                self.products[barcode] = product.model_copy(update={"stock": product.stock + quantity})

        returned_items = []
        for item in original.items:
            quantity = quote.items.get(item.id)
            if quantity:
                returned_items.append(item.model_copy(update={"quantity": quantity, "returned": 0}))
                item.returned += quantity

        now = self._clock()
        tx = Transaction(
            id=self._new_transaction_id("ret", now),
            timestamp=now,
            kind=TransactionKind.RETURN,
            original_transaction_id=original.id,
            items=returned_items,
            total=-quote.refund,
        )
        self.transactions.append(tx)

        await self._persist(PRODUCTS_KEY, TRANSACTIONS_KEY)
        logger.info("Return %s against %s: refund=%s", tx.id, original.id, quote.refund)
        return tx

    # ── Purchase invoices ──────────────────────────

    async def receive_purchase(self, items: dict[str, int]) -> PurchaseInvoiceResult:
        """Add received quantities to stock. Not recorded in the ledger."""
        received = {
            barcode: quantity
            for barcode, quantity in items.items()
            if quantity > 0 and barcode in self.products
        }
        if not received:
            raise InvalidInputError("Purchase invoice has no items to receive")

        for barcode, quantity in received.items():
            product = self.products[barcode]
            self.products[barcode] = product.model_copy(update={"stock": product.stock + quantity})

        await self._persist(PRODUCTS_KEY)
        logger.info("Purchase invoice received: %d products, %d units", len(received), sum(received.values()))
        return PurchaseInvoiceResult(
            received=received,
            stock={barcode: self.products[barcode].stock for barcode in received},
        )

    # ── Users ──────────────────────────────────────

    def authenticate(self, username: str, password: str) -> User:
        for user in self.users:
            if user.username == username and user.password == password:
                return user
        logger.warning("Rejected login for username=%s", username)
        raise InvalidCredentialsError()

    def get_user(self, user_id: int) -> User:
        for user in self.users:
            if user.id == user_id:
                return user
        raise NotFoundError(f"User {user_id} not found")

    def _replace_user(self, updated: User) -> None:
        self.users = [updated if u.id == updated.id else u for u in self.users]

    def logout(self, user_id: int) -> None:
        self._carts.pop(user_id, None)
        if self.cart_listener is not None:
            self.cart_listener(user_id, [])

    async def add_user(self, data: UserCreate) -> User:
        if not data.username or not data.password:
            raise InvalidInputError("Username and password are required")
        if any(u.username == data.username for u in self.users):
            raise ConflictError(f"Username {data.username} already exists")

        user = User(
            id=max((u.id for u in self.users), default=0) + 1,
            username=data.username,
            password=data.password,
            role=Role.USER,
            permissions=Permissions(),
        )
        self.users.append(user)
        await self._persist(USERS_KEY)
        logger.info("User added: %s (id=%s)", user.username, user.id)
        return user

    async def delete_user(self, user_id: int, acting_user_id: int) -> None:
        user = self.get_user(user_id)
        if user.id == acting_user_id:
            raise ForbiddenError("You cannot delete the account you are signed in with")
        if user.is_admin:
            raise ForbiddenError("Admin accounts cannot be deleted")

        self.users = [u for u in self.users if u.id != user_id]
        self.logout(user_id)
        await self._persist(USERS_KEY)
        logger.info("User deleted: %s (id=%s)", user.username, user.id)

    async def set_permissions(self, user_id: int, permissions: Permissions) -> User:
        user = self.get_user(user_id)
        if user.is_admin:
            raise InvalidInputError("Admin accounts always hold every permission")
        updated = user.model_copy(update={"permissions": permissions})
        self._replace_user(updated)
        await self._persist(USERS_KEY)
        logger.info("Permissions updated for %s", user.username)
        return updated

    async def change_password(self, user_id: int, data: PasswordChange, *, require_current: bool) -> User:
        """Self-service changes must prove the current password; admin resets do not."""
        user = self.get_user(user_id)
        if data.new_password != data.confirm_password:
            raise InvalidInputError("The new passwords do not match")
        if len(data.new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(f"The new password must be at least {MIN_PASSWORD_LENGTH} characters")
        if require_current and data.current_password != user.password:
            raise InvalidInputError("The current password is incorrect")

        updated = user.model_copy(update={"password": data.new_password})
        self._replace_user(updated)
        await self._persist(USERS_KEY)
        logger.info("Password changed for %s", user.username)
        return updated
