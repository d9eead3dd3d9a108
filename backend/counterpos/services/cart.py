"""Per-session shopping cart."""

from counterpos.schemas.product import Product
from counterpos.schemas.transaction import CartLine, CartTotals
from counterpos.services.errors import InsufficientStockError, NotFoundError
from counterpos.services.pricing import calculate_totals


class Cart:
    """Barcode -> line mapping. Lines snapshot the product when first added."""

    def __init__(self):
        self._lines: dict[str, CartLine] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, barcode: str) -> bool:
        return barcode in self._lines

    def get(self, barcode: str) -> CartLine | None:
        return self._lines.get(barcode)

    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def totals(self) -> CartTotals:
        return calculate_totals(self._lines.values())

    def add(self, product: Product) -> CartLine:
        """Add one unit, never exceeding the product's current stock."""
        if product.stock <= 0:
            raise InsufficientStockError(f"Product {product.id} is out of stock")

        existing = self._lines.get(product.id)
        in_cart = existing.quantity if existing else 0
        if in_cart >= product.stock:
            raise InsufficientStockError(
                f"Cannot add more, only {product.stock} of {product.id} in stock"
            )

        if existing:
            line = existing.model_copy(update={"quantity": in_cart + 1})
        else:
            line = CartLine(**product.model_dump(), quantity=1)
        self._lines[product.id] = line
        return line

    def set_quantity(self, product: Product, quantity: int) -> CartLine | None:
        """Set a line's quantity; zero or less removes it. Returns the line or None."""
        if quantity > product.stock:
            raise InsufficientStockError(
                f"Requested quantity ({quantity}) exceeds stock ({product.stock})"
            )
        if quantity <= 0:
            self._lines.pop(product.id, None)
            return None

        line = self._lines.get(product.id)
        if line is None:
            raise NotFoundError(f"Product {product.id} is not in the cart")
        line = line.model_copy(update={"quantity": quantity})
        self._lines[product.id] = line
        return line

    def remove(self, barcode: str) -> None:
        self._lines.pop(barcode, None)

    def clear(self) -> None:
        self._lines.clear()
