from counterpos.schemas.product import (
    Product, ProductCreate, ProductUpdate, ProductListResponse, ImportErrorRow, ImportResult,
)
from counterpos.schemas.transaction import (
    TransactionKind, CartLine, CartTotals, Transaction, TransactionItem,
)
from counterpos.schemas.auth import (
    Role, Capability, Permissions, User, UserResponse,
)
from counterpos.schemas.report import (
    ReportPeriod, SalesReport, SalesExportRow, StockRow,
)

__all__ = [
    "Product", "ProductCreate", "ProductUpdate", "ProductListResponse", "ImportErrorRow", "ImportResult",
    "TransactionKind", "CartLine", "CartTotals", "Transaction", "TransactionItem",
    "Role", "Capability", "Permissions", "User", "UserResponse",
    "ReportPeriod", "SalesReport", "SalesExportRow", "StockRow",
]
