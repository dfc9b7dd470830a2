"""Domain models - pure Python dataclasses representing business entities"""

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Tuple

from stockdesk.domain.exceptions import InvalidAmountError

CRITICAL_STOCK_RATIO = Decimal("0.5")


class Status(str, Enum):
    """Lifecycle state of a credit or invoice"""

    DRAFT = "DRAFT"
    SENT = "SENT"
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({Status.PAID, Status.CANCELLED})

# Invoice issuance states; both mean "unpaid, not yet overdue"
ISSUANCE_STATUSES = frozenset({Status.DRAFT, Status.SENT})


@dataclass(frozen=True, kw_only=True)
class MonetaryRecord:
    """Open balance shared by credits and invoices"""

    kind: ClassVar[str] = "record"

    id: str
    principal: Decimal
    remaining: Decimal
    status: Status = Status.PENDING
    due_date: datetime.date | None = None

    @property
    def paid_amount(self) -> Decimal:
        return self.principal - self.remaining

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True, kw_only=True)
class Credit(MonetaryRecord):
    """Amount a customer owes the business"""

    kind: ClassVar[str] = "credit"

    client_name: str
    description: str = ""
    date: datetime.date | None = None


@dataclass(frozen=True)
class LineItem:
    """Invoice/sale/purchase detail line; line_total is always derived"""

    product_ref: str
    quantity: int
    unit_price: Decimal
    product_name: str = ""

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise InvalidAmountError(f"Line quantity must be a positive integer, got {self.quantity!r}")
        if self.unit_price < 0:
            raise InvalidAmountError(f"Unit price must be non-negative, got {self.unit_price}")

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True, kw_only=True)
class Invoice(MonetaryRecord):
    """Billing document itemizing a sale"""

    kind: ClassVar[str] = "invoice"

    reference: str
    client_name: str = ""
    items: Tuple[LineItem, ...] = ()
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    date: datetime.date | None = None
    status: Status = Status.DRAFT


@dataclass(frozen=True)
class Product:
    """Stock item with reorder threshold"""

    id: str
    name: str
    category: str
    quantity: int
    min_stock: int
    unit_price: Decimal
    unit: str = ""

    @property
    def stock_value(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def is_low(self) -> bool:
        return self.quantity <= self.min_stock

    def is_critical(self, ratio: Decimal = CRITICAL_STOCK_RATIO) -> bool:
        """At or below ratio * min_stock"""
        return self.quantity <= self.min_stock * ratio


@dataclass(frozen=True)
class Transaction:
    """Sale or purchase of a single product"""

    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    party_name: str  # client for sales, supplier for purchases
    date: datetime.date | None = None
    is_paid: bool = False


# Sales and purchases share one shape; the aliases keep call sites readable
Sale = Transaction
Purchase = Transaction


@dataclass(frozen=True)
class DashboardStats:
    """Headline figures shown on the dashboard"""

    total_products: int
    total_stock: int
    total_sales: Decimal
    total_purchases: Decimal
    total_credits: Decimal
    low_stock_products: int


@dataclass(frozen=True)
class CreditSummary:
    """Credit screen figures"""

    outstanding: Decimal
    principal_total: Decimal
    collected: Decimal
    collection_rate: float
    count_by_status: dict = field(default_factory=dict)


@dataclass(frozen=True)
class TransactionSummary:
    """Sales or purchases screen figures"""

    count: int
    total: Decimal
    paid_total: Decimal
    unpaid_total: Decimal


@dataclass(frozen=True)
class InvoiceSummary:
    """Invoice screen figures"""

    count: int
    paid_count: int
    billed_total: Decimal
    outstanding: Decimal


@dataclass(frozen=True)
class StockSummary:
    """Stock screen figures"""

    product_count: int
    total_units: int
    stock_value: Decimal
    low_stock_count: int
    critical_stock_count: int
    value_by_category: dict = field(default_factory=dict)
