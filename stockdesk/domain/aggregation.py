"""Aggregation engine - folds record collections into dashboard metrics"""

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Hashable, Iterable, List, Sequence, Tuple, TypeVar

from stockdesk.domain.balance import outstanding
from stockdesk.domain.models import (
    CRITICAL_STOCK_RATIO,
    Credit,
    CreditSummary,
    DashboardStats,
    Invoice,
    InvoiceSummary,
    LineItem,
    MonetaryRecord,
    Product,
    Status,
    StockSummary,
    Transaction,
    TransactionSummary,
)
from stockdesk.utils.date_utils import days_overdue, to_date
from stockdesk.utils.money_utils import ZERO

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)
R = TypeVar("R", bound=MonetaryRecord)

# Inclusive upper bounds in days past due; None is the open-ended last bucket
AGING_BUCKETS: List[Tuple[str, int | None]] = [
    ("current", 0),
    ("1-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    ("90+", None),
]

PERIODS = ("day", "week", "month", "year")

UNCATEGORIZED = "uncategorized"


# ---------------------------------------------------------------------------
# Generic folds
# ---------------------------------------------------------------------------


def total(records: Iterable[T], value_fn: Callable[[T], Decimal]) -> Decimal:
    """Sum value_fn over records; Decimal 0 for empty input"""
    return sum((value_fn(r) for r in records), ZERO)


def count_where(records: Iterable[T], predicate: Callable[[T], bool]) -> int:
    return sum(1 for r in records if predicate(r))


def group_by_sum(
    records: Iterable[T],
    key_fn: Callable[[T], K],
    value_fn: Callable[[T], Decimal],
) -> Dict[K, Decimal]:
    """Accumulate value_fn per key_fn group. Key order carries no meaning."""
    groups: Dict[K, Decimal] = defaultdict(lambda: ZERO)
    for r in records:
        groups[key_fn(r)] += value_fn(r)
    return dict(groups)


def percentage(value: Decimal | int, whole: Decimal | int) -> float:
    """value / whole * 100, or 0.0 when whole is zero"""
    if whole == 0:
        return 0.0
    return float(Decimal(value) / Decimal(whole) * 100)


def share_by_group(
    records: Iterable[T],
    key_fn: Callable[[T], K],
    value_fn: Callable[[T], Decimal],
) -> Dict[K, float]:
    """Percentage of the grand total contributed by each group"""
    groups = group_by_sum(records, key_fn, value_fn)
    grand_total = sum(groups.values(), ZERO)
    return {key: percentage(value, grand_total) for key, value in groups.items()}


def period_key(day: date | datetime, period: str = "month") -> str:
    """
    Sortable label of the calendar period containing day.

    day -> 2024-06-01, week -> 2024-W22 (ISO week), month -> 2024-06, year -> 2024
    """
    d = to_date(day)
    if period == "day":
        return d.isoformat()
    if period == "week":
        year, week, _ = d.isocalendar()
        return f"{year}-W{week:02d}"
    if period == "month":
        return f"{d.year}-{d.month:02d}"
    if period == "year":
        return str(d.year)
    raise ValueError(f"Unknown period: {period}")


def group_by_period(
    records: Iterable[T],
    date_fn: Callable[[T], date | datetime | None],
    value_fn: Callable[[T], Decimal],
    period: str = "month",
) -> Dict[str, Decimal]:
    """Sum value_fn per calendar period, oldest period first. Undated records are skipped."""
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period}")
    dated = [r for r in records if date_fn(r) is not None]
    groups = group_by_sum(dated, lambda r: period_key(date_fn(r), period), value_fn)
    return dict(sorted(groups.items()))


def _rank(balances: Dict[str, Decimal], limit: int) -> List[Tuple[str, Decimal]]:
    """Named positive amounts, largest first, ties by name"""
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    ranked = sorted(
        ((name, amount) for name, amount in balances.items() if name and amount > 0),
        key=lambda item: (-item[1], item[0]),
    )
    return ranked[:limit]


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------


def low_stock_products(products: Iterable[Product]) -> List[Product]:
    """Products at or below their reorder threshold, lowest quantity first"""
    return sorted((p for p in products if p.is_low), key=lambda p: p.quantity)


def out_of_stock_products(products: Iterable[Product]) -> List[Product]:
    return [p for p in products if p.quantity <= 0]


def critical_stock_products(
    products: Iterable[Product],
    ratio: Decimal = CRITICAL_STOCK_RATIO,
) -> List[Product]:
    """Products at or below ratio * min_stock, lowest quantity first"""
    return sorted(
        (p for p in products if p.is_critical(ratio)),
        key=lambda p: p.quantity,
    )


def stock_summary(products: Sequence[Product], critical_ratio: Decimal = CRITICAL_STOCK_RATIO) -> StockSummary:
    return StockSummary(
        product_count=len(products),
        total_units=sum(p.quantity for p in products),
        stock_value=total(products, lambda p: p.stock_value),
        low_stock_count=count_where(products, lambda p: p.is_low),
        critical_stock_count=len(critical_stock_products(products, critical_ratio)),
        value_by_category=group_by_sum(products, lambda p: p.category, lambda p: p.stock_value),
    )


# ---------------------------------------------------------------------------
# Sales / purchases
# ---------------------------------------------------------------------------


def transaction_summary(transactions: Sequence[Transaction]) -> TransactionSummary:
    grand_total = total(transactions, lambda t: t.total)
    paid_total = total((t for t in transactions if t.is_paid), lambda t: t.total)

    return TransactionSummary(
        count=len(transactions),
        total=grand_total,
        paid_total=paid_total,
        unpaid_total=grand_total - paid_total,
    )


sales_summary = transaction_summary
purchase_summary = transaction_summary


def sales_by_product(sales: Iterable[Transaction]) -> Dict[str, Decimal]:
    """Revenue per product name"""
    return group_by_sum(sales, lambda s: s.product_name, lambda s: s.total)


def transactions_by_period(transactions: Iterable[Transaction], period: str = "month") -> Dict[str, Decimal]:
    return group_by_period(transactions, lambda t: t.date, lambda t: t.total, period)


sales_by_period = transactions_by_period
purchases_by_period = transactions_by_period


def transactions_by_category(transactions: Iterable[Transaction], products: Iterable[Product]) -> Dict[str, Decimal]:
    """
    Amount per product category.

    Transactions whose product is unknown or has no category are grouped
    under UNCATEGORIZED.
    """
    categories = {p.id: p.category for p in products}
    return group_by_sum(
        transactions,
        lambda t: categories.get(t.product_id) or UNCATEGORIZED,
        lambda t: t.total,
    )


sales_by_category = transactions_by_category
purchases_by_category = transactions_by_category


def top_suppliers(purchases: Iterable[Transaction], limit: int = 5) -> List[Tuple[str, Decimal]]:
    """Suppliers by purchase volume, largest first. Purchases without a supplier are ignored."""
    return _rank(group_by_sum(purchases, lambda p: p.party_name, lambda p: p.total), limit)


# ---------------------------------------------------------------------------
# Credits
# ---------------------------------------------------------------------------


def credit_summary(credits: Sequence[Credit]) -> CreditSummary:
    """
    Credit screen figures.

    Cancelled credits are left out of the collection rate: their unpaid
    balance is written off, not outstanding.
    """
    live = [c for c in credits if c.status != Status.CANCELLED]
    principal_total = total(live, lambda c: c.principal)
    collected = total(live, lambda c: c.paid_amount)

    count_by_status: Dict[Status, int] = {status: 0 for status in Status if status not in (Status.DRAFT, Status.SENT)}
    for c in credits:
        count_by_status[c.status] = count_by_status.get(c.status, 0) + 1

    return CreditSummary(
        outstanding=total(credits, outstanding),
        principal_total=principal_total,
        collected=collected,
        collection_rate=percentage(collected, principal_total),
        count_by_status=count_by_status,
    )


def top_debtors(credits: Iterable[Credit], limit: int = 5) -> List[Tuple[str, Decimal]]:
    """Clients with the largest outstanding balance, largest first"""
    return _rank(group_by_sum(credits, lambda c: c.client_name, outstanding), limit)


def aging(records: Iterable[MonetaryRecord], now: date | datetime) -> Dict[str, Decimal]:
    """
    Outstanding balance bucketed by days past due.

    Records without a due date count as current. Every bucket is present in
    the result, zero-filled.
    """
    buckets: Dict[str, Decimal] = {label: ZERO for label, _ in AGING_BUCKETS}
    for r in records:
        balance = outstanding(r)
        if balance <= 0:
            continue
        late = days_overdue(r.due_date, now)
        for label, upper in AGING_BUCKETS:
            if upper is None or late <= upper:
                buckets[label] += balance
                break
    return buckets


credit_aging = aging
invoice_aging = aging


def collections_by_period(credits: Iterable[Credit], period: str = "month") -> Dict[str, Decimal]:
    """Amount collected per period the credit was granted in; cancelled credits excluded"""
    live = (c for c in credits if c.status != Status.CANCELLED)
    return group_by_period(live, lambda c: c.date, lambda c: c.paid_amount, period)


def monthly_collections(credits: Iterable[Credit]) -> Dict[str, Decimal]:
    return collections_by_period(credits, "month")


def overdue_records(records: Iterable[R], now: date | datetime) -> List[R]:
    """
    Records past their due date with a balance still owed, oldest due date first.

    Partially paid records count here too: this is the due-date view, not
    the OVERDUE status.
    """
    late = [r for r in records if outstanding(r) > 0 and days_overdue(r.due_date, now) > 0]
    return sorted(late, key=lambda r: r.due_date)


def unpaid_records(records: Iterable[R]) -> List[R]:
    """Records with a balance still owed, earliest due date first, undated last"""
    unpaid = [r for r in records if outstanding(r) > 0]
    return sorted(unpaid, key=lambda r: (r.due_date is None, r.due_date or date.min))


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------


def invoice_totals(items: Iterable[LineItem], tax_rate: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Compute (subtotal, tax, total) for invoice lines.

    Example:
        2 x 12500 + 1 x 5000 at 19% -> (30000, 5700, 35700)
    """
    subtotal = total(items, lambda item: item.line_total)
    tax = subtotal * tax_rate
    return subtotal, tax, subtotal + tax


def invoice_summary(invoices: Sequence[Invoice]) -> InvoiceSummary:
    return InvoiceSummary(
        count=len(invoices),
        paid_count=count_where(invoices, lambda i: i.status == Status.PAID),
        billed_total=total(invoices, lambda i: i.principal),
        outstanding=total(invoices, outstanding),
    )


def revenue_by_period(invoices: Iterable[Invoice], period: str = "month") -> Dict[str, Decimal]:
    """Billed total per issue period; cancelled invoices excluded"""
    live = (i for i in invoices if i.status != Status.CANCELLED)
    return group_by_period(live, lambda i: i.date, lambda i: i.principal, period)


def revenue_by_month(invoices: Iterable[Invoice]) -> Dict[str, Decimal]:
    return revenue_by_period(invoices, "month")


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def dashboard_stats(
    products: Sequence[Product],
    sales: Sequence[Transaction],
    purchases: Sequence[Transaction],
    credits: Sequence[Credit],
) -> DashboardStats:
    """
    Headline dashboard figures.

    total_credits is the remaining balance over credits that are neither
    paid nor cancelled.
    """
    return DashboardStats(
        total_products=len(products),
        total_stock=sum(p.quantity for p in products),
        total_sales=total(sales, lambda s: s.total),
        total_purchases=total(purchases, lambda p: p.total),
        total_credits=total(credits, outstanding),
        low_stock_products=count_where(products, lambda p: p.is_low),
    )
