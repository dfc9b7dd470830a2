"""Reconciliation service - runs the ledger core against a backend snapshot"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from stockdesk.config import settings
from stockdesk.domain.aggregation import (
    PERIODS,
    collections_by_period,
    credit_aging,
    credit_summary,
    critical_stock_products,
    dashboard_stats,
    invoice_aging,
    invoice_summary,
    low_stock_products,
    out_of_stock_products,
    overdue_records,
    purchase_summary,
    purchases_by_category,
    purchases_by_period,
    revenue_by_period,
    sales_by_category,
    sales_by_period,
    sales_by_product,
    sales_summary,
    stock_summary,
    top_debtors,
    top_suppliers,
    unpaid_records,
)
from stockdesk.domain.balance import apply_payment, cancel, refresh_status
from stockdesk.domain.exceptions import InconsistentRecordError, InvalidAmountError
from stockdesk.domain.models import (
    Credit,
    CreditSummary,
    DashboardStats,
    Invoice,
    InvoiceSummary,
    MonetaryRecord,
    Product,
    Purchase,
    Sale,
    StockSummary,
    TransactionSummary,
)
from stockdesk.infrastructure.clients.backend import BackendClient
from stockdesk.infrastructure.clients.schemas import PaymentRequest
from stockdesk.infrastructure.observability.logging import log_payment_applied
from stockdesk.infrastructure.observability.metrics import low_stock_gauge, record_payment, record_rejected_payment
from stockdesk.utils.date_utils import to_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardReport:
    """Everything the dashboard screen renders, computed from one snapshot"""

    stats: DashboardStats
    low_stock: List[Product]
    credits: CreditSummary
    top_debtors: List[Tuple[str, Decimal]]
    credit_aging: Dict[str, Decimal]
    sales: TransactionSummary
    purchases: TransactionSummary
    invoices: InvoiceSummary
    sales_by_product: Dict[str, Decimal] = field(default_factory=dict)
    out_of_stock: List[Product] = field(default_factory=list)
    invoice_aging: Dict[str, Decimal] = field(default_factory=dict)
    overdue_invoices: List[Invoice] = field(default_factory=list)
    unpaid_invoices: List[Invoice] = field(default_factory=list)


@dataclass(frozen=True)
class StockReport:
    summary: StockSummary
    low_stock: List[Product]
    critical_stock: List[Product]
    out_of_stock: List[Product] = field(default_factory=list)


@dataclass(frozen=True)
class ActivityReport:
    """Period and category breakdowns of sales, purchases and collections"""

    period: str
    sales: Dict[str, Decimal]
    purchases: Dict[str, Decimal]
    revenue: Dict[str, Decimal]
    collections: Dict[str, Decimal]
    sales_by_category: Dict[str, Decimal]
    purchases_by_category: Dict[str, Decimal]
    top_suppliers: List[Tuple[str, Decimal]]


class ReconciliationService:
    """Applies payments, cancels and overdue sweeps, and builds reports"""

    def __init__(self, client: BackendClient | None = None):
        self.client = client or BackendClient()

    async def _fetch_record(self, kind: str, record_id: str) -> MonetaryRecord:
        if kind == "credit":
            return await self.client.get_credit(record_id)
        if kind == "invoice":
            return await self.client.get_invoice(record_id)
        raise ValueError(f"Unknown record kind: {kind}")

    async def record_payment(
        self,
        kind: str,
        record_id: str,
        amount: Any,
        now: date | datetime | None = None,
        payment_method: str = "CASH",
    ) -> MonetaryRecord:
        """
        Apply a payment to a credit or invoice and write the result back.

        Flow:
        1. Fetch the current record from the backend
        2. Apply the payment locally (validates amount and record state)
        3. Post the payment, then patch remaining balance and status

        Domain errors are raised before anything is sent to the backend.
        """
        today = now or date.today()
        record = await self._fetch_record(kind, record_id)

        try:
            updated = apply_payment(record, amount, today)
        except InvalidAmountError:
            record_rejected_payment("invalid_amount")
            raise
        except InconsistentRecordError as e:
            record_rejected_payment("inconsistent_record")
            logger.warning(f"Payment refused: {e}", extra={"record_kind": kind, "record_id": record_id})
            raise

        paid = record.remaining - updated.remaining
        await self.client.add_payment(
            record,
            PaymentRequest(
                amount=paid,
                payment_date=to_date(today),
                payment_method=payment_method,
            ),
        )
        await self.client.update_balance(updated)

        record_payment(updated.kind, updated.status.value)
        log_payment_applied(updated.kind, updated.id, paid, updated.remaining, updated.status.value)
        return updated

    async def cancel_record(self, kind: str, record_id: str) -> MonetaryRecord:
        record = await self._fetch_record(kind, record_id)
        cancelled = cancel(record)
        if cancelled is not record:
            await self.client.update_status(cancelled)
            logger.info("Record cancelled", extra={"record_kind": kind, "record_id": record_id})
        return cancelled

    async def refresh_overdue(self, kind: str, now: date | datetime | None = None) -> List[MonetaryRecord]:
        """
        Re-derive status for every open record of a kind.

        Returns the records whose status changed; only those are patched.
        """
        today = now or date.today()
        if kind == "credit":
            records: List[MonetaryRecord] = list(await self.client.list_credits())
        elif kind == "invoice":
            records = list(await self.client.list_invoices())
        else:
            raise ValueError(f"Unknown record kind: {kind}")

        changed = []
        for record in records:
            try:
                refreshed = refresh_status(record, today)
            except InconsistentRecordError as e:
                # Corrupt records are logged and left untouched
                logger.error(f"Skipping inconsistent record: {e}", extra={"record_kind": kind, "record_id": record.id})
                continue
            if refreshed.status != record.status:
                await self.client.update_status(refreshed)
                changed.append(refreshed)

        logger.info("Status sweep completed", extra={"record_kind": kind, "checked": len(records), "changed": len(changed)})
        return changed

    async def _snapshot(
        self,
    ) -> Tuple[List[Product], List[Sale], List[Purchase], List[Credit], List[Invoice]]:
        """
        Fetch every collection concurrently.

        All fetches run to completion; the first failure, in fetch order, is
        raised and any further failures are logged.
        """
        results = await asyncio.gather(
            self.client.list_products(),
            self.client.list_sales(),
            self.client.list_purchases(),
            self.client.list_credits(),
            self.client.list_invoices(),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            for extra in errors[1:]:
                logger.warning(f"Snapshot fetch also failed: {extra}")
            raise errors[0]
        products, sales, purchases, credits, invoices = results
        return products, sales, purchases, credits, invoices

    async def dashboard(self, now: date | datetime | None = None) -> DashboardReport:
        """Fetch one snapshot of every collection and aggregate it"""
        today = now or date.today()
        products, sales, purchases, credits, invoices = await self._snapshot()

        low_stock = low_stock_products(products)
        low_stock_gauge.set(len(low_stock))

        return DashboardReport(
            stats=dashboard_stats(products, sales, purchases, credits),
            low_stock=low_stock,
            credits=credit_summary(credits),
            top_debtors=top_debtors(credits, settings.top_debtors_limit),
            credit_aging=credit_aging(credits, today),
            sales=sales_summary(sales),
            purchases=purchase_summary(purchases),
            invoices=invoice_summary(invoices),
            sales_by_product=sales_by_product(sales),
            out_of_stock=out_of_stock_products(products),
            invoice_aging=invoice_aging(invoices, today),
            overdue_invoices=overdue_records(invoices, today),
            unpaid_invoices=unpaid_records(invoices),
        )

    async def activity_report(self, period: str = "month") -> ActivityReport:
        """Sales, purchases, revenue and collections per period, plus category splits"""
        if period not in PERIODS:
            raise ValueError(f"Unknown period: {period}")
        products, sales, purchases, credits, invoices = await self._snapshot()

        return ActivityReport(
            period=period,
            sales=sales_by_period(sales, period),
            purchases=purchases_by_period(purchases, period),
            revenue=revenue_by_period(invoices, period),
            collections=collections_by_period(credits, period),
            sales_by_category=sales_by_category(sales, products),
            purchases_by_category=purchases_by_category(purchases, products),
            top_suppliers=top_suppliers(purchases, settings.top_debtors_limit),
        )

    async def stock_report(self) -> StockReport:
        products = await self.client.list_products()
        ratio = settings.critical_stock_ratio

        low_stock = low_stock_products(products)
        low_stock_gauge.set(len(low_stock))

        return StockReport(
            summary=stock_summary(products, ratio),
            low_stock=low_stock,
            critical_stock=critical_stock_products(products, ratio),
            out_of_stock=out_of_stock_products(products),
        )
