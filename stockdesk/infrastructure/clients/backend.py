"""Backend REST API client for inventory, sales, credit and invoice records"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, TypeVar

import httpx

from stockdesk.config import settings
from stockdesk.domain.aggregation import invoice_totals
from stockdesk.domain.exceptions import BackendAPIError, InvalidRecordDataError
from stockdesk.domain.models import Credit, Invoice, LineItem, MonetaryRecord, Product, Purchase, Sale, Status
from stockdesk.infrastructure.clients.schemas import (
    BalanceUpdate,
    CreditPayload,
    PaymentRequest,
    normalize_credit,
    normalize_invoice,
    normalize_product,
    normalize_transaction,
)
from stockdesk.infrastructure.observability.logging import log_backend_failure
from stockdesk.infrastructure.observability.metrics import backend_failure_counter, backend_latency_histogram

T = TypeVar("T")

# Verbs safe to replay after a failed attempt
IDEMPOTENT_METHODS = frozenset({"GET", "PATCH", "DELETE"})

COLLECTIONS = {"credit": "credits", "invoice": "invoices"}


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


def _as_list(data: Any) -> List[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        return data["data"]
    raise InvalidRecordDataError(f"Expected a list of records, got {type(data).__name__}")


class BackendClient:
    """Client for the external inventory/sales REST API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.backend_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.backend_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.backend_backoff_base
        self.transport = transport

    async def _request(self, method: str, path: str, json: Dict[str, Any] | None = None) -> Any:
        """
        Send one request and decode the JSON body.

        Retry strategy:
        - Only idempotent verbs (GET, PATCH, DELETE) are retried, POST never
        - Retries on transport errors, timeouts and 5xx responses
        - Exponential backoff: base, 2*base, 4*base, ...
        - 4xx responses fail immediately

        Raises:
            BackendAPIError: on timeout, HTTP error, or a body that is not JSON
        """
        attempts = self.max_retries if method in IDEMPOTENT_METHODS else 1
        attempts = max(attempts, 1)

        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(1, attempts + 1):
                try:
                    with backend_latency_histogram.labels(method=method).time():
                        response = await client.request(method, path, json=json)
                        response.raise_for_status()

                    if response.status_code == 204 or not response.content:
                        return None
                    return response.json()

                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    backend_failure_counter.labels(method=method).inc()
                    log_backend_failure(method, path, f"HTTP {status_code}", attempt)
                    if status_code < 500 or attempt >= attempts:
                        raise BackendAPIError(
                            f"Backend error {status_code} on {method} {path}: {_error_detail(e.response)}",
                            status_code=status_code,
                        ) from e

                except httpx.RequestError as e:
                    backend_failure_counter.labels(method=method).inc()
                    log_backend_failure(method, path, type(e).__name__, attempt)
                    if attempt >= attempts:
                        if isinstance(e, httpx.TimeoutException):
                            raise BackendAPIError(f"Backend timeout after {self.timeout}s on {method} {path}") from e
                        raise BackendAPIError(f"Backend unreachable on {method} {path}: {e}") from e

                except ValueError as e:
                    raise BackendAPIError(f"Invalid JSON from backend on {method} {path}") from e

                await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))

    async def _list(self, path: str, normalize: Callable[[Dict[str, Any]], T]) -> List[T]:
        data = await self._request("GET", path)
        return [normalize(raw) for raw in _as_list(data)]

    # Credits

    async def list_credits(self) -> List[Credit]:
        return await self._list("/credits", normalize_credit)

    async def get_credit(self, credit_id: str) -> Credit:
        return normalize_credit(await self._request("GET", f"/credits/{credit_id}"))

    async def create_credit(
        self,
        client_name: str,
        amount: Decimal,
        due_date: date,
        description: str = "",
        issued_on: date | None = None,
    ) -> Credit:
        """Create a credit; it starts PENDING with the full amount outstanding"""
        body = CreditPayload(
            id="",
            client_name=client_name,
            amount=amount,
            remaining_amount=amount,
            description=description,
            date=issued_on or date.today(),
            due_date=due_date,
            status=Status.PENDING,
        ).to_wire()
        body.pop("id")
        return normalize_credit(await self._request("POST", "/credits", json=body))

    async def delete_credit(self, credit_id: str) -> None:
        await self._request("DELETE", f"/credits/{credit_id}")

    # Invoices

    async def list_invoices(self) -> List[Invoice]:
        return await self._list("/invoices", normalize_invoice)

    async def get_invoice(self, invoice_id: str) -> Invoice:
        return normalize_invoice(await self._request("GET", f"/invoices/{invoice_id}"))

    async def create_invoice(
        self,
        reference: str,
        client_name: str,
        items: Iterable[LineItem],
        due_date: date | None = None,
        tax_rate: Decimal | None = None,
    ) -> Invoice:
        """Create a DRAFT invoice with totals computed from its lines"""
        items = list(items)
        subtotal, tax, total = invoice_totals(items, settings.invoice_tax_rate if tax_rate is None else tax_rate)
        body = {
            "invoiceNumber": reference,
            "clientName": client_name,
            "items": [
                {
                    "productId": item.product_ref,
                    "productName": item.product_name,
                    "quantity": item.quantity,
                    "unitPrice": float(item.unit_price),
                    "total": float(item.line_total),
                }
                for item in items
            ],
            "subtotal": float(subtotal),
            "tax": float(tax),
            "total": float(total),
            "remainingAmount": float(total),
            "date": date.today().isoformat(),
            "dueDate": due_date.isoformat() if due_date else None,
            "status": Status.DRAFT.value,
        }
        return normalize_invoice(await self._request("POST", "/invoices", json=body))

    async def delete_invoice(self, invoice_id: str) -> None:
        await self._request("DELETE", f"/invoices/{invoice_id}")

    # Balance operations shared by credits and invoices

    async def add_payment(self, record: MonetaryRecord, payment: PaymentRequest) -> None:
        collection = COLLECTIONS[record.kind]
        await self._request("POST", f"/{collection}/{record.id}/payments", json=payment.to_wire())

    async def update_balance(self, record: MonetaryRecord) -> None:
        collection = COLLECTIONS[record.kind]
        await self._request("PATCH", f"/{collection}/{record.id}", json=BalanceUpdate.from_record(record).to_wire())

    async def update_status(self, record: MonetaryRecord) -> None:
        collection = COLLECTIONS[record.kind]
        await self._request("PATCH", f"/{collection}/{record.id}/status", json={"status": record.status.value})

    # Sales, purchases, stock

    async def list_sales(self) -> List[Sale]:
        return await self._list("/sales", normalize_transaction)

    async def list_purchases(self) -> List[Purchase]:
        return await self._list("/purchases", normalize_transaction)

    async def list_products(self) -> List[Product]:
        return await self._list("/products", normalize_product)

    async def get_product(self, product_id: str) -> Product:
        return normalize_product(await self._request("GET", f"/products/{product_id}"))
