"""Integration tests for the backend REST client"""

import pytest
from datetime import date
from decimal import Decimal

import httpx

from stockdesk.domain.exceptions import BackendAPIError, InvalidRecordDataError
from stockdesk.domain.models import LineItem, Status
from stockdesk.infrastructure.clients.schemas import PaymentRequest

pytestmark = pytest.mark.integration


CREDIT_JSON = {
    "id": "c1",
    "clientName": "Jean Dupont",
    "amount": 50000,
    "remainingAmount": 50000,
    "description": "Riz",
    "date": "2024-05-01",
    "dueDate": "2024-07-01",
    "status": "PENDING",
}


async def test_list_credits(backend, client):
    backend.add("GET", "/credits", (200, [CREDIT_JSON]))

    credits = await client.list_credits()

    assert len(credits) == 1
    assert credits[0].client_name == "Jean Dupont"
    assert credits[0].remaining == Decimal("50000")


async def test_list_accepts_wrapped_payload(backend, client):
    backend.add("GET", "/products", (200, {"data": [{"id": "p1", "name": "Riz", "quantity": 3, "unitPrice": 10}]}))

    products = await client.list_products()

    assert [p.id for p in products] == ["p1"]


async def test_list_rejects_non_list_payload(backend, client):
    backend.add("GET", "/sales", (200, {"unexpected": True}))

    with pytest.raises(InvalidRecordDataError):
        await client.list_sales()


async def test_get_retries_on_server_error(backend, client):
    backend.add("GET", "/credits/c1", (503, {"message": "busy"}), (200, CREDIT_JSON))

    credit = await client.get_credit("c1")

    assert credit.id == "c1"
    assert len(backend.calls("GET", "/credits/c1")) == 2


async def test_get_gives_up_after_max_retries(backend, client):
    backend.add("GET", "/credits/c1", (500, {"message": "boom"}))

    with pytest.raises(BackendAPIError) as exc_info:
        await client.get_credit("c1")

    assert exc_info.value.status_code == 500
    assert "boom" in str(exc_info.value)
    assert len(backend.calls("GET", "/credits/c1")) == 3


async def test_client_error_is_not_retried(backend, client):
    backend.add("GET", "/credits/missing", (404, {"message": "Créance introuvable"}))

    with pytest.raises(BackendAPIError) as exc_info:
        await client.get_credit("missing")

    assert exc_info.value.status_code == 404
    assert len(backend.calls("GET", "/credits/missing")) == 1


async def test_transport_error_is_retried(backend, client):
    backend.add("GET", "/invoices", (0, httpx.ConnectError("connection refused")), (200, []))

    assert await client.list_invoices() == []
    assert len(backend.calls("GET", "/invoices")) == 2


async def test_timeout_maps_to_backend_error(backend, client):
    backend.add("GET", "/purchases", (0, httpx.ReadTimeout("slow")))

    with pytest.raises(BackendAPIError, match="timeout"):
        await client.list_purchases()


async def test_post_is_never_retried(backend, client, pending_credit):
    backend.add("POST", "/credits/c1/payments", (503, {"message": "busy"}))
    payment = PaymentRequest(amount=Decimal("1000"), payment_date=date(2024, 6, 1))

    with pytest.raises(BackendAPIError):
        await client.add_payment(pending_credit, payment)

    assert len(backend.calls("POST", "/credits/c1/payments")) == 1


async def test_invalid_json_maps_to_backend_error(client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>oops</html>")

    client.transport = httpx.MockTransport(handler)

    with pytest.raises(BackendAPIError, match="Invalid JSON"):
        await client.list_credits()


async def test_create_credit_starts_pending(backend, client):
    backend.add("POST", "/credits", (201, CREDIT_JSON))

    credit = await client.create_credit("Jean Dupont", Decimal("50000"), date(2024, 7, 1), "Riz", date(2024, 5, 1))

    body = backend.body(backend.calls("POST", "/credits")[0])
    assert "id" not in body
    assert body["amount"] == body["remainingAmount"] == 50000.0
    assert body["status"] == "PENDING"
    assert body["dueDate"] == "2024-07-01"
    assert credit.status == Status.PENDING


async def test_create_invoice_computes_totals(backend, client):
    backend.add(
        "POST",
        "/invoices",
        (201, {"id": "i1", "invoiceNumber": "FAC-2024-001", "total": 35700, "status": "draft"}),
    )
    items = [
        LineItem(product_ref="p1", product_name="Riz", quantity=2, unit_price=Decimal("12500")),
        LineItem(product_ref="p3", product_name="Savon", quantity=1, unit_price=Decimal("5000")),
    ]

    invoice = await client.create_invoice("FAC-2024-001", "Jean Dupont", items, tax_rate=Decimal("0.19"))

    body = backend.body(backend.calls("POST", "/invoices")[0])
    assert body["subtotal"] == 30000.0
    assert body["tax"] == 5700.0
    assert body["total"] == 35700.0
    assert body["items"][0]["total"] == 25000.0
    assert body["status"] == "DRAFT"
    assert invoice.status == Status.DRAFT
    assert invoice.remaining == Decimal("35700")


async def test_update_balance_patches_remaining_and_status(backend, client, sample_invoice):
    backend.add("PATCH", "/invoices/i1", (200, None))

    await client.update_balance(sample_invoice)

    body = backend.body(backend.calls("PATCH", "/invoices/i1")[0])
    assert body == {"remainingAmount": 35700.0, "status": "SENT"}


async def test_update_status(backend, client, pending_credit):
    backend.add("PATCH", "/credits/c1/status", (204, None))

    await client.update_status(pending_credit)

    assert backend.body(backend.calls("PATCH", "/credits/c1/status")[0]) == {"status": "PENDING"}


async def test_delete_credit(backend, client):
    backend.add("DELETE", "/credits/c1", (204, None))

    await client.delete_credit("c1")

    assert len(backend.calls("DELETE", "/credits/c1")) == 1
