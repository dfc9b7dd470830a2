"""Pytest fixtures for testing"""

import json
import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Tuple

import httpx

from stockdesk.domain.models import Credit, Invoice, LineItem, Product, Status, Transaction
from stockdesk.infrastructure.clients.backend import BackendClient


TODAY = date(2024, 6, 1)


class FakeBackend:
    """
    In-memory stand-in for the REST backend, served through httpx.MockTransport.

    Routes map (method, path) to a queue of (status_code, body) replies; the
    last reply repeats once the queue is drained.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Tuple[int, Any]]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Tuple[int, Any]) -> None:
        self.routes[(method, path)] = list(replies)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def body(self, request: httpx.Request) -> Any:
        return json.loads(request.content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, request.url.path))
        if not replies:
            return httpx.Response(404, json={"message": "not found"})

        status_code, body = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(body, Exception):
            raise body
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client(backend: FakeBackend) -> BackendClient:
    """Backend client wired to the fake backend, no backoff delay"""
    return BackendClient(
        base_url="http://backend.test",
        timeout=1.0,
        max_retries=3,
        backoff_base=0,
        transport=httpx.MockTransport(backend.handler),
    )


@pytest.fixture
def pending_credit() -> Credit:
    return Credit(
        id="c1",
        client_name="Jean Dupont",
        principal=Decimal("50000"),
        remaining=Decimal("50000"),
        due_date=TODAY + timedelta(days=30),
        status=Status.PENDING,
    )


@pytest.fixture
def sample_credits() -> List[Credit]:
    """Mixed credit book: pending, partial, paid, overdue"""
    return [
        Credit(
            id="1",
            client_name="Jean Dupont",
            principal=Decimal("50000"),
            remaining=Decimal("50000"),
            due_date=TODAY + timedelta(days=10),
            status=Status.PENDING,
        ),
        Credit(
            id="2",
            client_name="Marie Ngo",
            principal=Decimal("28800"),
            remaining=Decimal("10000"),
            due_date=TODAY - timedelta(days=45),
            status=Status.PARTIAL,
        ),
        Credit(
            id="3",
            client_name="Paul Biya",
            principal=Decimal("15000"),
            remaining=Decimal("0"),
            due_date=TODAY - timedelta(days=5),
            status=Status.PAID,
        ),
        Credit(
            id="4",
            client_name="Jean Dupont",
            principal=Decimal("20000"),
            remaining=Decimal("20000"),
            due_date=TODAY - timedelta(days=100),
            status=Status.OVERDUE,
        ),
    ]


@pytest.fixture
def sample_products() -> List[Product]:
    return [
        Product(id="p1", name="Riz 25kg", category="Alimentation", quantity=150, min_stock=50, unit_price=Decimal("15000"), unit="sac"),
        Product(id="p2", name="Huile 5L", category="Alimentation", quantity=25, min_stock=50, unit_price=Decimal("6000"), unit="bidon"),
        Product(id="p3", name="Savon", category="Hygiène", quantity=8, min_stock=20, unit_price=Decimal("500"), unit="pièce"),
        Product(id="p4", name="Sucre 1kg", category="Alimentation", quantity=40, min_stock=40, unit_price=Decimal("800"), unit="paquet"),
    ]


@pytest.fixture
def sample_sales() -> List[Transaction]:
    return [
        Transaction(
            id="s1",
            product_id="p1",
            product_name="Riz 25kg",
            quantity=2,
            unit_price=Decimal("15000"),
            total=Decimal("30000"),
            party_name="Jean Dupont",
            date=TODAY,
            is_paid=True,
        ),
        Transaction(
            id="s2",
            product_id="p2",
            product_name="Huile 5L",
            quantity=3,
            unit_price=Decimal("6000"),
            total=Decimal("18000"),
            party_name="Marie Ngo",
            date=TODAY,
            is_paid=False,
        ),
        Transaction(
            id="s3",
            product_id="p1",
            product_name="Riz 25kg",
            quantity=1,
            unit_price=Decimal("15000"),
            total=Decimal("15000"),
            party_name="",
            date=TODAY,
            is_paid=True,
        ),
    ]


@pytest.fixture
def sample_invoice() -> Invoice:
    items = (
        LineItem(product_ref="p1", product_name="Riz 25kg", quantity=2, unit_price=Decimal("12500")),
        LineItem(product_ref="p3", product_name="Savon", quantity=1, unit_price=Decimal("5000")),
    )
    return Invoice(
        id="i1",
        reference="FAC-2024-001",
        client_name="Jean Dupont",
        items=items,
        subtotal=Decimal("30000"),
        tax=Decimal("5700"),
        principal=Decimal("35700"),
        remaining=Decimal("35700"),
        due_date=TODAY + timedelta(days=15),
        status=Status.SENT,
    )
