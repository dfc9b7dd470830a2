"""Pydantic schemas normalizing backend JSON into domain records

The backend has shipped two overlapping schemas over time (e.g. `total` vs
`finalAmount`, `clientName` vs `customerId`, lowercase vs uppercase status).
Each payload model accepts every known spelling and maps onto one canonical
domain dataclass, so nothing past this module sees raw backend shapes.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer, ValidationError
from pydantic.alias_generators import to_camel

from stockdesk.domain.exceptions import InvalidRecordDataError
from stockdesk.domain.models import Credit, Invoice, LineItem, MonetaryRecord, Product, Status, Transaction
from stockdesk.utils.date_utils import parse_date


def _upper(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


def _date_to_iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


RecordId = Annotated[str, BeforeValidator(str)]
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
BackendDate = Annotated[
    Optional[date],
    BeforeValidator(parse_date),
    PlainSerializer(_date_to_iso, return_type=Optional[str], when_used="json"),
]
BackendStatus = Annotated[Status, BeforeValidator(_upper)]


class BackendModel(BaseModel):
    """Base for backend payloads: camelCase on the wire, unknown keys ignored"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CreditPayload(BackendModel):
    """Credit as stored by the backend"""

    id: RecordId
    client_name: str = Field(validation_alias=AliasChoices("clientName", "customerName", "customerId", "client_name"))
    amount: Amount = Field(ge=0)
    remaining_amount: Optional[Amount] = Field(
        default=None, ge=0, validation_alias=AliasChoices("remainingAmount", "remaining_amount")
    )
    description: str = ""
    date: BackendDate = None
    due_date: BackendDate = Field(default=None, validation_alias=AliasChoices("dueDate", "due_date"))
    status: BackendStatus = Status.PENDING

    def to_domain(self) -> Credit:
        return Credit(
            id=self.id,
            client_name=self.client_name,
            principal=self.amount,
            remaining=self.amount if self.remaining_amount is None else self.remaining_amount,
            description=self.description,
            date=self.date,
            due_date=self.due_date,
            status=self.status,
        )

    @classmethod
    def from_domain(cls, credit: Credit) -> "CreditPayload":
        return cls(
            id=credit.id,
            client_name=credit.client_name,
            amount=credit.principal,
            remaining_amount=credit.remaining,
            description=credit.description,
            date=credit.date,
            due_date=credit.due_date,
            status=credit.status,
        )


class InvoiceItemPayload(BackendModel):
    product_id: RecordId = Field(validation_alias=AliasChoices("productId", "productRef", "product_id"))
    product_name: str = Field(default="", validation_alias=AliasChoices("productName", "description", "product_name"))
    quantity: int = Field(gt=0)
    unit_price: Amount = Field(ge=0, validation_alias=AliasChoices("unitPrice", "unit_price"))

    def to_domain(self) -> LineItem:
        return LineItem(
            product_ref=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
        )


class InvoicePayload(BackendModel):
    """Invoice in either the simplified or the full backend schema"""

    id: RecordId
    reference: str = Field(validation_alias=AliasChoices("invoiceNumber", "reference"))
    client_name: str = Field(default="", validation_alias=AliasChoices("clientName", "customerId", "client_name"))
    items: List[InvoiceItemPayload] = Field(default_factory=list)
    subtotal: Optional[Amount] = Field(default=None, ge=0, validation_alias=AliasChoices("subtotal", "totalAmount"))
    tax: Amount = Field(default=Decimal("0"), ge=0, validation_alias=AliasChoices("tax", "taxAmount"))
    total: Amount = Field(ge=0, validation_alias=AliasChoices("finalAmount", "total"))
    remaining_amount: Optional[Amount] = Field(
        default=None, ge=0, validation_alias=AliasChoices("remainingAmount", "remaining_amount")
    )
    paid_amount: Optional[Amount] = Field(default=None, ge=0, validation_alias=AliasChoices("paidAmount", "paid_amount"))
    date: BackendDate = Field(default=None, validation_alias=AliasChoices("date", "issueDate"))
    due_date: BackendDate = Field(default=None, validation_alias=AliasChoices("dueDate", "due_date"))
    status: BackendStatus = Status.DRAFT

    def _remaining(self) -> Decimal:
        if self.remaining_amount is not None:
            return self.remaining_amount
        if self.paid_amount is not None:
            return max(Decimal("0"), self.total - self.paid_amount)
        # Simplified schema tracks no balance, only the paid flag
        if self.status == Status.PAID:
            return Decimal("0")
        return self.total

    def to_domain(self) -> Invoice:
        items = tuple(item.to_domain() for item in self.items)
        subtotal = self.subtotal
        if subtotal is None:
            subtotal = sum((item.line_total for item in items), Decimal("0"))

        return Invoice(
            id=self.id,
            reference=self.reference,
            client_name=self.client_name,
            items=items,
            subtotal=subtotal,
            tax=self.tax,
            principal=self.total,
            remaining=self._remaining(),
            date=self.date,
            due_date=self.due_date,
            status=self.status,
        )


class TransactionPayload(BackendModel):
    """Sale or purchase; the party is the client or the supplier"""

    id: RecordId
    product_id: RecordId = ""
    product_name: str = ""
    quantity: int = Field(default=0, ge=0)
    unit_price: Amount = Field(default=Decimal("0"), ge=0)
    total: Optional[Amount] = Field(default=None, ge=0, validation_alias=AliasChoices("total", "finalAmount", "totalAmount"))
    party_name: str = Field(
        default="",
        validation_alias=AliasChoices("clientName", "customerId", "supplierName", "supplierId"),
    )
    date: BackendDate = None
    is_paid: Optional[bool] = None
    payment_status: Optional[str] = None

    def to_domain(self) -> Transaction:
        if self.is_paid is not None:
            paid = self.is_paid
        else:
            paid = (self.payment_status or "").upper() == "PAID"

        return Transaction(
            id=self.id,
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total=self.total if self.total is not None else self.quantity * self.unit_price,
            party_name=self.party_name,
            date=self.date,
            is_paid=paid,
        )


class ProductPayload(BackendModel):
    id: RecordId
    name: str
    category: str = ""
    quantity: int = Field(ge=0)
    unit_price: Amount = Field(ge=0)
    min_stock: int = Field(default=0, ge=0)
    unit: str = ""

    def to_domain(self) -> Product:
        return Product(
            id=self.id,
            name=self.name,
            category=self.category,
            quantity=self.quantity,
            min_stock=self.min_stock,
            unit_price=self.unit_price,
            unit=self.unit,
        )


class PaymentRequest(BackendModel):
    """Body for POST /{credits|invoices}/{id}/payments"""

    amount: Amount
    payment_date: BackendDate
    payment_method: str = "CASH"
    reference: Optional[str] = None


class BalanceUpdate(BackendModel):
    """Body for PATCH after a payment or cancel"""

    remaining_amount: Amount
    status: Status

    @classmethod
    def from_record(cls, record: MonetaryRecord) -> "BalanceUpdate":
        return cls(remaining_amount=record.remaining, status=record.status)


P = TypeVar("P", bound=BackendModel)


def parse_payload(model: Type[P], raw: Any) -> P:
    """
    Validate one raw backend object.

    Raises:
        InvalidRecordDataError: payload is missing fields or has bad values
    """
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise InvalidRecordDataError(f"Invalid {model.__name__}: {e.error_count()} error(s): {e}") from e


def normalize_credit(raw: Dict[str, Any]) -> Credit:
    return parse_payload(CreditPayload, raw).to_domain()


def normalize_invoice(raw: Dict[str, Any]) -> Invoice:
    return parse_payload(InvoicePayload, raw).to_domain()


def normalize_transaction(raw: Dict[str, Any]) -> Transaction:
    return parse_payload(TransactionPayload, raw).to_domain()


def normalize_product(raw: Dict[str, Any]) -> Product:
    return parse_payload(ProductPayload, raw).to_domain()
