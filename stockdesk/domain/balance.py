"""Balance tracking - payment application and lifecycle transitions"""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar

from stockdesk.domain.exceptions import InconsistentRecordError, InvalidAmountError
from stockdesk.domain.models import ISSUANCE_STATUSES, MonetaryRecord, Status
from stockdesk.domain.status import classify
from stockdesk.utils.money_utils import ZERO, to_amount

R = TypeVar("R", bound=MonetaryRecord)


def check_consistency(record: MonetaryRecord) -> None:
    """
    Refuse records that break 0 <= remaining <= principal.

    Raises:
        InconsistentRecordError: negative amounts or remaining above principal
    """
    if record.principal < 0:
        raise InconsistentRecordError(f"{record.kind} {record.id}: negative principal {record.principal}")
    if record.remaining < 0:
        raise InconsistentRecordError(f"{record.kind} {record.id}: negative remaining {record.remaining}")
    if record.remaining > record.principal:
        raise InconsistentRecordError(
            f"{record.kind} {record.id}: remaining {record.remaining} exceeds principal {record.principal}"
        )


def apply_payment(record: R, payment_amount: Any, now: date | datetime | None = None) -> R:
    """
    Apply a payment to an open credit or invoice.

    Overpayment is not an error: the remaining balance is clamped at zero.
    The input record is never modified; a new copy is returned.

    Args:
        record: Credit or invoice to settle against
        payment_amount: Strictly positive number
        now: Reference time for overdue detection (default: today)

    Returns:
        Copy of record with reduced remaining balance and recomputed status

    Raises:
        InvalidAmountError: payment is zero, negative, or not a finite number
        InconsistentRecordError: record breaks its balance invariant, or is
            already PAID or CANCELLED

    Example:
        principal 50000, remaining 50000, pay 25000 -> remaining 25000, PARTIAL
        principal 28800, remaining 28800, pay 30000 -> remaining 0, PAID
    """
    amount = to_amount(payment_amount)
    if amount <= 0:
        raise InvalidAmountError(f"Payment must be positive, got {amount}")

    check_consistency(record)
    if record.is_terminal:
        raise InconsistentRecordError(f"{record.kind} {record.id} is {record.status.value}, payment refused")

    remaining = max(ZERO, record.remaining - amount)
    status = classify(remaining, record.principal, record.due_date, now or date.today())

    return replace(record, remaining=remaining, status=status)


def cancel(record: R) -> R:
    """
    Mark a record CANCELLED. Only reachable through an explicit cancel action.

    Raises:
        InconsistentRecordError: record is already PAID
    """
    if record.status == Status.CANCELLED:
        return record
    if record.status == Status.PAID:
        raise InconsistentRecordError(f"{record.kind} {record.id} is already paid and cannot be cancelled")
    return replace(record, status=Status.CANCELLED)


def refresh_status(record: R, now: date | datetime | None = None) -> R:
    """
    Re-derive status for time-based transitions (PENDING -> OVERDUE).

    Terminal records come back unchanged. An invoice that is still unpaid and
    not overdue keeps its DRAFT/SENT issuance status.
    """
    if record.is_terminal:
        return record

    check_consistency(record)
    status = classify(record.remaining, record.principal, record.due_date, now or date.today())

    if status == Status.PENDING and record.status in ISSUANCE_STATUSES:
        return record
    if status == record.status:
        return record
    return replace(record, status=status)


def outstanding(record: MonetaryRecord) -> Decimal:
    """Balance still owed; zero for paid and cancelled records whatever remaining says"""
    if record.is_terminal:
        return ZERO
    return record.remaining
