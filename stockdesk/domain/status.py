"""Status classification for credits and invoices"""

from datetime import date, datetime
from decimal import Decimal

from stockdesk.domain.models import Status
from stockdesk.utils.date_utils import to_date


def classify(
    remaining: Decimal,
    principal: Decimal,
    due_date: date | None,
    now: date | datetime,
) -> Status:
    """
    Derive the lifecycle status of an open balance.

    Rules, first match wins:
    - remaining <= 0:                                      PAID
    - remaining < principal:                               PARTIAL
    - past due_date and nothing paid (remaining == principal): OVERDUE
    - otherwise:                                           PENDING

    OVERDUE is derived the same way for credits and invoices. A partially paid
    record stays PARTIAL after its due date. CANCELLED is never derived here;
    it is only set by an explicit cancel.
    """
    if remaining <= 0:
        return Status.PAID
    if remaining < principal:
        return Status.PARTIAL
    if due_date is not None and to_date(now) > due_date and remaining == principal:
        return Status.OVERDUE
    return Status.PENDING
