"""Date manipulation utilities"""

from datetime import date, datetime


def to_date(value: date | datetime) -> date:
    """Calendar date of a date or datetime"""
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_date(value: str | date | datetime | None) -> date | None:
    """
    Parse backend date values.

    Accepts plain ISO dates ("2024-01-15") and JS-serialized timestamps
    ("2024-01-15T00:00:00.000Z"); the time part is dropped.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return to_date(value)
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO date string, got {type(value).__name__}")
    return datetime.fromisoformat(value.replace("Z", "+00:00")).date()


def days_overdue(due_date: date | None, now: date | datetime) -> int:
    """Whole days past due_date (0 when not yet due or no due date)"""
    if due_date is None:
        return 0
    return max(0, (to_date(now) - due_date).days)
