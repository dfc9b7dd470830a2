"""Amount coercion helpers"""

from decimal import Decimal, InvalidOperation
from typing import Any

from stockdesk.domain.exceptions import InvalidAmountError

ZERO = Decimal("0")


def to_amount(value: Any) -> Decimal:
    """
    Coerce a numeric value to a finite Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    Booleans and strings are rejected even though Decimal would accept them.

    Raises:
        InvalidAmountError: value is not a finite number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidAmountError(f"Amount must be numeric, got {type(value).__name__}")

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidAmountError(f"Invalid amount: {value!r}") from e

    if not amount.is_finite():
        raise InvalidAmountError(f"Amount must be finite, got {value!r}")

    return amount
