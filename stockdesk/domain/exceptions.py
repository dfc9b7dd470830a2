"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidAmountError(DomainException):
    """Amount is zero, negative, or not a finite number"""

    pass


class InconsistentRecordError(DomainException):
    """Record violates a balance invariant or is in a terminal state"""

    pass


class InvalidRecordDataError(DomainException):
    """Backend record is malformed and cannot be normalized"""

    pass


class BackendAPIError(DomainException):
    """Backend API returned an error or is unavailable"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
