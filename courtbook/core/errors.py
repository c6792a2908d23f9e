"""Typed failures raised by the reservation engine.

Rule violations derive from ``BookingError`` (a ``ValueError``) so callers
that only care about "the request was refused" can keep catching
``ValueError``. Storage trouble is reported separately.
"""


class BookingError(ValueError):
    """Base class for every refused booking operation."""


class ConflictError(BookingError):
    """The requested range overlaps a live reservation."""


class SlotLockedError(BookingError):
    """Another checkout attempt holds the range. Retry later."""


class InsufficientFundsError(BookingError):
    def __init__(self, message: str, balance: int = 0, required: int = 0):
        super().__init__(message)
        self.balance = balance
        self.required = required


class SuspendedError(BookingError):
    def __init__(self, message: str, until=None, reason=None):
        super().__init__(message)
        self.until = until
        self.reason = reason


class InvalidStateError(BookingError):
    def __init__(self, message: str, status: str = ""):
        super().__init__(message)
        self.status = status


class NotFoundError(BookingError):
    pass


class AlreadyUsedError(BookingError):
    pass


class NotYetValidError(BookingError):
    def __init__(self, message: str, valid_from=None):
        super().__init__(message)
        self.valid_from = valid_from


class ExpiredError(BookingError):
    pass


class ForbiddenError(BookingError):
    pass


class InvalidRequestError(BookingError):
    pass


class TransientStorageError(RuntimeError):
    """Connection loss, deadlock or lock timeout. Safe to retry once."""


class UnavailableError(RuntimeError):
    """Storage stayed unavailable after the retry."""
