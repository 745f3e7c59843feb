class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class DecodeError(DomainError):
    """Raised when a presence payload cannot be decoded into an event.

    Never escapes the normalizer: it is caught, logged and the payload dropped.
    """


class BrokerConnectionError(DomainError):
    """Raised to callers of ``connect()`` when the broker connection fails."""


class StoreUnavailableError(DomainError):
    """Raised when the authoritative payroll status store cannot be reached."""
