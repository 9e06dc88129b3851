"""Domain errors raised by the marketplace services.

Routes never translate these by hand; ``main.py`` maps each class to an HTTP
status through ``ERROR_STATUS_CODES``.
"""


class MarketError(Exception):
    """Base exception for all marketplace errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(MarketError):
    """Raised when an order, item, event, review or offer does not exist."""


class ForbiddenError(MarketError):
    """Raised when the caller does not own the resource it acts on."""


class BusinessRuleError(MarketError):
    """Raised when a request is well-formed but violates a marketplace rule."""


class PaymentProviderError(MarketError):
    """Raised when the card payment provider cannot be reached or refuses a request."""


class InsufficientStockError(BusinessRuleError):
    """Raised when a listing cannot cover the requested quantity."""

    def __init__(self, listing_id: int | None = None, requested: int | None = None):
        self.listing_id = listing_id
        self.requested = requested
        super().__init__("Insufficient stock for some products")


ERROR_STATUS_CODES: dict[type[MarketError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    BusinessRuleError: 400,
    InsufficientStockError: 400,
    PaymentProviderError: 502,
}


def status_code_for(exc: MarketError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500
