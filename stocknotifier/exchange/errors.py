from __future__ import annotations


class ExchangeError(RuntimeError):
    """Base class for local failures in the exchange layer (never raised for exchange-side rejections)."""


class MissingCredentials(ExchangeError):
    """Raised when a signed endpoint is called without an API key/secret."""


class ExchangeUnavailable(ExchangeError):
    """Raised when a required metadata fetch did not return HTTP 200."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MetadataMalformed(ExchangeError):
    """Raised when exchange info does not have the expected shape."""


class FilterNotFound(ExchangeError):
    """Raised when a well-formed exchange info response lacks the requested symbol filter."""

    def __init__(self, symbol: str, filter_type: str) -> None:
        super().__init__(f"{filter_type} not found in exchange info for {symbol}")
        self.symbol = symbol
        self.filter_type = filter_type
