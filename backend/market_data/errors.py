from __future__ import annotations


class MarketDataError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code = 500

    def __init__(self, message: str, symbols: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.symbols = symbols or []

    def to_payload(self) -> dict:
        payload: dict = {"error": self.message}
        if self.symbols:
            payload["symbols"] = self.symbols
        return payload


class InvalidRequestError(MarketDataError):
    status_code = 400


class SymbolValidationError(InvalidRequestError):
    pass


class QuoteNotFoundError(MarketDataError):
    status_code = 404


class UpstreamError(MarketDataError):
    status_code = 502


class UpstreamTimeoutError(UpstreamError):
    status_code = 504
