"""Custom exception hierarchy for CoinCap client errors."""

from __future__ import annotations


class CoinCapError(Exception):
    """Base exception for CoinCap upstream failures."""


class CoinCapAPIError(CoinCapError):
    """Raised when the CoinCap API answers with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = status_code
        self.message = message
        if message:
            super().__init__(f'status={status_code}: {message}')
        else:
            super().__init__(f'status={status_code}')


class CoinCapAuthError(CoinCapAPIError):
    """Raised when the API key is rejected or the caller is rate limited."""


class CoinCapResponseError(CoinCapError):
    """Raised when a successful response does not carry an asset list."""


class CoinCapTransportError(CoinCapError):
    """Raised when network or protocol-level failures occur."""

    def __init__(self, original: Exception) -> None:
        self.original = original
        super().__init__(str(original) or type(original).__name__)
