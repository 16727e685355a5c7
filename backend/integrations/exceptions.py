"""Typed exception hierarchy for market data provider errors.

Clients raise these; ``MarketDataService`` translates them into
``UpstreamUnavailableError`` for the API layer.
"""


class ProviderError(Exception):
    """Base exception for all provider-related errors.

    Carries the provider name so callers can identify which provider failed.
    """

    retriable: bool = False

    def __init__(self, message: str, provider_name: str = ""):
        self.provider_name = provider_name
        super().__init__(message)


class ProviderAuthError(ProviderError):
    """API key rejected by the provider (HTTP 401/403)."""

    pass


class ProviderNotConfiguredError(ProviderAuthError):
    """No API key is configured, so no request was sent."""

    pass


class ProviderConnectionError(ProviderError):
    """Timeouts, DNS failures, refused connections.

    Retriable by default.
    """

    def __init__(self, message: str, provider_name: str = "", retriable: bool = True):
        super().__init__(message, provider_name)
        self.retriable = retriable


class ProviderAPIError(ProviderError):
    """Error response from the provider, either an HTTP status or an error body."""

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, provider_name)

    @property
    def retriable(self) -> bool:
        """429 (rate limit) and 5xx errors are generally retriable."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class ProviderDataError(ProviderError):
    """Malformed or unparseable response from the provider."""

    pass
