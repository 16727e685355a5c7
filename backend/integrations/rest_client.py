"""Shared HTTP plumbing for the JSON market data clients."""

import logging
import time as time_module
from typing import Any, Optional

import httpx

from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
    ProviderNotConfiguredError,
)

logger = logging.getLogger(__name__)

# Max retries for rate-limited requests
_MAX_RETRIES = 3
_BASE_DELAY_SECONDS = 1.0


class JsonRestClient:
    """Base class for API-key authenticated JSON providers.

    Subclasses set ``PROVIDER_NAME``, build auth headers in
    ``_auth_headers`` and may inspect decoded bodies in ``_check_body``
    for providers that report errors with HTTP 200.
    """

    PROVIDER_NAME = ""

    def __init__(self, api_key: Optional[str], base_url: str, timeout: float = 10.0):
        self._api_key = (api_key or "").strip()
        self._client = httpx.Client(
            base_url=base_url,
            headers=self._auth_headers(self._api_key) if self._api_key else {},
            timeout=timeout,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return self.PROVIDER_NAME

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _auth_headers(self, api_key: str) -> dict[str, str]:
        raise NotImplementedError

    def _check_body(self, data: Any) -> None:
        """Raise a ProviderError if ``data`` is an in-band error response."""

    def _get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET ``path`` and return the decoded JSON body.

        Raises:
            ProviderNotConfiguredError: If no API key is set.
            ProviderAuthError: On HTTP 401/403.
            ProviderAPIError: On other error statuses or in-band errors.
            ProviderConnectionError: On timeouts and connection failures.
            ProviderDataError: If the body is not JSON.
        """
        if not self.is_configured:
            raise ProviderNotConfiguredError(
                f"{self.PROVIDER_NAME} API key not configured. "
                "Run 'python scripts/setup_market_data.py' to store it.",
                provider_name=self.PROVIDER_NAME,
            )

        logger.debug("%s: GET %s %s", self.PROVIDER_NAME, path, params or {})
        try:
            response = self._request_with_retry("GET", path, params=params or {})
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise ProviderAuthError(
                    f"{self.PROVIDER_NAME} authentication failed (HTTP {status})",
                    provider_name=self.PROVIDER_NAME,
                ) from exc
            raise ProviderAPIError(
                f"{self.PROVIDER_NAME} API error (HTTP {status})",
                provider_name=self.PROVIDER_NAME,
                status_code=status,
            ) from exc
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ProviderConnectionError(
                f"{self.PROVIDER_NAME} connection failed: {exc}",
                provider_name=self.PROVIDER_NAME,
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderConnectionError(
                f"{self.PROVIDER_NAME} transport error: {exc}",
                provider_name=self.PROVIDER_NAME,
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderDataError(
                f"{self.PROVIDER_NAME} returned a non-JSON response for {path}",
                provider_name=self.PROVIDER_NAME,
            ) from exc

        self._check_body(data)
        return data

    def _request_with_retry(
        self, method: str, path: str, **kwargs
    ) -> httpx.Response:
        """Make an HTTP request with retry on 429 rate limit responses.

        The last 429 response is raised as ``HTTPStatusError`` once the
        retries are used up.
        """
        response: Optional[httpx.Response] = None
        for attempt in range(_MAX_RETRIES):
            response = self._client.request(method, path, **kwargs)
            if response.status_code != 429:
                break
            if attempt == _MAX_RETRIES - 1:
                break
            delay = _BASE_DELAY_SECONDS * (2 ** attempt)
            logger.warning(
                "%s: rate limited, retrying in %.1fs (attempt %d/%d)",
                self.PROVIDER_NAME, delay, attempt + 1, _MAX_RETRIES,
            )
            time_module.sleep(delay)

        response.raise_for_status()
        return response
