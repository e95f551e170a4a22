"""
Shared request plumbing for provider clients (Meta Graph, Google).

Clients are stateless wrappers: each call builds a request, checks the status
and raises the client's error type carrying the provider's message.
No retries - a failed call fails the lead and the circuit breaker decides.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from leadsync.utils.errors import ProviderError

logger = logging.getLogger(__name__)

# All provider calls share a 10-second timeout per project standard
PROVIDER_TIMEOUT_SECONDS = 10.0


class ProviderClient(ABC):
    """Base class for thin provider clients over a shared httpx.AsyncClient."""

    error_class: type[ProviderError] = ProviderError

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=PROVIDER_TIMEOUT_SECONDS)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    @abstractmethod
    def _extract_error_message(self, payload: dict) -> Optional[str]:
        """Pull the human-readable message out of a provider error body."""
        ...

    async def _request(
        self,
        method: str,
        url: str,
        default_error: str,
        **kwargs,
    ) -> dict:
        """Send a request and return its JSON body, raising error_class on failure."""
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise self.error_class(f"{default_error}: {e}") from e

        if response.status_code >= 400:
            message = None
            try:
                message = self._extract_error_message(response.json())
            except ValueError:
                pass
            logger.warning(
                "%s request failed: %s %s -> %d",
                self.error_class.provider, method, url.split("?")[0], response.status_code,
                extra={"provider": self.error_class.provider},
            )
            raise self.error_class(message or default_error, status_code=response.status_code)

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            raise self.error_class(f"{default_error}: invalid JSON response")
        return data if isinstance(data, dict) else {"data": data}
