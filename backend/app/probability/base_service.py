"""Shared async HTTP plumbing for the Open-Meteo endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class OpenMeteoService:
    """
    Owns (or borrows) an `httpx.AsyncClient` and performs one GET per call.

    Pass `client` to share a connection pool or to inject a
    `httpx.MockTransport` in tests; an injected client is never closed here.
    """

    service_name = "open-meteo"

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout if timeout is not None else settings.WEATHER_FETCH_TIMEOUT
        self._http_client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._owns_client and self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def _get_json(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET `base_url` with `params`; any failure → ExternalServiceError."""
        client = await self._get_client()
        try:
            response = await client.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("%s API error: HTTP %d", self.service_name, status)
            raise ExternalServiceError(
                self.service_name, f"HTTP {status}", status_code=status,
            ) from e
        except httpx.TimeoutException as e:
            logger.error("%s request timed out after %.1fs", self.service_name, self.timeout)
            raise ExternalServiceError(self.service_name, "timeout") from e
        except httpx.HTTPError as e:
            logger.error("%s request failed: %s", self.service_name, e)
            raise ExternalServiceError(self.service_name, str(e)) from e
        except ValueError as e:
            logger.error("%s returned invalid JSON: %s", self.service_name, e)
            raise ExternalServiceError(self.service_name, "invalid JSON body") from e

        if not isinstance(data, dict):
            raise ExternalServiceError(self.service_name, "unexpected response shape")
        return data
