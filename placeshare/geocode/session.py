"""HTTP session shared by geocoding clients, with retries on transport errors."""
from __future__ import annotations

import asyncio
import contextlib
from typing import Any, AsyncIterator, Dict, Optional

import httpx
import orjson
import structlog

from placeshare.observability.metrics import MetricsRegistry
from placeshare.observability.tracing import log_retry, span
from placeshare.workflow.errors import GeocodingError

LOGGER = structlog.get_logger(__name__)


class GeocodingSession:
    """Wraps an ``httpx.AsyncClient`` and turns HTTP trouble into ``GeocodingError``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._client = client
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = backoff_seconds
        self._metrics = metrics or MetricsRegistry()

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def _do_get(self, url: str, params: Dict[str, str]) -> httpx.Response:
        delay = self._backoff_seconds
        for attempt in range(1, self._max_attempts + 1):
            try:
                with span(name="geocode", target=url):
                    return await self._client.get(url, params=params)
            except httpx.TransportError as exc:
                self._metrics.incr("geocode_retries")
                log_retry(attempt=attempt, url=url, reason=str(exc))
                if attempt == self._max_attempts:
                    raise
                await asyncio.sleep(delay)
                delay *= 2

    async def get_json(self, url: str, *, params: Dict[str, str], failure_message: str) -> Any:
        """GET ``url`` and decode its JSON body, raising ``GeocodingError(failure_message)``."""
        try:
            response = await self._do_get(url, params)
        except httpx.HTTPError as exc:
            LOGGER.warning("geocode_transport_failed", url=url, error=str(exc))
            raise GeocodingError(failure_message) from exc
        if not response.is_success:
            LOGGER.warning("geocode_bad_status", url=url, status=response.status_code)
            raise GeocodingError(failure_message)
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            LOGGER.warning("geocode_bad_payload", url=url)
            raise GeocodingError(failure_message) from exc


@contextlib.asynccontextmanager
async def create_geocoding_session(
    *,
    user_agent: str,
    timeout: float,
    max_attempts: int = 3,
    metrics: Optional[MetricsRegistry] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[GeocodingSession]:
    """Yield a configured `GeocodingSession` for the duration of the context."""
    headers = {"User-Agent": user_agent}
    async with httpx.AsyncClient(headers=headers, timeout=timeout, transport=transport) as client:
        yield GeocodingSession(client, max_attempts=max_attempts, metrics=metrics)
