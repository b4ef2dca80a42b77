"""HTTP client for the hosted ``route-optimizer`` Supabase function."""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from ...config import settings
from ...errors import OptimizationServiceError
from ...models.domain import DeliveryLocation, OptimizedRoute, StartLocation
from .base import build_request_payload, parse_response_payload

logger = logging.getLogger(__name__)


class EdgeFunctionOptimizer:
    """Invokes the hosted optimizer once per call. Failures are not retried."""

    def __init__(
        self,
        supabase_url: str | None = None,
        api_key: str | None = None,
        function_name: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        base_url = supabase_url or settings.supabase_url
        key = api_key or settings.supabase_key
        if not base_url or not key:
            raise ValueError("Supabase URL and key are required to call the route-optimizer function.")
        self.url = f"{base_url.rstrip('/')}/functions/v1/{function_name or settings.route_optimizer_function}"
        self.api_key = key
        self.timeout = timeout if timeout is not None else settings.optimizer_timeout_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0), transport=self._transport)

    def optimize(self, deliveries: Sequence[DeliveryLocation], start_location: StartLocation) -> OptimizedRoute:
        payload = build_request_payload(deliveries, start_location)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "apikey": self.api_key,
        }
        logger.info(f"Invoking route optimizer for {len(deliveries)} deliveries")
        with self._get_client() as client:
            try:
                response = client.post(self.url, json=payload, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise OptimizationServiceError(
                    f"Route optimizer returned {exc.response.status_code}: {exc.response.text[:200]}"
                ) from exc
            except httpx.HTTPError as exc:
                raise OptimizationServiceError(f"Failed to reach route optimizer at {self.url}: {exc}") from exc

            try:
                body = response.json()
            except ValueError as exc:
                raise OptimizationServiceError("Route optimizer returned a non-JSON body") from exc

        return parse_response_payload(body)
