"""Google Maps Geocoding and Distance Matrix calls used by the in-process optimizer."""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from ...config import settings

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"

logger = logging.getLogger(__name__)


class GoogleMapsClient:
    def __init__(
        self,
        api_key: str | None = None,
        region: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.region = region or settings.geocoding_region
        self.timeout = timeout
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        # One client per call; geocoding runs from worker threads.
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0), transport=self._transport)

    def geocode(self, address: str) -> tuple[float, float] | None:
        """Return (lat, lng) for an address, or None when it cannot be resolved."""
        if not address or not address.strip():
            return None
        params = {"address": address, "key": self.api_key, "region": self.region}
        try:
            with self._get_client() as client:
                response = client.get(GEOCODE_URL, params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to geocode '{address}': {e}")
            return None

        if data.get("status") != "OK" or not data.get("results"):
            logger.warning(f"No geocoding result for '{address}' (status={data.get('status')})")
            return None
        location = data["results"][0]["geometry"]["location"]
        return float(location["lat"]), float(location["lng"])

    def distance_matrix(
        self,
        origins: Sequence[tuple[float, float]],
        destinations: Sequence[tuple[float, float]],
    ) -> tuple[list[list[float | None]], list[list[float | None]]]:
        """Return (distances in meters, durations in seconds); unreachable pairs are None."""
        params = {
            "origins": "|".join(f"{lat},{lng}" for lat, lng in origins),
            "destinations": "|".join(f"{lat},{lng}" for lat, lng in destinations),
            "key": self.api_key,
            "units": "metric",
            "mode": "driving",
        }
        with self._get_client() as client:
            response = client.get(DISTANCE_MATRIX_URL, params=params)
            response.raise_for_status()
            data = response.json()

        if data.get("status") != "OK":
            raise ValueError(f"Distance matrix request failed: {data.get('status')}")

        distances: list[list[float | None]] = []
        durations: list[list[float | None]] = []
        for row in data.get("rows", []):
            distance_row: list[float | None] = []
            duration_row: list[float | None] = []
            for element in row.get("elements", []):
                if element.get("status") == "OK":
                    distance_row.append(float(element["distance"]["value"]))
                    duration_row.append(float(element["duration"]["value"]))
                else:
                    distance_row.append(None)
                    duration_row.append(None)
            distances.append(distance_row)
            durations.append(duration_row)

        if len(distances) != len(origins) or any(len(row) != len(destinations) for row in distances):
            raise ValueError("Distance matrix response does not match the requested dimensions.")
        return distances, durations
