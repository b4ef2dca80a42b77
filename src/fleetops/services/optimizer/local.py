"""In-process route optimizer: geocode, build a travel matrix, sequence with OR-Tools."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Sequence

import httpx

from ...config import settings
from ...errors import OptimizationServiceError
from ...models.domain import DeliveryLocation, OptimizedRoute, StartLocation
from ..geospatial import haversine_km
from .google_maps import GoogleMapsClient
from .solver import solve_open_path

logger = logging.getLogger(__name__)


class LocalRouteOptimizer:
    """Serves the route optimizer contract without leaving the process.

    Without a Google Maps API key, deliveries that lack coordinates count as
    geocoding failures and travel costs come from straight-line distances.
    """

    def __init__(
        self,
        maps_client: GoogleMapsClient | None = None,
        average_speed_kmh: float | None = None,
        max_parallel_requests: int | None = None,
    ) -> None:
        if maps_client is None and settings.google_maps_api_key:
            maps_client = GoogleMapsClient()
        self.maps_client = maps_client
        self.average_speed_kmh = average_speed_kmh or settings.average_speed_kmh
        self.max_parallel_requests = max_parallel_requests or settings.geocoding_max_parallel_requests

    def _geocode_one(self, delivery: DeliveryLocation) -> DeliveryLocation:
        if delivery.has_coordinates or self.maps_client is None:
            return delivery
        location = self.maps_client.geocode(delivery.address)
        if location is None:
            return delivery
        latitude, longitude = location
        return replace(delivery, latitude=latitude, longitude=longitude)

    def geocode_missing(self, deliveries: Sequence[DeliveryLocation]) -> list[DeliveryLocation]:
        """Fill in coordinates for deliveries lacking them, preserving input order."""
        missing = sum(1 for delivery in deliveries if not delivery.has_coordinates)
        if missing == 0:
            return list(deliveries)
        if self.maps_client is None:
            logger.warning(f"{missing} deliveries have no coordinates and no Google Maps API key is configured")
            return list(deliveries)

        logger.info(f"Geocoding {missing} delivery addresses")
        workers = max(1, min(self.max_parallel_requests, missing))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._geocode_one, deliveries))

    def _haversine_matrix(
        self, points: Sequence[tuple[float, float]]
    ) -> tuple[list[list[float | None]], list[list[float | None]]]:
        n = len(points)
        distances: list[list[float | None]] = [[0.0] * n for _ in range(n)]
        durations: list[list[float | None]] = [[0.0] * n for _ in range(n)]
        for i in range(n):
            for j in range(n):
                if i == j:
                    continue
                lat1, lon1 = points[i]
                lat2, lon2 = points[j]
                distance_km = haversine_km(lat1, lon1, lat2, lon2)
                distances[i][j] = distance_km * 1000.0
                durations[i][j] = (distance_km / self.average_speed_kmh) * 3600.0
        return distances, durations

    def travel_matrix(
        self, points: Sequence[tuple[float, float]]
    ) -> tuple[list[list[float | None]], list[list[float | None]]]:
        """Square (meters, seconds) matrices over ``points``; point 0 is the start."""
        if self.maps_client is not None:
            try:
                road_distances, road_durations = self.maps_client.distance_matrix(points, points[1:])
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Distance matrix request failed: {e}. Using haversine fallback.")
            else:
                distances = [[0.0] + row for row in road_distances]
                durations = [[0.0] + row for row in road_durations]
                return distances, durations

        logger.info(f"Computing travel matrix for {len(points)} points using haversine fallback")
        return self._haversine_matrix(points)

    def optimize(self, deliveries: Sequence[DeliveryLocation], start_location: StartLocation) -> OptimizedRoute:
        if not deliveries:
            raise OptimizationServiceError("No deliveries provided")

        logger.info(f"Optimizing route for {len(deliveries)} deliveries")
        geocoded = self.geocode_missing(deliveries)
        valid = [delivery for delivery in geocoded if delivery.has_coordinates]
        failures = len(deliveries) - len(valid)
        if not valid:
            raise OptimizationServiceError("No valid delivery locations found")
        if failures:
            logger.warning(f"{failures} of {len(deliveries)} deliveries could not be geocoded and were dropped")

        if len(valid) == 1:
            return OptimizedRoute(
                optimized_order=[0],
                total_distance=0.0,
                total_duration=0,
                deliveries=valid,
                geocoding_failures=failures,
            )

        points = [(start_location.latitude, start_location.longitude)] + [
            (delivery.latitude, delivery.longitude) for delivery in valid
        ]
        distances, durations = self.travel_matrix(points)
        order = solve_open_path(distances)

        total_meters = 0.0
        total_seconds = 0.0
        previous_node = 0
        for stop_index in order:
            node = stop_index + 1
            distance = distances[previous_node][node]
            duration = durations[previous_node][node]
            if distance is not None and duration is not None:
                total_meters += distance
                total_seconds += duration
            previous_node = node

        return OptimizedRoute(
            optimized_order=order,
            total_distance=total_meters / 1000.0,
            total_duration=round(total_seconds / 60.0),
            deliveries=valid,
            geocoding_failures=failures,
        )
