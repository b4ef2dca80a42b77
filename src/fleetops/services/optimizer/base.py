"""Route optimizer contract shared by the hosted and in-process backends."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from pydantic import ValidationError

from ...errors import OptimizationServiceError
from ...models.domain import DeliveryLocation, OptimizedRoute, StartLocation
from ...schemas.optimization import (
    DeliveryLocationModel,
    OptimizeRouteRequest,
    OptimizeRouteResponse,
    StartLocationModel,
)


class RouteOptimizer(Protocol):
    def optimize(self, deliveries: Sequence[DeliveryLocation], start_location: StartLocation) -> OptimizedRoute:
        """Return a visiting order over the deliveries it mirrors back; raise OptimizationServiceError on failure."""
        ...


def build_request_payload(deliveries: Sequence[DeliveryLocation], start_location: StartLocation) -> dict:
    request = OptimizeRouteRequest(
        deliveries=[DeliveryLocationModel.from_domain(d) for d in deliveries],
        start_location=StartLocationModel.from_domain(start_location),
    )
    return request.model_dump(by_alias=True)


def validate_optimized_route(route: OptimizedRoute) -> OptimizedRoute:
    """Reject results whose order is not a set of distinct indices into the mirrored deliveries."""
    count = len(route.deliveries)
    seen: set[int] = set()
    for index in route.optimized_order:
        if index < 0 or index >= count:
            raise OptimizationServiceError(f"Optimizer returned index {index} outside 0..{count - 1}")
        if index in seen:
            raise OptimizationServiceError(f"Optimizer returned index {index} more than once")
        seen.add(index)
    if route.total_distance < 0 or route.total_duration < 0:
        raise OptimizationServiceError("Optimizer returned a negative distance or duration")
    return route


def parse_response_payload(payload: Any) -> OptimizedRoute:
    try:
        response = OptimizeRouteResponse.model_validate(payload)
    except ValidationError as exc:
        raise OptimizationServiceError(f"Malformed optimizer response: {exc}") from exc
    return validate_optimized_route(response.to_domain())
