"""Route optimizer backends."""

from __future__ import annotations

from ...config import settings
from .base import RouteOptimizer
from .edge_function import EdgeFunctionOptimizer
from .local import LocalRouteOptimizer


def get_route_optimizer() -> RouteOptimizer:
    """Build the optimizer selected by ``settings.optimizer_backend``."""
    if settings.optimizer_backend == "edge_function":
        return EdgeFunctionOptimizer()
    return LocalRouteOptimizer()


__all__ = ["RouteOptimizer", "EdgeFunctionOptimizer", "LocalRouteOptimizer", "get_route_optimizer"]
