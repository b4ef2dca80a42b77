"""Ad hoc route optimization sessions, independent of the daily assignment board."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Optional, Sequence

from ..data.deliveries_repository import DeliveryRepository
from ..errors import NoDeliveriesSelectedError, NoRouteToSaveError, StoreError
from ..models.domain import DeliveryLocation, OptimizedRoute, SavedRoute, StartLocation
from .maps_link import build_maps_link
from .optimizer.base import RouteOptimizer

logger = logging.getLogger(__name__)


class RouteOptimizationSession:
    """Holds at most one optimized route at a time.

    A failed optimization leaves the previous route in place. Saving only
    writes geocoded coordinates back to the deliveries; the route itself
    and its name are not persisted.
    """

    def __init__(
        self,
        optimizer: RouteOptimizer,
        deliveries: DeliveryRepository,
        session_id: Optional[str] = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.optimizer = optimizer
        self.deliveries = deliveries
        self._optimized_route: Optional[OptimizedRoute] = None

    @property
    def optimized_route(self) -> Optional[OptimizedRoute]:
        return self._optimized_route

    def optimize_route(
        self, deliveries: Sequence[DeliveryLocation], start_location: StartLocation
    ) -> OptimizedRoute:
        if not deliveries:
            raise NoDeliveriesSelectedError()

        route = self.optimizer.optimize(list(deliveries), start_location)
        self._optimized_route = route
        logger.info(
            f"Session {self.session_id}: optimized route for {len(deliveries)} deliveries, "
            f"{route.total_distance:.1f} km, {route.total_duration:.0f} minutes"
        )
        return route

    def save_optimized_route(
        self,
        name: str,
        driver_id: str,
        vehicle_id: str,
        start_location: StartLocation,
    ) -> SavedRoute:
        route = self._optimized_route
        if route is None:
            raise NoRouteToSaveError()

        updated: list[str] = []
        failed: list[str] = []
        for delivery in route.deliveries:
            if not delivery.has_coordinates:
                continue
            try:
                self.deliveries.update_coordinates(delivery.id, delivery.latitude, delivery.longitude)
            except StoreError as exc:
                logger.warning(f"Session {self.session_id}: could not store coordinates for {delivery.id}: {exc}")
                failed.append(delivery.id)
            else:
                updated.append(delivery.id)

        logger.info(
            f"Session {self.session_id}: saved route '{name}' for driver {driver_id} / vehicle {vehicle_id} "
            f"starting at {start_location.address or (start_location.latitude, start_location.longitude)}; "
            f"{len(updated)} coordinates stored"
        )
        return SavedRoute(
            name=name,
            driver_id=driver_id,
            vehicle_id=vehicle_id,
            updated_delivery_ids=updated,
            failed_delivery_ids=failed,
        )

    def clear_optimized_route(self) -> None:
        self._optimized_route = None

    def maps_link(self, origin: StartLocation) -> Optional[str]:
        route = self._optimized_route
        if route is None:
            return None
        ordered_ids = [delivery.id for delivery in route.ordered_deliveries()]
        return build_maps_link(route.deliveries, (origin.latitude, origin.longitude), ordered_ids)


class SessionRegistry:
    """Process-local store of optimization sessions keyed by id."""

    def __init__(self) -> None:
        self._sessions: dict[str, RouteOptimizationSession] = {}
        self._lock = threading.Lock()

    def add(self, session: RouteOptimizationSession) -> RouteOptimizationSession:
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> RouteOptimizationSession:
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError as exc:
                raise LookupError(f"Optimization session '{session_id}' not found") from exc

    def discard(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def new_session() -> RouteOptimizationSession:
    from .optimizer import get_route_optimizer

    return RouteOptimizationSession(optimizer=get_route_optimizer(), deliveries=DeliveryRepository())
