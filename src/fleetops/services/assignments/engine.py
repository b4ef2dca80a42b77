"""Daily route assignment orchestration."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Any, Optional, Sequence

from ...config import settings
from ...data.deliveries_repository import DeliveryRepository
from ...data.drivers_repository import DriverDirectory
from ...errors import (
    AssignmentConflictError,
    AssignmentNotFoundError,
    AssignmentValidationError,
    NoAssignmentsForDateError,
    NoValidCoordinatesError,
    OptimizationServiceError,
    StoreError,
)
from ...models.domain import (
    DailyRouteAssignment,
    DateOptimizationSummary,
    DateRange,
    Delivery,
    DeliveryLocation,
    OptimizedRoute,
    StartLocation,
)
from ...persistence.assignments import AssignmentRepository
from ..maps_link import build_maps_link
from ..optimizer.base import RouteOptimizer, validate_optimized_route
from .board import RouteBoard, assigned_delivery_ids
from .date_range import QuickFilter, resolve_date_range

logger = logging.getLogger(__name__)


def default_start_location() -> StartLocation:
    return StartLocation(
        latitude=settings.depot_latitude,
        longitude=settings.depot_longitude,
        address=settings.depot_address,
    )


def reconcile_optimized_order(delivery_ids: Sequence[str], route: OptimizedRoute) -> list[int]:
    """Map the optimizer's order back onto indices of ``delivery_ids``.

    The optimizer indexes the deliveries it mirrors back, which may omit
    deliveries it could not geocode. Indices of deliveries it did not order
    are appended in their original order, so the result is always a
    permutation of ``range(len(delivery_ids))``.
    """
    validate_optimized_route(route)
    position = {delivery_id: index for index, delivery_id in enumerate(delivery_ids)}
    order: list[int] = []
    placed: set[int] = set()
    for route_index in route.optimized_order:
        index = position.get(route.deliveries[route_index].id)
        if index is None or index in placed:
            continue
        order.append(index)
        placed.add(index)
    order.extend(index for index in range(len(delivery_ids)) if index not in placed)
    return order


def order_assignment_stops(assignment: DailyRouteAssignment, deliveries: Sequence[Delivery]) -> list[Delivery]:
    """Deliveries of an assignment in visiting order: ``optimized_order`` when set, else ``delivery_ids`` order."""
    by_id = {delivery.id: delivery for delivery in deliveries}
    if assignment.is_optimized:
        ordered_ids = [
            assignment.delivery_ids[index]
            for index in assignment.optimized_order
            if 0 <= index < len(assignment.delivery_ids)
        ]
        placed = set(ordered_ids)
        ordered_ids.extend(i for i in assignment.delivery_ids if i not in placed)
    else:
        ordered_ids = list(assignment.delivery_ids)
    return [by_id[delivery_id] for delivery_id in ordered_ids if delivery_id in by_id]


def _check_unique(delivery_ids: Sequence[str]) -> None:
    duplicates = sorted(d for d, count in Counter(delivery_ids).items() if count > 1)
    if duplicates:
        raise AssignmentValidationError(f"Deliveries listed more than once: {', '.join(duplicates)}")


class DailyAssignmentEngine:
    """Date-bounded view of delivery assignment state plus per-date route optimization.

    Double assignment is prevented by checking requested deliveries against
    assignments read immediately before the insert. The check and the insert
    are separate requests, so two concurrent writers can still both succeed.
    """

    def __init__(
        self,
        assignments: AssignmentRepository,
        deliveries: DeliveryRepository,
        drivers: DriverDirectory,
        optimizer: RouteOptimizer,
        start_location: StartLocation | None = None,
    ) -> None:
        self.assignments = assignments
        self.deliveries = deliveries
        self.drivers = drivers
        self.optimizer = optimizer
        self.start_location = start_location or default_start_location()

    # Reads

    def load(self, date_range: DateRange, *, include_drivers: bool = True) -> RouteBoard:
        if date_range.is_empty:
            return RouteBoard(date_range=date_range, assignments=[], deliveries=[], drivers={})
        assignments = self.assignments.list_for_date_range(date_range)
        deliveries = self.deliveries.list_for_date_range(date_range)
        drivers = self.drivers.by_id() if include_drivers else {}
        return RouteBoard(date_range=date_range, assignments=assignments, deliveries=deliveries, drivers=drivers)

    def load_range(
        self,
        quick_filter: "str | QuickFilter | None" = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        today: Optional[date] = None,
    ) -> RouteBoard:
        return self.load(resolve_date_range(quick_filter, date_from, date_to, today))

    def available_deliveries_for_date(self, on_date: date) -> list[Delivery]:
        board = self.load(DateRange(on_date, on_date), include_drivers=False)
        return board.available_deliveries(on_date)

    # Writes

    def create_assignment(
        self,
        assignment_date: date,
        driver_id: str,
        delivery_ids: Sequence[str],
        created_by: Optional[str] = None,
        loaded_range: DateRange | None = None,
    ) -> DailyRouteAssignment:
        """Persist a planned assignment after checking none of the deliveries is already assigned.

        The conflict check covers assignments dated ``assignment_date`` plus,
        when given, the caller's loaded range.
        """
        if not driver_id or not driver_id.strip():
            raise AssignmentValidationError("A driver must be selected.")
        if not delivery_ids:
            raise AssignmentValidationError("Select at least one delivery for the assignment.")
        _check_unique(delivery_ids)

        found = {delivery.id: delivery for delivery in self.deliveries.get_many(delivery_ids)}
        missing = [delivery_id for delivery_id in delivery_ids if delivery_id not in found]
        if missing:
            raise AssignmentValidationError(f"Deliveries not found: {', '.join(missing)}")
        not_pending = [delivery_id for delivery_id in delivery_ids if not found[delivery_id].is_pending]
        if not_pending:
            raise AssignmentValidationError(f"Deliveries are not pending: {', '.join(not_pending)}")

        scope = DateRange(assignment_date, assignment_date)
        if loaded_range is not None and not loaded_range.is_empty:
            scope = DateRange(min(scope.start, loaded_range.start), max(scope.end, loaded_range.end))

        assigned = assigned_delivery_ids(self.assignments.list_for_date_range(scope))
        conflicting = [delivery_id for delivery_id in delivery_ids if delivery_id in assigned]
        if conflicting:
            raise AssignmentConflictError(conflicting)

        assignment = self.assignments.insert(
            assignment_date=assignment_date,
            driver_id=driver_id,
            delivery_ids=list(delivery_ids),
            created_by=created_by,
        )
        logger.info(
            f"Created assignment {assignment.id} for driver {driver_id} on {assignment_date} "
            f"with {len(delivery_ids)} deliveries"
        )
        return assignment

    def update_assignment(self, assignment_id: str, fields: dict[str, Any]) -> DailyRouteAssignment:
        """Apply a partial update, keeping ``optimized_order`` a permutation of ``delivery_ids``.

        Changing ``delivery_ids`` without a new order clears the stale route
        and its totals.
        """
        fields = dict(fields)
        if "delivery_ids" in fields or "optimized_order" in fields:
            current = self.assignments.get(assignment_id)
            delivery_ids = list(fields.get("delivery_ids", current.delivery_ids))
            _check_unique(delivery_ids)
            if "optimized_order" in fields:
                order = list(fields["optimized_order"] or [])
                if order and sorted(order) != list(range(len(delivery_ids))):
                    raise AssignmentValidationError(
                        f"optimized_order must be a permutation of 0..{len(delivery_ids) - 1}"
                    )
            elif delivery_ids != current.delivery_ids:
                fields["optimized_order"] = []
                fields.setdefault("total_distance", 0.0)
                fields.setdefault("estimated_duration", 0.0)
        return self.assignments.update(assignment_id, fields)

    def delete_assignment(self, assignment_id: str) -> None:
        self.assignments.delete(assignment_id)
        logger.info(f"Deleted assignment {assignment_id}; its deliveries are available again")

    # Optimization

    def optimize_routes_for_date(self, assignment_date: date) -> DateOptimizationSummary:
        """Optimize every assignment of a date, one at a time in list order.

        A failing assignment is logged and skipped; earlier write-backs stay in place.
        """
        assignments = self.assignments.list_for_date(assignment_date)
        if not assignments:
            raise NoAssignmentsForDateError(assignment_date)

        summary = DateOptimizationSummary(date=assignment_date, attempted=len(assignments))
        for assignment in assignments:
            if not assignment.delivery_ids:
                logger.info(f"Assignment {assignment.id} has no deliveries, skipping optimization")
                summary.skipped.append(assignment.id)
                continue
            try:
                optimized = self._optimize_assignment(assignment)
            except (AssignmentNotFoundError, OptimizationServiceError, StoreError) as exc:
                logger.warning(f"Optimization failed for assignment {assignment.id} on {assignment_date}: {exc}")
                optimized = False
            except Exception as exc:
                logger.exception(f"Unexpected error optimizing assignment {assignment.id} on {assignment_date}: {exc}")
                optimized = False
            (summary.optimized if optimized else summary.skipped).append(assignment.id)

        logger.info(
            f"Optimized {len(summary.optimized)}/{summary.attempted} assignments for {assignment_date} "
            f"({len(summary.skipped)} skipped)"
        )
        return summary

    def _optimize_assignment(self, assignment: DailyRouteAssignment) -> bool:
        deliveries = self.deliveries.get_many(assignment.delivery_ids)
        found = {delivery.id for delivery in deliveries}
        missing = [delivery_id for delivery_id in assignment.delivery_ids if delivery_id not in found]
        if missing:
            logger.warning(
                f"Assignment {assignment.id} references missing deliveries {missing}, skipping optimization"
            )
            return False

        route = self.optimizer.optimize(
            [DeliveryLocation.from_delivery(delivery) for delivery in deliveries],
            self.start_location,
        )
        order = reconcile_optimized_order(assignment.delivery_ids, route)
        self.assignments.update(
            assignment.id,
            {
                "optimized_order": order,
                "total_distance": route.total_distance,
                "estimated_duration": route.total_duration,
            },
        )
        self._backfill_coordinates(deliveries, route)
        return True

    def _backfill_coordinates(self, deliveries: Sequence[Delivery], route: OptimizedRoute) -> None:
        known = {delivery.id: delivery for delivery in deliveries}
        for location in route.deliveries:
            original = known.get(location.id)
            if original is None or original.has_coordinates or not location.has_coordinates:
                continue
            try:
                self.deliveries.update_coordinates(location.id, location.latitude, location.longitude)
            except StoreError as exc:
                logger.warning(f"Could not store geocoded coordinates for delivery {location.id}: {exc}")

    # Mapping

    def assignment_stops(self, assignment_id: str) -> tuple[DailyRouteAssignment, list[Delivery]]:
        assignment = self.assignments.get(assignment_id)
        deliveries = self.deliveries.get_many(assignment.delivery_ids)
        return assignment, order_assignment_stops(assignment, deliveries)

    def maps_link_for_assignment(
        self, assignment_id: str, origin: StartLocation | None = None
    ) -> tuple[str, int]:
        """Return the directions link and the number of stops it contains."""
        _, stops = self.assignment_stops(assignment_id)
        origin = origin or self.start_location
        url = build_maps_link(stops, (origin.latitude, origin.longitude))
        if url is None:
            raise NoValidCoordinatesError(f"No deliveries with valid coordinates in assignment {assignment_id}")
        return url, sum(1 for stop in stops if stop.has_coordinates)
