"""Daily route assignment services."""

from __future__ import annotations

from ...data.deliveries_repository import DeliveryRepository
from ...data.drivers_repository import DriverDirectory
from ...persistence.assignments import AssignmentRepository
from ..optimizer import get_route_optimizer
from .engine import DailyAssignmentEngine


def get_assignment_engine() -> DailyAssignmentEngine:
    return DailyAssignmentEngine(
        assignments=AssignmentRepository(),
        deliveries=DeliveryRepository(),
        drivers=DriverDirectory(),
        optimizer=get_route_optimizer(),
    )


__all__ = ["DailyAssignmentEngine", "get_assignment_engine"]
