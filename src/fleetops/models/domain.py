"""Domain models for deliveries, drivers and daily route assignments."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterator, Optional


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AssignmentStatus(str, Enum):
    """Lifecycle of a daily route assignment.

    Assignments are created as ``planned``; ``in_progress`` and ``completed``
    are accepted on update but no service drives those transitions.
    """

    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(slots=True)
class Delivery:
    """A delivery job as stored in the ``deliveries`` table."""

    id: str
    delivery_number: str
    customer_name: str
    customer_address: str
    status: str
    scheduled_date: Optional[date]
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_pending(self) -> bool:
        return self.status == DeliveryStatus.PENDING.value


@dataclass(slots=True)
class Driver:
    id: str
    first_name: str
    last_name: str
    email: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(slots=True)
class DailyRouteAssignment:
    """Binds one driver to a set of deliveries for one calendar date."""

    id: str
    assignment_date: date
    driver_id: str
    delivery_ids: list[str]
    optimized_order: list[int] = field(default_factory=list)
    total_distance: float = 0.0
    estimated_duration: float = 0.0
    status: str = AssignmentStatus.PLANNED.value
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_optimized(self) -> bool:
        return bool(self.optimized_order)


@dataclass(slots=True, frozen=True)
class DateRange:
    """Inclusive calendar date range."""

    start: date
    end: date

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)


@dataclass(slots=True)
class DateGroup:
    """Per-day view over assignments; recomputed on every read."""

    date: date
    assignments: list[DailyRouteAssignment]
    total_drivers: int
    total_deliveries: int
    total_distance: float
    total_duration: float
    unassigned_deliveries: int


@dataclass(slots=True, frozen=True)
class StartLocation:
    latitude: float
    longitude: float
    address: str = ""


@dataclass(slots=True)
class DeliveryLocation:
    """A stop as exchanged with the route optimizer."""

    id: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def from_delivery(cls, delivery: Delivery) -> "DeliveryLocation":
        return cls(
            id=delivery.id,
            address=delivery.customer_address,
            latitude=delivery.latitude,
            longitude=delivery.longitude,
        )


@dataclass(slots=True)
class OptimizedRoute:
    """Result of one optimization call.

    ``optimized_order`` indexes into ``deliveries``, which is the list mirrored
    back by the optimizer (deliveries that could not be geocoded are dropped).
    """

    optimized_order: list[int]
    total_distance: float
    total_duration: float
    deliveries: list[DeliveryLocation]
    geocoding_failures: Optional[int] = None

    def ordered_deliveries(self) -> list[DeliveryLocation]:
        return [self.deliveries[index] for index in self.optimized_order]


@dataclass(slots=True)
class SavedRoute:
    """Feedback from saving an optimized route; the name is not persisted."""

    name: str
    driver_id: str
    vehicle_id: str
    updated_delivery_ids: list[str]
    failed_delivery_ids: list[str]


@dataclass(slots=True)
class DateOptimizationSummary:
    date: date
    attempted: int
    optimized: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
