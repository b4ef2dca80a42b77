"""Derived views over loaded assignments and deliveries.

Everything here is a pure function of the loaded collections and is
recomputed on every read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from ...models.domain import DailyRouteAssignment, DateGroup, DateRange, Delivery, Driver

UNKNOWN_DRIVER = "Unknown Driver"


def assigned_delivery_ids(assignments: Iterable[DailyRouteAssignment]) -> set[str]:
    assigned: set[str] = set()
    for assignment in assignments:
        assigned.update(assignment.delivery_ids)
    return assigned


def available_deliveries(
    deliveries: Iterable[Delivery],
    assigned_ids: set[str],
    on_date: date,
) -> list[Delivery]:
    """Pending deliveries scheduled on ``on_date`` that no loaded assignment references, in source order."""
    return [
        delivery
        for delivery in deliveries
        if delivery.scheduled_date == on_date and delivery.is_pending and delivery.id not in assigned_ids
    ]


def driver_display_name(drivers: Mapping[str, Driver], driver_id: str) -> str:
    driver = drivers.get(driver_id)
    return driver.full_name if driver and driver.full_name else UNKNOWN_DRIVER


def _matches_search(assignment: DailyRouteAssignment, drivers: Mapping[str, Driver], needle: str) -> bool:
    return needle in driver_display_name(drivers, assignment.driver_id).lower()


def summarize_date(
    day: date,
    assignments: Sequence[DailyRouteAssignment],
    unassigned_count: int,
) -> DateGroup:
    return DateGroup(
        date=day,
        assignments=list(assignments),
        total_drivers=len({assignment.driver_id for assignment in assignments}),
        total_deliveries=sum(len(assignment.delivery_ids) for assignment in assignments),
        total_distance=sum(assignment.total_distance or 0.0 for assignment in assignments),
        total_duration=sum(assignment.estimated_duration or 0.0 for assignment in assignments),
        unassigned_deliveries=unassigned_count,
    )


def build_date_groups(
    date_range: DateRange,
    assignments: Sequence[DailyRouteAssignment],
    deliveries: Sequence[Delivery],
    drivers: Mapping[str, Driver],
    search: Optional[str] = None,
) -> list[DateGroup]:
    """One group per day of the range, ascending.

    Without a search term, days with no assignments and no unassigned
    deliveries are dropped. With a search term, each group keeps only the
    assignments whose driver name contains it, and groups left without
    assignments are dropped.
    """
    assigned_ids = assigned_delivery_ids(assignments)
    by_date: dict[date, list[DailyRouteAssignment]] = {}
    for assignment in assignments:
        by_date.setdefault(assignment.assignment_date, []).append(assignment)

    needle = search.strip().lower() if search and search.strip() else None
    groups: list[DateGroup] = []
    for day in date_range.days():
        day_assignments = by_date.get(day, [])
        unassigned = len(available_deliveries(deliveries, assigned_ids, day))

        if needle is not None:
            day_assignments = [a for a in day_assignments if _matches_search(a, drivers, needle)]
            if not day_assignments:
                continue
        elif not day_assignments and unassigned == 0:
            continue

        groups.append(summarize_date(day, day_assignments, unassigned))
    return groups


def format_duration(minutes: float) -> str:
    total = int(round(minutes or 0))
    hours, mins = divmod(total, 60)
    return f"{hours}h {mins}m" if hours > 0 else f"{mins}m"


@dataclass(slots=True)
class RouteBoard:
    """Snapshot of one load of the assignment board."""

    date_range: DateRange
    assignments: list[DailyRouteAssignment]
    deliveries: list[Delivery]
    drivers: dict[str, Driver] = field(default_factory=dict)

    def assigned_delivery_ids(self) -> set[str]:
        return assigned_delivery_ids(self.assignments)

    def available_deliveries(self, on_date: date) -> list[Delivery]:
        return available_deliveries(self.deliveries, self.assigned_delivery_ids(), on_date)

    def date_groups(self, search: Optional[str] = None) -> list[DateGroup]:
        return build_date_groups(self.date_range, self.assignments, self.deliveries, self.drivers, search)
