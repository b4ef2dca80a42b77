"""In-memory stand-ins for the Supabase query builder and the route optimizer."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from fleetops.errors import OptimizationServiceError
from fleetops.models.domain import DeliveryLocation, OptimizedRoute, StartLocation


@dataclass
class FakeResponse:
    data: list[dict]


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: list[Callable[[dict], bool]] = []
        self.orders: list[tuple[str, bool]] = []
        self.limit_count: Optional[int] = None

    def select(self, columns: str = "*") -> "FakeQuery":
        self.op = "select"
        return self

    def insert(self, payload: dict) -> "FakeQuery":
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload: dict) -> "FakeQuery":
        self.op = "update"
        self.payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: Sequence[Any]) -> "FakeQuery":
        allowed = list(values)
        self.filters.append(lambda row: row.get(column) in allowed)
        return self

    def gte(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: row.get(column) is not None and row[column] >= value)
        return self

    def lte(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda row: row.get(column) is not None and row[column] <= value)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.limit_count = count
        return self

    def _matching(self) -> list[dict]:
        return [row for row in self.db.tables.setdefault(self.table, []) if all(f(row) for f in self.filters)]

    def execute(self) -> FakeResponse:
        self.db.requests.append((self.table, self.op))
        if (self.table, self.op) in self.db.failures or self.table in self.db.failures:
            raise RuntimeError(f"simulated failure on {self.table} {self.op}")

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "insert":
            row = dict(self.payload)
            row.setdefault("id", f"{self.table}-{next(self.db.ids)}")
            row.setdefault("created_at", f"2024-01-01T00:00:{len(rows):02d}+00:00")
            rows.append(row)
            return FakeResponse([dict(row)])

        matching = self._matching()
        if self.op == "update":
            for row in matching:
                row.update(self.payload)
            return FakeResponse([dict(row) for row in matching])
        if self.op == "delete":
            self.db.tables[self.table] = [row for row in rows if row not in matching]
            return FakeResponse([dict(row) for row in matching])

        for column, desc in reversed(self.orders):
            matching.sort(key=lambda row: str(row.get(column) or ""), reverse=desc)
        if self.limit_count is not None:
            matching = matching[: self.limit_count]
        return FakeResponse([dict(row) for row in matching])


class FakeSupabase:
    """Enough of the supabase-py client for the repositories.

    ``failures`` holds table names or ``(table, op)`` pairs whose requests raise.
    """

    def __init__(self, **tables: list[dict]) -> None:
        self.tables: dict[str, list[dict]] = {name: list(rows) for name, rows in tables.items()}
        self.failures: set[Any] = set()
        self.requests: list[tuple[str, str]] = []
        self.ids = itertools.count(1)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


class FakeOptimizer:
    """Visits deliveries in reverse; fails when a delivery id listed in ``fail_for`` is requested."""

    def __init__(self, fail_for: Sequence[str] = (), geocode: Optional[dict[str, tuple[float, float]]] = None) -> None:
        self.fail_for = set(fail_for)
        self.geocode = geocode or {}
        self.calls: list[list[str]] = []

    def optimize(self, deliveries: Sequence[DeliveryLocation], start_location: StartLocation) -> OptimizedRoute:
        ids = [delivery.id for delivery in deliveries]
        self.calls.append(ids)
        if self.fail_for.intersection(ids):
            raise OptimizationServiceError("optimizer unavailable")
        located = []
        for delivery in deliveries:
            if delivery.has_coordinates:
                located.append(delivery)
            elif delivery.id in self.geocode:
                lat, lng = self.geocode[delivery.id]
                located.append(DeliveryLocation(delivery.id, delivery.address, lat, lng))
        return OptimizedRoute(
            optimized_order=list(reversed(range(len(located)))),
            total_distance=float(len(located)),
            total_duration=10.0 * len(located),
            deliveries=located,
            geocoding_failures=len(deliveries) - len(located),
        )


class VanishingAssignmentOptimizer(FakeOptimizer):
    """Deletes one assignment row while routes are being computed, as a concurrent user would."""

    def __init__(self, db: FakeSupabase, assignment_id: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.db = db
        self.assignment_id = assignment_id

    def optimize(self, deliveries: Sequence[DeliveryLocation], start_location: StartLocation) -> OptimizedRoute:
        rows = self.db.tables["daily_route_assignments"]
        self.db.tables["daily_route_assignments"] = [row for row in rows if row["id"] != self.assignment_id]
        return super().optimize(deliveries, start_location)


def delivery_row(
    delivery_id: str,
    scheduled_date: str,
    status: str = "pending",
    latitude: Optional[float] = 28.6,
    longitude: Optional[float] = 77.2,
    created_at: Optional[str] = None,
) -> dict:
    return {
        "id": delivery_id,
        "delivery_number": f"DN-{delivery_id}",
        "customer_name": f"Customer {delivery_id}",
        "customer_address": f"{delivery_id} Main Street",
        "status": status,
        "scheduled_date": scheduled_date,
        "latitude": latitude,
        "longitude": longitude,
        "created_at": created_at or "2024-01-01T00:00:00+00:00",
    }


def assignment_row(
    assignment_id: str,
    assignment_date: str,
    driver_id: str,
    delivery_ids: Sequence[str],
    optimized_order: Sequence[int] = (),
    total_distance: float = 0,
    estimated_duration: float = 0,
    created_at: str = "2024-01-01T00:00:00+00:00",
) -> dict:
    return {
        "id": assignment_id,
        "assignment_date": assignment_date,
        "driver_id": driver_id,
        "delivery_ids": list(delivery_ids),
        "optimized_order": list(optimized_order),
        "total_distance": total_distance,
        "estimated_duration": estimated_duration,
        "status": "planned",
        "created_by": None,
        "created_at": created_at,
        "updated_at": None,
    }
