"""Database persistence for daily route assignments."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Sequence

from ..data.query import coerce_float, parse_date, parse_timestamp, require_client, run_query
from ..errors import AssignmentNotFoundError
from ..models.domain import AssignmentStatus, DailyRouteAssignment, DateRange

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "driver_id",
        "delivery_ids",
        "optimized_order",
        "total_distance",
        "estimated_duration",
        "status",
    }
)


def assignment_from_row(row: dict) -> DailyRouteAssignment:
    assignment_date = parse_date(row.get("assignment_date"))
    if assignment_date is None:
        raise ValueError(f"Assignment {row.get('id')} has no assignment_date")
    return DailyRouteAssignment(
        id=str(row["id"]),
        assignment_date=assignment_date,
        driver_id=str(row["driver_id"]),
        delivery_ids=[str(value) for value in (row.get("delivery_ids") or [])],
        optimized_order=[int(value) for value in (row.get("optimized_order") or [])],
        total_distance=coerce_float(row.get("total_distance")) or 0.0,
        estimated_duration=coerce_float(row.get("estimated_duration")) or 0.0,
        status=row.get("status") or AssignmentStatus.PLANNED.value,
        created_by=row.get("created_by"),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
    )


def _serialize_fields(fields: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, AssignmentStatus):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        payload[key] = value
    return payload


class AssignmentRepository:
    """CRUD over the ``daily_route_assignments`` table.

    Listing is ordered by assignment date, then newest first within a date.
    """

    table = "daily_route_assignments"

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        return require_client(self._client)

    def _rows_to_assignments(self, rows: list[dict]) -> list[DailyRouteAssignment]:
        assignments: list[DailyRouteAssignment] = []
        for row in rows:
            try:
                assignments.append(assignment_from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid assignment row {row.get('id', 'unknown')}: {e}")
        return assignments

    def list_for_date_range(self, date_range: DateRange) -> list[DailyRouteAssignment]:
        if date_range.is_empty:
            return []
        query = (
            self.client.table(self.table)
            .select("*")
            .gte("assignment_date", date_range.start.isoformat())
            .lte("assignment_date", date_range.end.isoformat())
            .order("assignment_date")
            .order("created_at", desc=True)
        )
        rows = run_query(query, f"load assignments between {date_range.start} and {date_range.end}")
        return self._rows_to_assignments(rows)

    def list_for_date(self, assignment_date: date) -> list[DailyRouteAssignment]:
        return self.list_for_date_range(DateRange(assignment_date, assignment_date))

    def get(self, assignment_id: str) -> DailyRouteAssignment:
        rows = run_query(
            self.client.table(self.table).select("*").eq("id", assignment_id).limit(1),
            f"load assignment {assignment_id}",
        )
        if not rows:
            raise AssignmentNotFoundError(assignment_id)
        return assignment_from_row(rows[0])

    def insert(
        self,
        *,
        assignment_date: date,
        driver_id: str,
        delivery_ids: Sequence[str],
        created_by: Optional[str],
    ) -> DailyRouteAssignment:
        payload = {
            "assignment_date": assignment_date.isoformat(),
            "driver_id": driver_id,
            "delivery_ids": list(delivery_ids),
            "optimized_order": [],
            "total_distance": 0,
            "estimated_duration": 0,
            "status": AssignmentStatus.PLANNED.value,
            "created_by": created_by,
        }
        rows = run_query(self.client.table(self.table).insert(payload), "create assignment")
        if not rows:
            raise ValueError("Assignment insert returned no row")
        return assignment_from_row(rows[0])

    def update(self, assignment_id: str, fields: dict[str, Any]) -> DailyRouteAssignment:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update assignment fields: {', '.join(sorted(unknown))}")
        rows = run_query(
            self.client.table(self.table).update(_serialize_fields(fields)).eq("id", assignment_id),
            f"update assignment {assignment_id}",
        )
        if not rows:
            raise AssignmentNotFoundError(assignment_id)
        return assignment_from_row(rows[0])

    def delete(self, assignment_id: str) -> None:
        rows = run_query(
            self.client.table(self.table).delete().eq("id", assignment_id),
            f"delete assignment {assignment_id}",
        )
        if not rows:
            raise AssignmentNotFoundError(assignment_id)
