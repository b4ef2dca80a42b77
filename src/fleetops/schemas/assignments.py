"""Daily route assignment request/response schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import (
    DailyRouteAssignment,
    DateGroup,
    DateOptimizationSummary,
    DateRange,
    Delivery,
    Driver,
)
from ..services.assignments.board import driver_display_name, format_duration

AssignmentStatusLiteral = Literal["planned", "in_progress", "completed"]


class DeliveryModel(BaseModel):
    id: str
    delivery_number: str
    customer_name: str
    customer_address: str
    status: str
    scheduled_date: Optional[date] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def from_domain(cls, delivery: Delivery) -> "DeliveryModel":
        return cls(
            id=delivery.id,
            delivery_number=delivery.delivery_number,
            customer_name=delivery.customer_name,
            customer_address=delivery.customer_address,
            status=delivery.status,
            scheduled_date=delivery.scheduled_date,
            latitude=delivery.latitude,
            longitude=delivery.longitude,
        )


class DriverModel(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str

    @classmethod
    def from_domain(cls, driver: Driver) -> "DriverModel":
        return cls(id=driver.id, first_name=driver.first_name, last_name=driver.last_name, email=driver.email)


class AssignmentModel(BaseModel):
    id: str
    assignment_date: date
    driver_id: str
    driver_name: Optional[str] = None
    delivery_ids: List[str]
    optimized_order: List[int]
    total_distance: float
    estimated_duration: float
    status: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(
        cls, assignment: DailyRouteAssignment, drivers: Optional[Dict[str, Driver]] = None
    ) -> "AssignmentModel":
        return cls(
            id=assignment.id,
            assignment_date=assignment.assignment_date,
            driver_id=assignment.driver_id,
            driver_name=driver_display_name(drivers, assignment.driver_id) if drivers is not None else None,
            delivery_ids=list(assignment.delivery_ids),
            optimized_order=list(assignment.optimized_order),
            total_distance=assignment.total_distance,
            estimated_duration=assignment.estimated_duration,
            status=assignment.status,
            created_by=assignment.created_by,
            created_at=assignment.created_at,
            updated_at=assignment.updated_at,
        )


class DateGroupModel(BaseModel):
    date: date
    assignments: List[AssignmentModel]
    total_drivers: int
    total_deliveries: int
    total_distance: float
    total_duration: float
    total_duration_label: str
    unassigned_deliveries: int

    @classmethod
    def from_domain(cls, group: DateGroup, drivers: Dict[str, Driver]) -> "DateGroupModel":
        return cls(
            date=group.date,
            assignments=[AssignmentModel.from_domain(a, drivers) for a in group.assignments],
            total_drivers=group.total_drivers,
            total_deliveries=group.total_deliveries,
            total_distance=group.total_distance,
            total_duration=group.total_duration,
            total_duration_label=format_duration(group.total_duration),
            unassigned_deliveries=group.unassigned_deliveries,
        )


class DateRangeModel(BaseModel):
    start: date
    end: date

    @classmethod
    def from_domain(cls, date_range: DateRange) -> "DateRangeModel":
        return cls(start=date_range.start, end=date_range.end)


class RouteBoardResponse(BaseModel):
    date_range: DateRangeModel
    quick_filter: str
    search: Optional[str] = None
    total_groups: int
    total_assignments: int
    groups: List[DateGroupModel]


class AssignedIdsResponse(BaseModel):
    date_range: DateRangeModel
    delivery_ids: List[str]


class CreateAssignmentRequest(BaseModel):
    assignment_date: date
    driver_id: str = Field(..., description="Profile id of the driver.")
    delivery_ids: List[str] = Field(..., description="Deliveries to assign, in stop order.")
    created_by: Optional[str] = None
    loaded_from: Optional[date] = Field(default=None, description="Start of the range the client has loaded.")
    loaded_to: Optional[date] = Field(default=None, description="End of the range the client has loaded.")


class UpdateAssignmentRequest(BaseModel):
    driver_id: Optional[str] = None
    delivery_ids: Optional[List[str]] = None
    optimized_order: Optional[List[int]] = None
    total_distance: Optional[float] = Field(default=None, ge=0)
    estimated_duration: Optional[float] = Field(default=None, ge=0)
    status: Optional[AssignmentStatusLiteral] = None

    @field_validator("optimized_order")
    @classmethod
    def _distinct_indices(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        if value is not None and (len(set(value)) != len(value) or any(index < 0 for index in value)):
            raise ValueError("optimized_order must contain distinct non-negative indices")
        return value


class DateOptimizationResponse(BaseModel):
    date: date
    attempted: int
    optimized: List[str]
    skipped: List[str]
    message: str

    @classmethod
    def from_domain(cls, summary: DateOptimizationSummary) -> "DateOptimizationResponse":
        return cls(
            date=summary.date,
            attempted=summary.attempted,
            optimized=summary.optimized,
            skipped=summary.skipped,
            message=f"Optimized {len(summary.optimized)} of {summary.attempted} routes for {summary.date.isoformat()}.",
        )
