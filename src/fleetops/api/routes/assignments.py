"""Daily route assignment endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from ...errors import (
    AssignmentConflictError,
    AssignmentNotFoundError,
    AssignmentValidationError,
    NoAssignmentsForDateError,
    NoValidCoordinatesError,
    StoreError,
)
from ...models.domain import DateRange, StartLocation
from ...schemas.assignments import (
    AssignedIdsResponse,
    AssignmentModel,
    CreateAssignmentRequest,
    DateGroupModel,
    DateOptimizationResponse,
    DateRangeModel,
    DeliveryModel,
    RouteBoardResponse,
    UpdateAssignmentRequest,
)
from ...schemas.optimization import MapsLinkResponse
from ...services.assignments import get_assignment_engine
from ...services.assignments.date_range import QuickFilter, resolve_date_range

router = APIRouter(prefix="/assignments", tags=["assignments"])

logger = logging.getLogger(__name__)


def _store_failure(action: str, exc: Exception) -> HTTPException:
    logger.exception(f"Error while trying to {action}: {exc}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Failed to {action}.",
    )


def _parse_quick_filter(value: Optional[str]) -> QuickFilter:
    try:
        return QuickFilter.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/board", response_model=RouteBoardResponse, status_code=status.HTTP_200_OK)
def get_board(
    quick_filter: Optional[str] = Query(default=None, description="today, week, next7days or all (custom range)"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    search: Optional[str] = Query(default=None, description="Filter assignments by driver name"),
    today: Optional[date] = Query(default=None, description="Reference date for quick filters"),
) -> RouteBoardResponse:
    selected = _parse_quick_filter(quick_filter)
    date_range = resolve_date_range(selected, date_from, date_to, today)
    try:
        board = get_assignment_engine().load(date_range)
    except StoreError as exc:
        raise _store_failure("load route assignments", exc) from exc

    groups = board.date_groups(search)
    return RouteBoardResponse(
        date_range=DateRangeModel.from_domain(date_range),
        quick_filter=selected.value,
        search=search,
        total_groups=len(groups),
        total_assignments=sum(len(group.assignments) for group in groups),
        groups=[DateGroupModel.from_domain(group, board.drivers) for group in groups],
    )


@router.get("/available", response_model=List[DeliveryModel], status_code=status.HTTP_200_OK)
def get_available_deliveries(on_date: date = Query(..., alias="date")) -> List[DeliveryModel]:
    try:
        deliveries = get_assignment_engine().available_deliveries_for_date(on_date)
    except StoreError as exc:
        raise _store_failure(f"load available deliveries for {on_date}", exc) from exc
    return [DeliveryModel.from_domain(delivery) for delivery in deliveries]


@router.get("/assigned-ids", response_model=AssignedIdsResponse, status_code=status.HTTP_200_OK)
def get_assigned_ids(
    quick_filter: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    today: Optional[date] = Query(default=None),
) -> AssignedIdsResponse:
    date_range = resolve_date_range(_parse_quick_filter(quick_filter), date_from, date_to, today)
    try:
        board = get_assignment_engine().load(date_range, include_drivers=False)
    except StoreError as exc:
        raise _store_failure("load assigned deliveries", exc) from exc
    return AssignedIdsResponse(
        date_range=DateRangeModel.from_domain(date_range),
        delivery_ids=sorted(board.assigned_delivery_ids()),
    )


@router.post("", response_model=AssignmentModel, status_code=status.HTTP_201_CREATED)
def create_assignment(payload: CreateAssignmentRequest) -> AssignmentModel:
    loaded_range = None
    if payload.loaded_from and payload.loaded_to:
        loaded_range = DateRange(payload.loaded_from, payload.loaded_to)
    try:
        assignment = get_assignment_engine().create_assignment(
            assignment_date=payload.assignment_date,
            driver_id=payload.driver_id,
            delivery_ids=payload.delivery_ids,
            created_by=payload.created_by,
            loaded_range=loaded_range,
        )
    except AssignmentConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "conflicting_ids": exc.conflicting_ids},
        ) from exc
    except AssignmentValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_failure("create assignment", exc) from exc
    return AssignmentModel.from_domain(assignment)


@router.post("/optimize", response_model=DateOptimizationResponse, status_code=status.HTTP_200_OK)
def optimize_date(on_date: date = Query(..., alias="date")) -> DateOptimizationResponse:
    try:
        summary = get_assignment_engine().optimize_routes_for_date(on_date)
    except NoAssignmentsForDateError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_failure(f"optimize routes for {on_date}", exc) from exc
    return DateOptimizationResponse.from_domain(summary)


@router.patch("/{assignment_id}", response_model=AssignmentModel, status_code=status.HTTP_200_OK)
def update_assignment(assignment_id: str, payload: UpdateAssignmentRequest) -> AssignmentModel:
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update.")
    try:
        assignment = get_assignment_engine().update_assignment(assignment_id, fields)
    except AssignmentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except AssignmentValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_failure(f"update assignment {assignment_id}", exc) from exc
    return AssignmentModel.from_domain(assignment)


@router.delete("/{assignment_id}", status_code=status.HTTP_200_OK)
def delete_assignment(assignment_id: str) -> dict:
    try:
        get_assignment_engine().delete_assignment(assignment_id)
    except AssignmentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_failure(f"delete assignment {assignment_id}", exc) from exc
    return {"success": True, "message": f"Assignment {assignment_id} deleted"}


@router.get("/{assignment_id}/maps-link", response_model=MapsLinkResponse, status_code=status.HTTP_200_OK)
def get_assignment_maps_link(
    assignment_id: str,
    origin_lat: Optional[float] = Query(default=None, ge=-90, le=90),
    origin_lng: Optional[float] = Query(default=None, ge=-180, le=180),
) -> MapsLinkResponse:
    origin = None
    if origin_lat is not None and origin_lng is not None:
        origin = StartLocation(latitude=origin_lat, longitude=origin_lng)
    try:
        url, stop_count = get_assignment_engine().maps_link_for_assignment(assignment_id, origin)
    except AssignmentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except NoValidCoordinatesError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_failure(f"build maps link for assignment {assignment_id}", exc) from exc
    return MapsLinkResponse(url=url, stop_count=stop_count)
