"""Ad hoc route optimization endpoints and the in-process optimizer contract."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from ...errors import NoDeliveriesSelectedError, NoRouteToSaveError, OptimizationServiceError
from ...models.domain import StartLocation
from ...schemas.optimization import (
    DeliveryLocationModel,
    MapsLinkResponse,
    OptimizeRouteRequest,
    OptimizeRouteResponse,
    SaveRouteRequest,
    SaveRouteResponse,
    SessionCreatedResponse,
    SessionStateResponse,
    StartLocationModel,
)
from ...services.optimization_session import RouteOptimizationSession, SessionRegistry, new_session
from ...services.optimizer.local import LocalRouteOptimizer

router = APIRouter(tags=["optimizer"])

logger = logging.getLogger(__name__)

registry = SessionRegistry()


class SessionOptimizeRequest(BaseModel):
    deliveries: List[DeliveryLocationModel]
    start_location: StartLocationModel


def _get_session(session_id: str) -> RouteOptimizationSession:
    try:
        return registry.get(session_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def _state(session: RouteOptimizationSession) -> SessionStateResponse:
    route = session.optimized_route
    return SessionStateResponse(
        session_id=session.session_id,
        optimized_route=OptimizeRouteResponse.from_domain(route) if route else None,
    )


@router.post("/optimizer/sessions", response_model=SessionCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_session() -> SessionCreatedResponse:
    try:
        session = registry.add(new_session())
    except ValueError as exc:
        logger.error(f"Route optimizer is not configured: {exc}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    logger.info(f"Created optimization session {session.session_id} ({len(registry)} active)")
    return SessionCreatedResponse(session_id=session.session_id)


@router.get("/optimizer/sessions/{session_id}", response_model=SessionStateResponse)
def get_session(session_id: str) -> SessionStateResponse:
    return _state(_get_session(session_id))


@router.post("/optimizer/sessions/{session_id}/optimize", response_model=SessionStateResponse)
def optimize_session_route(session_id: str, payload: SessionOptimizeRequest) -> SessionStateResponse:
    session = _get_session(session_id)
    try:
        session.optimize_route(
            [delivery.to_domain() for delivery in payload.deliveries],
            payload.start_location.to_domain(),
        )
    except NoDeliveriesSelectedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except OptimizationServiceError as exc:
        logger.exception(f"Route optimization error for session {session_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to optimize route. Please try again.",
        ) from exc
    return _state(session)


@router.post("/optimizer/sessions/{session_id}/save", response_model=SaveRouteResponse)
def save_session_route(session_id: str, payload: SaveRouteRequest) -> SaveRouteResponse:
    session = _get_session(session_id)
    try:
        saved = session.save_optimized_route(
            payload.name,
            payload.driver_id,
            payload.vehicle_id,
            payload.start_location.to_domain(),
        )
    except NoRouteToSaveError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return SaveRouteResponse.from_domain(saved)


@router.delete("/optimizer/sessions/{session_id}/route", response_model=SessionStateResponse)
def clear_session_route(session_id: str) -> SessionStateResponse:
    session = _get_session(session_id)
    session.clear_optimized_route()
    return _state(session)


@router.delete("/optimizer/sessions/{session_id}", status_code=status.HTTP_200_OK)
def discard_session(session_id: str) -> dict:
    if not registry.discard(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Optimization session '{session_id}' not found")
    return {"success": True}


@router.get("/optimizer/sessions/{session_id}/maps-link", response_model=MapsLinkResponse)
def session_maps_link(
    session_id: str,
    origin_lat: float = Query(..., ge=-90, le=90),
    origin_lng: float = Query(..., ge=-180, le=180),
) -> MapsLinkResponse:
    session = _get_session(session_id)
    route = session.optimized_route
    if route is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No optimized route in this session.")
    url = session.maps_link(StartLocation(latitude=origin_lat, longitude=origin_lng))
    if url is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="No valid coordinates for this route.")
    return MapsLinkResponse(url=url, stop_count=sum(1 for d in route.deliveries if d.has_coordinates))


def get_local_optimizer() -> LocalRouteOptimizer:
    return LocalRouteOptimizer()


@router.post(
    "/route-optimizer",
    response_model=OptimizeRouteResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
def route_optimizer(payload: OptimizeRouteRequest) -> OptimizeRouteResponse:
    """Optimizer contract served in-process: geocode, build a travel matrix, sequence stops."""
    if not payload.deliveries:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No deliveries provided")
    try:
        route = get_local_optimizer().optimize(
            [delivery.to_domain() for delivery in payload.deliveries],
            payload.start_location.to_domain(),
        )
    except OptimizationServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Route optimization error: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error: {exc}",
        ) from exc
    return OptimizeRouteResponse.from_domain(route)
