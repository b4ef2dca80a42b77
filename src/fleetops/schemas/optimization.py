"""Route optimizer wire format and optimization session schemas.

The optimizer contract uses camelCase field names on the wire; the models
accept both the alias and the Python field name.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.domain import DeliveryLocation, OptimizedRoute, SavedRoute, StartLocation


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DeliveryLocationModel(_WireModel):
    id: str
    address: str = ""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    def to_domain(self) -> DeliveryLocation:
        return DeliveryLocation(id=self.id, address=self.address, latitude=self.latitude, longitude=self.longitude)

    @classmethod
    def from_domain(cls, location: DeliveryLocation) -> "DeliveryLocationModel":
        return cls(
            id=location.id,
            address=location.address,
            latitude=location.latitude,
            longitude=location.longitude,
        )


class StartLocationModel(_WireModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str = ""

    def to_domain(self) -> StartLocation:
        return StartLocation(latitude=self.latitude, longitude=self.longitude, address=self.address)

    @classmethod
    def from_domain(cls, location: StartLocation) -> "StartLocationModel":
        return cls(latitude=location.latitude, longitude=location.longitude, address=location.address)


class OptimizeRouteRequest(_WireModel):
    deliveries: List[DeliveryLocationModel]
    start_location: StartLocationModel = Field(..., alias="startLocation")


class OptimizeRouteResponse(_WireModel):
    optimized_order: List[int] = Field(..., alias="optimizedOrder")
    total_distance: float = Field(..., ge=0, alias="totalDistance", description="Kilometers.")
    total_duration: float = Field(..., ge=0, alias="totalDuration", description="Minutes.")
    deliveries: List[DeliveryLocationModel]
    geocoding_failures: Optional[int] = Field(default=None, ge=0, alias="geocodingFailures")

    def to_domain(self) -> OptimizedRoute:
        return OptimizedRoute(
            optimized_order=list(self.optimized_order),
            total_distance=self.total_distance,
            total_duration=self.total_duration,
            deliveries=[delivery.to_domain() for delivery in self.deliveries],
            geocoding_failures=self.geocoding_failures,
        )

    @classmethod
    def from_domain(cls, route: OptimizedRoute) -> "OptimizeRouteResponse":
        return cls(
            optimized_order=list(route.optimized_order),
            total_distance=route.total_distance,
            total_duration=route.total_duration,
            deliveries=[DeliveryLocationModel.from_domain(d) for d in route.deliveries],
            geocoding_failures=route.geocoding_failures,
        )


class SessionCreatedResponse(BaseModel):
    session_id: str


class SessionStateResponse(BaseModel):
    session_id: str
    optimized_route: Optional[OptimizeRouteResponse] = None


class SaveRouteRequest(BaseModel):
    name: str = Field(..., min_length=1)
    driver_id: str = Field(..., min_length=1)
    vehicle_id: str = Field(..., min_length=1)
    start_location: StartLocationModel


class SaveRouteResponse(BaseModel):
    name: str
    driver_id: str
    vehicle_id: str
    updated_delivery_ids: List[str]
    failed_delivery_ids: List[str]
    message: str

    @classmethod
    def from_domain(cls, saved: SavedRoute) -> "SaveRouteResponse":
        return cls(
            name=saved.name,
            driver_id=saved.driver_id,
            vehicle_id=saved.vehicle_id,
            updated_delivery_ids=saved.updated_delivery_ids,
            failed_delivery_ids=saved.failed_delivery_ids,
            message=f'Route "{saved.name}" has been saved successfully.',
        )


class MapsLinkResponse(BaseModel):
    url: str
    stop_count: int
