"""Build a driver-friendly Google Maps directions link preserving stop order."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, TypeVar

from ..config import settings
from .geospatial import format_coordinate_pair


class Stop(Protocol):
    id: str
    latitude: Optional[float]
    longitude: Optional[float]


StopT = TypeVar("StopT", bound=Stop)


def order_by_ids(stops: Sequence[StopT], ordered_ids: Sequence[str]) -> list[StopT]:
    """Reorder stops to follow ``ordered_ids``; stops not listed keep their original order at the end."""
    by_id = {stop.id: stop for stop in stops}
    ordered: list[StopT] = []
    placed: set[str] = set()
    for stop_id in ordered_ids:
        stop = by_id.get(stop_id)
        if stop is not None and stop_id not in placed:
            ordered.append(stop)
            placed.add(stop_id)
    ordered.extend(stop for stop in stops if stop.id not in placed)
    return ordered


def build_maps_link(
    stops: Sequence[Stop],
    origin: tuple[float, float],
    optimized_ids: Sequence[str] | None = None,
    base_url: str | None = None,
) -> str | None:
    """Return ``{base}/{origin}/{waypoint}/.../{destination}`` or None when no stop has coordinates.

    The last usable stop is the destination. No waypoint limit is applied.
    """
    ordered = order_by_ids(stops, optimized_ids) if optimized_ids else list(stops)
    usable = [stop for stop in ordered if stop.latitude is not None and stop.longitude is not None]
    if not usable:
        return None

    segments = [format_coordinate_pair(*origin)]
    segments.extend(format_coordinate_pair(stop.latitude, stop.longitude) for stop in usable)
    return f"{(base_url or settings.maps_base_url).rstrip('/')}/" + "/".join(segments)
