"""Read and write access to the ``deliveries`` table."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence

from ..models.domain import DateRange, Delivery, DeliveryStatus
from .query import coerce_float, parse_date, require_client, run_query

logger = logging.getLogger(__name__)

DELIVERY_COLUMNS = (
    "id, delivery_number, customer_name, customer_address, status, scheduled_date, latitude, longitude"
)


def delivery_from_row(row: dict) -> Delivery:
    return Delivery(
        id=str(row["id"]),
        delivery_number=str(row.get("delivery_number") or ""),
        customer_name=str(row.get("customer_name") or ""),
        customer_address=str(row.get("customer_address") or ""),
        status=str(row.get("status") or DeliveryStatus.PENDING.value),
        scheduled_date=parse_date(row.get("scheduled_date")),
        latitude=coerce_float(row.get("latitude")),
        longitude=coerce_float(row.get("longitude")),
    )


def _rows_to_deliveries(rows: Iterable[dict]) -> list[Delivery]:
    deliveries: list[Delivery] = []
    for row in rows:
        try:
            deliveries.append(delivery_from_row(row))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping invalid delivery row {row.get('id', 'unknown')}: {e}")
    return deliveries


class DeliveryRepository:
    """Delivery Store backed by Supabase.

    Reads are ordered by creation time so callers get a stable source order.
    """

    table = "deliveries"

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        return require_client(self._client)

    def list_for_date_range(
        self, date_range: DateRange, status: Optional[str] = DeliveryStatus.PENDING.value
    ) -> list[Delivery]:
        if date_range.is_empty:
            return []
        query = (
            self.client.table(self.table)
            .select(DELIVERY_COLUMNS)
            .gte("scheduled_date", date_range.start.isoformat())
            .lte("scheduled_date", date_range.end.isoformat())
        )
        if status is not None:
            query = query.eq("status", status)
        query = query.order("created_at").order("id")
        rows = run_query(query, f"load deliveries between {date_range.start} and {date_range.end}")
        return _rows_to_deliveries(rows)

    def get_many(self, delivery_ids: Sequence[str]) -> list[Delivery]:
        """Fetch deliveries by id, returned in the order of ``delivery_ids``; missing ids are omitted."""
        if not delivery_ids:
            return []
        unique_ids = list(dict.fromkeys(delivery_ids))
        query = self.client.table(self.table).select(DELIVERY_COLUMNS).in_("id", unique_ids)
        rows = run_query(query, f"load {len(unique_ids)} deliveries by id")
        by_id = {delivery.id: delivery for delivery in _rows_to_deliveries(rows)}
        return [by_id[delivery_id] for delivery_id in unique_ids if delivery_id in by_id]

    def update_coordinates(self, delivery_id: str, latitude: float, longitude: float) -> None:
        query = (
            self.client.table(self.table)
            .update({"latitude": latitude, "longitude": longitude})
            .eq("id", delivery_id)
        )
        run_query(query, f"update coordinates of delivery {delivery_id}")
