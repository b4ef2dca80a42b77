"""Helpers shared by the Supabase-backed repositories."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from ..db.supabase import get_supabase_client
from ..errors import StoreError, StoreNotConfiguredError

logger = logging.getLogger(__name__)


def require_client(client: Any | None) -> Any:
    client = client if client is not None else get_supabase_client()
    if client is None:
        raise StoreNotConfiguredError()
    return client


def run_query(query: Any, description: str) -> list[dict]:
    """Execute a postgrest query and return its rows, wrapping any failure in StoreError."""
    try:
        response = query.execute()
    except Exception as exc:
        logger.error(f"Database request failed while trying to {description}: {exc}")
        raise StoreError(f"Failed to {description}: {exc}") from exc
    return list(response.data or [])


def coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)
