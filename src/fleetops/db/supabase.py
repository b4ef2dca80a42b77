"""Supabase client for the routing backend."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None


# Tables used by the routing core:
#
#   deliveries                id, delivery_number, customer_name, customer_address,
#                             status, scheduled_date, latitude, longitude, created_at
#   daily_route_assignments   id, assignment_date, driver_id, delivery_ids[],
#                             optimized_order[], total_distance, estimated_duration,
#                             status, created_by, created_at, updated_at
#   user_roles                user_id, role
#   profiles                  id, first_name, last_name, email
