"""Health endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])

logger = logging.getLogger(__name__)


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/optimizer", status_code=status.HTTP_200_OK)
def health_optimizer() -> dict:
    backend = settings.optimizer_backend
    if backend == "edge_function":
        configured = bool(settings.supabase_url and settings.supabase_key)
    else:
        configured = True
    return {
        "backend": backend,
        "configured": configured,
        "geocoding_enabled": bool(settings.google_maps_api_key),
    }


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check database connection and assignment storage status."""
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set FLEETOPS_SUPABASE_URL and FLEETOPS_SUPABASE_KEY environment variables.",
        }

    try:
        supabase.table("daily_route_assignments").select("id").limit(1).execute()
    except Exception as exc:
        logger.warning(f"Database health check failed: {exc}")
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
    return {"configured": True, "connected": True, "message": "Database connected."}
