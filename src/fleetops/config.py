"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETOPS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet Operations Routing API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level applied by create_app().")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8080",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    # Route optimization
    optimizer_backend: Literal["edge_function", "local"] = Field(
        default="local",
        description="Use the hosted route-optimizer function or the in-process optimizer.",
    )
    route_optimizer_function: str = Field(default="route-optimizer")
    optimizer_timeout_seconds: float = Field(default=60.0, gt=0.0)
    solver_time_limit_seconds: int = Field(default=5, ge=0)
    average_speed_kmh: float = Field(
        default=40.0,
        gt=0.0,
        description="Speed used to estimate durations when falling back to straight-line distances.",
    )

    # Google Maps
    google_maps_api_key: Optional[str] = Field(default=None)
    geocoding_region: str = Field(default="in", description="Region bias for address geocoding.")
    geocoding_max_parallel_requests: int = Field(default=8, ge=1)
    maps_base_url: str = Field(default="https://www.google.com/maps/dir")

    # Default start location used for date-wide optimization
    depot_latitude: float = Field(default=28.6139, ge=-90.0, le=90.0)
    depot_longitude: float = Field(default=77.2090, ge=-180.0, le=180.0)
    depot_address: str = Field(default="Company Location")

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("maps_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


settings = Settings()
