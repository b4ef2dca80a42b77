"""Driver directory: profiles holding the driver or admin role."""

from __future__ import annotations

from typing import Any

from ..models.domain import Driver
from .query import require_client, run_query

DRIVER_ROLES = ("driver", "admin")


class DriverDirectory:
    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        return require_client(self._client)

    def list_drivers(self) -> list[Driver]:
        role_rows = run_query(
            self.client.table("user_roles").select("user_id").in_("role", list(DRIVER_ROLES)),
            "load driver roles",
        )
        user_ids = list(dict.fromkeys(str(row["user_id"]) for row in role_rows if row.get("user_id")))
        if not user_ids:
            return []

        profile_rows = run_query(
            self.client.table("profiles").select("id, first_name, last_name, email").in_("id", user_ids),
            "load driver profiles",
        )
        return [
            Driver(
                id=str(row["id"]),
                first_name=row.get("first_name") or "",
                last_name=row.get("last_name") or "",
                email=row.get("email") or "",
            )
            for row in profile_rows
        ]

    def by_id(self) -> dict[str, Driver]:
        return {driver.id: driver for driver in self.list_drivers()}
