"""Exceptions raised by the assignment and optimization services."""

from __future__ import annotations

from typing import Iterable


class AssignmentValidationError(ValueError):
    """Request rejected locally before any remote call was made."""


class AssignmentConflictError(AssignmentValidationError):
    """One or more deliveries already belong to a loaded assignment."""

    def __init__(self, conflicting_ids: Iterable[str]) -> None:
        self.conflicting_ids = list(conflicting_ids)
        super().__init__(f"Some deliveries are already assigned: {', '.join(self.conflicting_ids)}")


class AssignmentNotFoundError(LookupError):
    def __init__(self, assignment_id: str) -> None:
        self.assignment_id = assignment_id
        super().__init__(f"Assignment '{assignment_id}' not found")


class NoAssignmentsForDateError(ValueError):
    def __init__(self, assignment_date) -> None:
        self.assignment_date = assignment_date
        super().__init__(f"No assignments found for {assignment_date}. Please create assignments first.")


class NoDeliveriesSelectedError(ValueError):
    def __init__(self) -> None:
        super().__init__("No deliveries selected. Please select deliveries to optimize the route.")


class NoRouteToSaveError(ValueError):
    def __init__(self) -> None:
        super().__init__("No route to save. Please optimize a route first.")


class NoValidCoordinatesError(ValueError):
    """None of the stops handed to the mapping link builder had coordinates."""


class OptimizationServiceError(RuntimeError):
    """The route optimization call failed as a whole."""


class StoreError(RuntimeError):
    """A read or write against the hosted database failed."""


class StoreNotConfiguredError(StoreError):
    def __init__(self) -> None:
        super().__init__(
            "Supabase not configured. Set FLEETOPS_SUPABASE_URL and FLEETOPS_SUPABASE_KEY environment variables."
        )
