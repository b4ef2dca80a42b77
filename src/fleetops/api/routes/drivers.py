"""Driver directory endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from ...data.drivers_repository import DriverDirectory
from ...errors import StoreError
from ...schemas.assignments import DriverModel

router = APIRouter(prefix="/drivers", tags=["drivers"])

logger = logging.getLogger(__name__)


def get_driver_directory() -> DriverDirectory:
    return DriverDirectory()


@router.get("", response_model=List[DriverModel], status_code=status.HTTP_200_OK)
def list_drivers() -> List[DriverModel]:
    try:
        drivers = get_driver_directory().list_drivers()
    except StoreError as exc:
        logger.exception(f"Error loading drivers: {exc}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to load drivers.",
        ) from exc
    return [DriverModel.from_domain(driver) for driver in drivers]
