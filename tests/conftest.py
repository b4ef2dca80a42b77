import pytest

from fakes import FakeOptimizer, FakeSupabase
from fleetops.data.deliveries_repository import DeliveryRepository
from fleetops.data.drivers_repository import DriverDirectory
from fleetops.models.domain import StartLocation
from fleetops.persistence.assignments import AssignmentRepository
from fleetops.services.assignments.engine import DailyAssignmentEngine

DEPOT = StartLocation(latitude=28.6139, longitude=77.2090, address="Depot")


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase(
        deliveries=[],
        daily_route_assignments=[],
        user_roles=[
            {"user_id": "drv-1", "role": "driver"},
            {"user_id": "drv-2", "role": "driver"},
            {"user_id": "drv-2", "role": "admin"},
            {"user_id": "ops-1", "role": "dispatcher"},
        ],
        profiles=[
            {"id": "drv-1", "first_name": "Asha", "last_name": "Verma", "email": "asha@example.com"},
            {"id": "drv-2", "first_name": "Ravi", "last_name": "Kumar", "email": "ravi@example.com"},
            {"id": "ops-1", "first_name": "Ops", "last_name": "User", "email": "ops@example.com"},
        ],
    )


@pytest.fixture
def optimizer() -> FakeOptimizer:
    return FakeOptimizer()


@pytest.fixture
def engine(fake_db: FakeSupabase, optimizer: FakeOptimizer) -> DailyAssignmentEngine:
    return DailyAssignmentEngine(
        assignments=AssignmentRepository(client=fake_db),
        deliveries=DeliveryRepository(client=fake_db),
        drivers=DriverDirectory(client=fake_db),
        optimizer=optimizer,
        start_location=DEPOT,
    )
