from datetime import date

import pytest

from fakes import FakeOptimizer, FakeSupabase, VanishingAssignmentOptimizer, assignment_row, delivery_row
from fleetops.data.deliveries_repository import DeliveryRepository
from fleetops.data.drivers_repository import DriverDirectory
from fleetops.errors import (
    AssignmentConflictError,
    AssignmentNotFoundError,
    AssignmentValidationError,
    NoAssignmentsForDateError,
    NoValidCoordinatesError,
)
from fleetops.models.domain import DateRange, DeliveryLocation, OptimizedRoute, StartLocation
from fleetops.persistence.assignments import AssignmentRepository
from fleetops.services.assignments.engine import DailyAssignmentEngine, reconcile_optimized_order

JAN_10 = date(2024, 1, 10)
JAN_11 = date(2024, 1, 11)


def _seed_scenario(fake_db: FakeSupabase) -> None:
    fake_db.tables["deliveries"] = [
        delivery_row("D1", "2024-01-10", latitude=None, longitude=None, created_at="2024-01-01T00:00:01+00:00"),
        delivery_row("D2", "2024-01-10", latitude=28.6, longitude=77.2, created_at="2024-01-01T00:00:02+00:00"),
        delivery_row("D3", "2024-01-11", latitude=28.7, longitude=77.3, created_at="2024-01-01T00:00:03+00:00"),
    ]


def _assignment_rows(fake_db: FakeSupabase) -> dict:
    return {row["id"]: row for row in fake_db.tables["daily_route_assignments"]}


def test_create_then_conflict_then_available(engine, fake_db):
    _seed_scenario(fake_db)

    created = engine.create_assignment(JAN_10, "drv-1", ["D2"])
    assert created.status == "planned"
    assert created.delivery_ids == ["D2"]
    assert created.optimized_order == []

    with pytest.raises(AssignmentConflictError) as excinfo:
        engine.create_assignment(JAN_10, "drv-1", ["D1", "D2"])
    assert excinfo.value.conflicting_ids == ["D2"]
    assert len(fake_db.tables["daily_route_assignments"]) == 1

    available = engine.available_deliveries_for_date(JAN_10)
    assert [d.id for d in available] == ["D1"]


def test_no_delivery_is_assigned_twice_across_sequential_creates(engine, fake_db):
    _seed_scenario(fake_db)
    engine.create_assignment(JAN_10, "drv-1", ["D1"])
    engine.create_assignment(JAN_11, "drv-2", ["D3"])
    for attempt in (["D1", "D2"], ["D3"], ["D2"]):
        try:
            engine.create_assignment(JAN_10, "drv-2", attempt, loaded_range=DateRange(JAN_10, JAN_11))
        except AssignmentConflictError:
            pass

    ids = [i for row in fake_db.tables["daily_route_assignments"] for i in row["delivery_ids"]]
    assert sorted(ids) == ["D1", "D2", "D3"]


def test_conflict_check_only_covers_the_date_and_loaded_range(engine, fake_db):
    # Deliveries referenced by assignments outside the checked dates are not seen.
    _seed_scenario(fake_db)
    fake_db.tables["daily_route_assignments"] = [assignment_row("old", "2024-01-11", "drv-2", ["D2"])]

    with pytest.raises(AssignmentConflictError):
        engine.create_assignment(JAN_10, "drv-1", ["D2"], loaded_range=DateRange(JAN_10, JAN_11))

    created = engine.create_assignment(JAN_10, "drv-1", ["D2"])
    assert created.delivery_ids == ["D2"]


@pytest.mark.parametrize(
    "driver_id,delivery_ids",
    [("", ["D1"]), ("   ", ["D1"]), ("drv-1", []), ("drv-1", ["D1", "D1"])],
)
def test_invalid_requests_make_no_remote_calls(engine, fake_db, driver_id, delivery_ids):
    _seed_scenario(fake_db)
    with pytest.raises(AssignmentValidationError):
        engine.create_assignment(JAN_10, driver_id, delivery_ids)
    assert fake_db.requests == []


def test_deleting_an_assignment_makes_its_deliveries_available_again(engine, fake_db):
    _seed_scenario(fake_db)
    created = engine.create_assignment(JAN_10, "drv-1", ["D1", "D2"])
    assert engine.available_deliveries_for_date(JAN_10) == []

    engine.delete_assignment(created.id)

    assert [d.id for d in engine.available_deliveries_for_date(JAN_10)] == ["D1", "D2"]
    with pytest.raises(AssignmentNotFoundError):
        engine.delete_assignment(created.id)


def test_board_groups_reflect_loaded_range(engine, fake_db):
    _seed_scenario(fake_db)
    engine.create_assignment(JAN_10, "drv-1", ["D2"])

    board = engine.load(DateRange(date(2024, 1, 9), JAN_11))
    groups = board.date_groups()

    assert [g.date for g in groups] == [JAN_10, JAN_11]
    assert groups[0].unassigned_deliveries == 1
    assert groups[1].assignments == []
    assert groups[0].assignments[0].driver_id == "drv-1"
    assert board.drivers["drv-1"].full_name == "Asha Verma"


def test_optimize_date_writes_permutation_and_backfills_coordinates(fake_db):
    _seed_scenario(fake_db)
    fake_db.tables["daily_route_assignments"] = [assignment_row("a1", "2024-01-10", "drv-1", ["D1", "D2"])]
    optimizer = FakeOptimizer(geocode={"D1": (28.65, 77.25)})
    engine = _engine(fake_db, optimizer)

    summary = engine.optimize_routes_for_date(JAN_10)

    assert summary.optimized == ["a1"]
    assert summary.skipped == []
    row = _assignment_rows(fake_db)["a1"]
    assert sorted(row["optimized_order"]) == [0, 1]
    assert row["total_distance"] >= 0
    assert row["estimated_duration"] >= 0
    d1 = next(r for r in fake_db.tables["deliveries"] if r["id"] == "D1")
    assert (d1["latitude"], d1["longitude"]) == (28.65, 77.25)


def test_partial_batch_failure_leaves_failed_assignment_untouched(fake_db):
    fake_db.tables["deliveries"] = [delivery_row(f"D{i}", "2024-01-10") for i in range(1, 7)]
    fake_db.tables["daily_route_assignments"] = [
        assignment_row("first", "2024-01-10", "drv-1", ["D1", "D2"], created_at="2024-01-01T00:00:03+00:00"),
        assignment_row(
            "second", "2024-01-10", "drv-2", ["D3", "D4"],
            optimized_order=[0, 1], total_distance=7.5, estimated_duration=20,
            created_at="2024-01-01T00:00:02+00:00",
        ),
        assignment_row("third", "2024-01-10", "drv-1", ["D5", "D6"], created_at="2024-01-01T00:00:01+00:00"),
    ]
    optimizer = FakeOptimizer(fail_for=["D3"])
    engine = _engine(fake_db, optimizer)

    summary = engine.optimize_routes_for_date(JAN_10)

    assert [call[0] for call in optimizer.calls] == ["D1", "D3", "D5"]
    assert summary.optimized == ["first", "third"]
    assert summary.skipped == ["second"]
    rows = _assignment_rows(fake_db)
    assert rows["first"]["optimized_order"] == [1, 0]
    assert rows["third"]["optimized_order"] == [1, 0]
    assert rows["second"]["optimized_order"] == [0, 1]
    assert rows["second"]["total_distance"] == 7.5
    assert rows["second"]["estimated_duration"] == 20


def test_optimize_skips_empty_and_dangling_assignments(fake_db):
    fake_db.tables["deliveries"] = [delivery_row("D1", "2024-01-10")]
    fake_db.tables["daily_route_assignments"] = [
        assignment_row("empty", "2024-01-10", "drv-1", [], created_at="2024-01-01T00:00:02+00:00"),
        assignment_row("dangling", "2024-01-10", "drv-2", ["D1", "gone"], created_at="2024-01-01T00:00:01+00:00"),
    ]
    optimizer = FakeOptimizer()
    engine = _engine(fake_db, optimizer)

    summary = engine.optimize_routes_for_date(JAN_10)

    assert optimizer.calls == []
    assert summary.optimized == []
    assert summary.skipped == ["empty", "dangling"]


def test_optimize_date_without_assignments_raises(engine):
    with pytest.raises(NoAssignmentsForDateError):
        engine.optimize_routes_for_date(JAN_10)


class FixedRouteOptimizer:
    def __init__(self, route: OptimizedRoute) -> None:
        self.route = route

    def optimize(self, deliveries, start_location):
        return self.route


def test_written_back_order_drives_the_maps_link(fake_db):
    fake_db.tables["deliveries"] = [
        delivery_row("Da", "2024-01-10", latitude=28.61, longitude=77.21),
        delivery_row("Db", "2024-01-10", latitude=28.71, longitude=77.31),
    ]
    fake_db.tables["daily_route_assignments"] = [assignment_row("a1", "2024-01-10", "drv-1", ["Da", "Db"])]
    route = OptimizedRoute(
        optimized_order=[1, 0],
        total_distance=12.4,
        total_duration=30,
        deliveries=[
            DeliveryLocation("Da", "a", 28.61, 77.21),
            DeliveryLocation("Db", "b", 28.71, 77.31),
        ],
    )
    engine = _engine(fake_db, FixedRouteOptimizer(route))

    engine.optimize_routes_for_date(JAN_10)
    row = _assignment_rows(fake_db)["a1"]
    assert row["optimized_order"] == [1, 0]
    assert row["total_distance"] == 12.4
    assert row["estimated_duration"] == 30

    url, stop_count = engine.maps_link_for_assignment("a1", StartLocation(28.0, 77.0))
    assert stop_count == 2
    assert url.endswith("/28.0,77.0/28.71,77.31/28.61,77.21")


def test_maps_link_without_coordinates_raises(fake_db):
    fake_db.tables["deliveries"] = [delivery_row("D1", "2024-01-10", latitude=None, longitude=None)]
    fake_db.tables["daily_route_assignments"] = [assignment_row("a1", "2024-01-10", "drv-1", ["D1"])]
    engine = _engine(fake_db, FakeOptimizer())

    with pytest.raises(NoValidCoordinatesError):
        engine.maps_link_for_assignment("a1")


def test_reconcile_maps_by_id_and_appends_unordered_deliveries():
    route = OptimizedRoute(
        optimized_order=[1, 0],
        total_distance=1.0,
        total_duration=2.0,
        deliveries=[DeliveryLocation("c", ""), DeliveryLocation("a", "")],
    )
    assert reconcile_optimized_order(["a", "b", "c"], route) == [0, 2, 1]


def _engine(fake_db: FakeSupabase, optimizer) -> DailyAssignmentEngine:
    return DailyAssignmentEngine(
        assignments=AssignmentRepository(client=fake_db),
        deliveries=DeliveryRepository(client=fake_db),
        drivers=DriverDirectory(client=fake_db),
        optimizer=optimizer,
        start_location=StartLocation(28.6139, 77.2090),
    )


@pytest.mark.parametrize("delivery_ids", [["D2", "missing"], ["D2", "done"]])
def test_create_rejects_unknown_or_non_pending_deliveries(engine, fake_db, delivery_ids):
    _seed_scenario(fake_db)
    fake_db.tables["deliveries"].append(delivery_row("done", "2024-01-10", status="completed"))

    with pytest.raises(AssignmentValidationError) as excinfo:
        engine.create_assignment(JAN_10, "drv-1", delivery_ids)

    assert delivery_ids[1] in str(excinfo.value)
    assert fake_db.tables["daily_route_assignments"] == []
    assert ("daily_route_assignments", "insert") not in fake_db.requests


def test_assignment_deleted_mid_batch_is_skipped(fake_db):
    fake_db.tables["deliveries"] = [delivery_row(f"D{i}", "2024-01-10") for i in range(1, 5)]
    fake_db.tables["daily_route_assignments"] = [
        assignment_row("first", "2024-01-10", "drv-1", ["D1", "D2"], created_at="2024-01-01T00:00:02+00:00"),
        assignment_row("second", "2024-01-10", "drv-2", ["D3", "D4"], created_at="2024-01-01T00:00:01+00:00"),
    ]
    engine = _engine(fake_db, VanishingAssignmentOptimizer(fake_db, "first"))

    summary = engine.optimize_routes_for_date(JAN_10)

    assert summary.skipped == ["first"]
    assert summary.optimized == ["second"]
    assert _assignment_rows(fake_db)["second"]["optimized_order"] == [1, 0]


class CrashingOptimizer(FakeOptimizer):
    def optimize(self, deliveries, start_location):
        if deliveries[0].id == "D1":
            raise KeyError("latitude")
        return super().optimize(deliveries, start_location)


def test_unexpected_error_for_one_assignment_does_not_abort_the_batch(fake_db):
    fake_db.tables["deliveries"] = [delivery_row(f"D{i}", "2024-01-10") for i in range(1, 5)]
    fake_db.tables["daily_route_assignments"] = [
        assignment_row("first", "2024-01-10", "drv-1", ["D1", "D2"], created_at="2024-01-01T00:00:02+00:00"),
        assignment_row("second", "2024-01-10", "drv-2", ["D3", "D4"], created_at="2024-01-01T00:00:01+00:00"),
    ]

    summary = _engine(fake_db, CrashingOptimizer()).optimize_routes_for_date(JAN_10)

    assert summary.skipped == ["first"]
    assert summary.optimized == ["second"]
    assert _assignment_rows(fake_db)["first"]["optimized_order"] == []


def test_update_rejects_order_that_does_not_cover_the_deliveries(engine, fake_db):
    fake_db.tables["daily_route_assignments"] = [assignment_row("a1", "2024-01-10", "drv-1", ["D1", "D2"])]

    for order in ([0, 2], [0], [0, 1, 2]):
        with pytest.raises(AssignmentValidationError):
            engine.update_assignment("a1", {"optimized_order": order})
    with pytest.raises(AssignmentValidationError):
        engine.update_assignment("a1", {"delivery_ids": ["D1", "D1"]})

    assert _assignment_rows(fake_db)["a1"]["optimized_order"] == []
    assert engine.update_assignment("a1", {"optimized_order": [1, 0]}).optimized_order == [1, 0]


def test_changing_deliveries_clears_the_stale_route(engine, fake_db):
    fake_db.tables["daily_route_assignments"] = [
        assignment_row(
            "a1", "2024-01-10", "drv-1", ["D1", "D2"],
            optimized_order=[1, 0], total_distance=7.5, estimated_duration=20,
        )
    ]

    updated = engine.update_assignment("a1", {"delivery_ids": ["D1", "D2", "D3"]})

    assert updated.delivery_ids == ["D1", "D2", "D3"]
    assert updated.optimized_order == []
    assert updated.total_distance == 0
    assert updated.estimated_duration == 0


def test_order_is_checked_against_replacement_deliveries(engine, fake_db):
    fake_db.tables["daily_route_assignments"] = [
        assignment_row("a1", "2024-01-10", "drv-1", ["D1", "D2"], optimized_order=[1, 0])
    ]

    with pytest.raises(AssignmentValidationError):
        engine.update_assignment("a1", {"delivery_ids": ["D1", "D2", "D3"], "optimized_order": [1, 0]})

    updated = engine.update_assignment("a1", {"delivery_ids": ["D3", "D1", "D2"], "optimized_order": [2, 0, 1]})
    assert updated.optimized_order == [2, 0, 1]


def test_status_only_update_keeps_the_route(engine, fake_db):
    fake_db.tables["daily_route_assignments"] = [
        assignment_row("a1", "2024-01-10", "drv-1", ["D1", "D2"], optimized_order=[1, 0], total_distance=3.0)
    ]

    updated = engine.update_assignment("a1", {"status": "completed"})

    assert updated.optimized_order == [1, 0]
    assert updated.total_distance == 3.0
    assert ("daily_route_assignments", "select") not in fake_db.requests
