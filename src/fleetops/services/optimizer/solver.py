"""OR-Tools open-path sequencing from a fixed start location."""

from __future__ import annotations

import logging
from typing import Sequence

from ortools.constraint_solver import pywrapcp, routing_enums_pb2

from ...config import settings

# Cost used for unreachable legs so the solver avoids them without treating them as free.
LARGE_PENALTY = 999999999

logger = logging.getLogger(__name__)


def _prepare_matrix(matrix: Sequence[Sequence[float | None]]) -> list[list[int]]:
    prepared = [
        [int(round(value)) if value is not None else LARGE_PENALTY for value in row]
        for row in matrix
    ]
    # Open path: returning to the start costs nothing.
    for row in prepared:
        row[0] = 0
    return prepared


def solve_open_path(distance_matrix: Sequence[Sequence[float | None]], time_limit_seconds: int | None = None) -> list[int]:
    """Order the stops of a square matrix whose node 0 is the start location.

    Returns stop indices (0-based over nodes 1..n) in visiting order.
    """
    node_count = len(distance_matrix)
    if node_count < 2:
        raise ValueError(f"Insufficient locations for routing: {node_count} (need start + 1 stop)")
    if any(len(row) != node_count for row in distance_matrix):
        raise ValueError("Distance matrix must be square.")
    if node_count == 2:
        return [0]

    matrix = _prepare_matrix(distance_matrix)
    manager = pywrapcp.RoutingIndexManager(node_count, 1, 0)
    routing = pywrapcp.RoutingModel(manager)

    def distance_callback(from_index: int, to_index: int) -> int:
        from_node = manager.IndexToNode(from_index)
        to_node = manager.IndexToNode(to_index)
        return matrix[from_node][to_node]

    transit_callback_index = routing.RegisterTransitCallback(distance_callback)
    routing.SetArcCostEvaluatorOfAllVehicles(transit_callback_index)

    search_parameters = pywrapcp.DefaultRoutingSearchParameters()
    search_parameters.first_solution_strategy = (
        routing_enums_pb2.FirstSolutionStrategy.PATH_CHEAPEST_ARC
    )
    limit = settings.solver_time_limit_seconds if time_limit_seconds is None else time_limit_seconds
    if limit > 0:
        search_parameters.time_limit.FromSeconds(limit)

    solution = routing.SolveWithParameters(search_parameters)
    if not solution:
        logger.warning(f"OR-Tools found no sequence for {node_count - 1} stops, keeping input order")
        return list(range(node_count - 1))

    order: list[int] = []
    index = routing.Start(0)
    while not routing.IsEnd(index):
        node = manager.IndexToNode(index)
        if node != 0:
            order.append(node - 1)
        index = solution.Value(routing.NextVar(index))
    return order
