"""
Nearest Neighbor Solver
Greedy constructor: always travel to the closest unvisited city.
Also used as the seeding step for the 2-opt and annealing solvers.
"""

import logging
from typing import Callable, List, Optional

from tsp_core import City, DistanceMatrix, Tour
from solver_base import TSPSolver, check_cancelled

logger = logging.getLogger(__name__)


def nearest_neighbor_tour(
    distances: DistanceMatrix,
    cancel=None,
    on_step: Optional[Callable[[int, Tour, City], None]] = None,
) -> Tour:
    """
    Build a tour starting at the first city of `distances`.

    `on_step(step, partial_tour, added_city)` is called after every city
    that is appended; it is the hook used for progress reporting.
    """
    cities = distances.cities
    n = len(cities)
    if n < 2:
        return Tour(cities, distances)

    visited = [False] * n
    visited[0] = True
    order = [0]
    cur = 0

    for step in range(1, n):
        check_cancelled(cancel, "Nearest Neighbor")

        nearest = -1
        nearest_d = float("inf")
        for j in range(n):
            if not visited[j]:
                d = distances.by_index(cur, j)
                if d < nearest_d:
                    nearest = j
                    nearest_d = d

        visited[nearest] = True
        order.append(nearest)
        cur = nearest

        if on_step is not None:
            on_step(step, Tour([cities[i] for i in order], distances), cities[nearest])

    tour = Tour([cities[i] for i in order], distances)
    logger.debug("Nearest neighbor tour over %d cities: %.2f", n, tour.total_length())
    return tour


class NearestNeighborSolver(TSPSolver):
    """Greedy nearest-neighbor construction, O(n^2)."""

    name = "Nearest Neighbor"

    def _solve(self, cities: List[City], cancel) -> Tour:
        distances = self._build_matrix(cities)
        n = len(cities)
        # report every city on small inputs, ~100 times on large ones
        cadence = max(1, n // 100)

        def report(step: int, partial: Tour, added: City):
            if step % cadence == 0 or step == n - 1:
                self._notify(step, partial.total_length(), f"Added city {added.name}")

        return nearest_neighbor_tour(distances, cancel, on_step=report if self._listeners else None)
