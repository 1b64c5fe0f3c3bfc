"""
2-Opt Local Search Solver
Starts from a nearest-neighbor tour and applies the best improving 2-opt
move per pass until no move helps or the pass budget is spent.
Large instances scan candidate moves on a worker pool.
"""

import logging
from typing import List, Optional, Tuple

from tsp_core import City, Tour, TSPValidationError
from solver_base import TSPSolver, check_cancelled
from nearest_neighbor import nearest_neighbor_tour
from parallel import chunk_ranges, parallel_map

logger = logging.getLogger(__name__)

# Moves must gain at least this much; smaller deltas are float noise.
IMPROVEMENT_EPSILON = 1e-3

# (delta, i, j): reversing tour positions i..j changes the length by delta
Move = Tuple[float, int, int]


def best_move_in_range(tour: Tour, lo: int, hi: int, cancel=None) -> Optional[Move]:
    """
    Best 2-opt move whose segment starts in [lo, hi).

    Only reads the tour, so several ranges can be scanned concurrently.
    Ties keep the first (lowest i, then j) candidate.
    """
    n = len(tour)
    delta_of = tour.edge_delta
    best: Optional[Move] = None
    best_delta = -IMPROVEMENT_EPSILON

    for i in range(max(lo, 1), min(hi, n - 1)):
        check_cancelled(cancel, "2-Opt")
        # reversing 1..n-1 only flips the direction of the whole tour
        last = n - 1 if i > 1 else n - 2
        for j in range(i + 1, last + 1):
            delta = delta_of(i - 1, j)
            if delta < best_delta:
                best_delta = delta
                best = (delta, i, j)
    return best


def reduce_moves(candidates: List[Optional[Move]]) -> Optional[Move]:
    """Pick the global best of per-worker results; ties go to the lowest (i, j)."""
    best: Optional[Move] = None
    for move in candidates:
        if move is None:
            continue
        if best is None or move < best:
            best = move
    return best


class TwoOptSolver(TSPSolver):
    """
    2-opt improvement over a nearest-neighbor seed.

    The solver never returns a tour longer than its seed.
    """

    name = "2-Opt"

    def __init__(self, max_iterations: int = 1000, workers: int = 1, parallel_threshold: int = 200):
        super().__init__(workers)
        if int(max_iterations) < 1:
            raise TSPValidationError(f"max_iterations must be a positive integer, got {max_iterations}")
        if int(parallel_threshold) < 0:
            raise TSPValidationError(f"parallel_threshold must be >= 0, got {parallel_threshold}")
        self.max_iterations = int(max_iterations)
        self.parallel_threshold = int(parallel_threshold)

    def _solve(self, cities: List[City], cancel) -> Tour:
        distances = self._build_matrix(cities)
        seed = nearest_neighbor_tour(distances, cancel)
        self._notify(0, seed.total_length(), "Nearest neighbor seed")

        improved = self.improve(seed.clone(), cancel)

        if improved.total_length() > seed.total_length() + IMPROVEMENT_EPSILON:
            logger.warning(
                "%s: optimised tour (%.4f) is worse than its seed (%.4f); returning the seed",
                self.name, improved.total_length(), seed.total_length(),
            )
            return seed
        return improved

    def improve(self, tour: Tour, cancel=None) -> Tour:
        """Improve `tour` in place and return it."""
        n = len(tour)
        if n < 4:
            return tour

        use_pool = self.workers > 1 and n > self.parallel_threshold
        ranges = chunk_ranges(1, n - 1, self.workers * 4) if use_pool else [(1, n - 1)]

        for iteration in range(1, self.max_iterations + 1):
            check_cancelled(cancel, self.name)

            if use_pool:
                move = reduce_moves(parallel_map(
                    lambda bounds: best_move_in_range(tour, bounds[0], bounds[1], cancel),
                    ranges,
                    self.workers,
                ))
            else:
                move = best_move_in_range(tour, 1, n - 1, cancel)

            if move is None:
                logger.debug("%s: local optimum after %d passes", self.name, iteration - 1)
                break

            delta, i, j = move
            tour.reverse(i, j)
            self._notify(iteration, tour.total_length(), f"2-Opt iteration {iteration}, gain {-delta:.3f}")

        return tour
