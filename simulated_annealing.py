"""
Simulated Annealing Solver
Random 2-opt moves accepted by the Metropolis criterion under a geometric
cooling schedule, starting from a nearest-neighbor tour.
"""

import logging
import math
import random
from typing import List, Optional

from tsp_core import City, Tour, TSPValidationError
from solver_base import TSPSolver, check_cancelled
from nearest_neighbor import nearest_neighbor_tour

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 100


class SimulatedAnnealingSolver(TSPSolver):
    """
    Simulated annealing over 2-opt moves.

    Args:
        initial_temperature: Starting temperature (> 0)
        cooling_rate: Multiplier applied after each temperature level, in (0, 1)
        iterations_per_temperature: Moves tried at each temperature level
        min_temperature: The search stops once the temperature drops below this
        seed: Optional seed; the same seed gives the same tour on every solve()
    """

    name = "Simulated Annealing"

    def __init__(
        self,
        initial_temperature: float = 10000.0,
        cooling_rate: float = 0.995,
        iterations_per_temperature: int = 100,
        min_temperature: float = 0.1,
        seed: Optional[int] = None,
    ):
        super().__init__(workers=1)
        if not initial_temperature > 0 or not math.isfinite(initial_temperature):
            raise TSPValidationError(f"initial_temperature must be > 0, got {initial_temperature}")
        if not 0 < cooling_rate < 1:
            raise TSPValidationError(f"cooling_rate must be in (0, 1), got {cooling_rate}")
        if int(iterations_per_temperature) < 1:
            raise TSPValidationError(
                f"iterations_per_temperature must be a positive integer, got {iterations_per_temperature}"
            )
        if not min_temperature > 0:
            raise TSPValidationError(f"min_temperature must be > 0, got {min_temperature}")

        self.initial_temperature = float(initial_temperature)
        self.cooling_rate = float(cooling_rate)
        self.iterations_per_temperature = int(iterations_per_temperature)
        self.min_temperature = float(min_temperature)
        self.seed = seed

    def _solve(self, cities: List[City], cancel) -> Tour:
        distances = self._build_matrix(cities)
        seed_tour = nearest_neighbor_tour(distances, cancel)
        if len(seed_tour) <= 2:
            return seed_tour
        return self.anneal(seed_tour, cancel)

    def anneal(self, initial: Tour, cancel=None) -> Tour:
        rng = random.Random(self.seed)
        n = len(initial)

        current = initial.clone()
        current_len = current.total_length()
        best = current.clone()
        best_len = current_len

        temperature = self.initial_temperature
        step = 0
        levels = 0

        while temperature > self.min_temperature:
            for _ in range(self.iterations_per_temperature):
                check_cancelled(cancel, self.name)

                i, j = rng.sample(range(1, n), 2)
                if i > j:
                    i, j = j, i
                delta = current.edge_delta(i - 1, j)

                if delta < 0 or rng.random() < math.exp(-delta / temperature):
                    current.reverse(i, j)
                    current_len += delta
                    if current_len < best_len:
                        best = current.clone()
                        best_len = current_len

                step += 1
                if step % PROGRESS_EVERY == 0:
                    self._notify(step, best_len, f"Temperature: {temperature:.2f}, Best: {best_len:.2f}")

            temperature *= self.cooling_rate
            levels += 1

        logger.debug("%s: %d steps over %d temperature levels", self.name, step, levels)

        # current_len was tracked incrementally; recompute from the edges
        best.invalidate_cache()
        return best
