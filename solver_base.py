"""
TSP Solver - Solver Interface
Common contract shared by every algorithm: a name, a solve() entry point,
progress callbacks and cooperative cancellation.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Sequence

from tsp_core import City, DistanceMatrix, Tour, TSPValidationError

logger = logging.getLogger(__name__)


class SolverCancelled(Exception):
    """Raised when the caller's cancel signal is set while a solver runs."""


@dataclass(frozen=True)
class Progress:
    """Snapshot emitted by a solver while it searches."""

    iteration: int
    best_length: float
    message: str = ""


ProgressCallback = Callable[[Progress], None]


def check_cancelled(cancel, solver_name: str = "solver"):
    """`cancel` is anything with is_set(), typically a threading.Event."""
    if cancel is not None and cancel.is_set():
        raise SolverCancelled(f"{solver_name} cancelled")


class TSPSolver(ABC):
    """Base class for TSP solvers."""

    name: str = "base"

    def __init__(self, workers: int = 1):
        if int(workers) < 1:
            raise TSPValidationError(f"workers must be >= 1, got {workers}")
        self.workers = int(workers)
        self._listeners: List[ProgressCallback] = []

    def add_progress_listener(self, callback: ProgressCallback):
        self._listeners.append(callback)

    def remove_progress_listener(self, callback: ProgressCallback):
        self._listeners.remove(callback)

    def _notify(self, iteration: int, best_length: float, message: str = ""):
        if not self._listeners:
            return
        event = Progress(iteration, best_length, message)
        for callback in self._listeners:
            callback(event)

    def _build_matrix(self, cities: Sequence[City]) -> DistanceMatrix:
        return DistanceMatrix(cities, workers=self.workers)

    def solve(self, cities: Sequence[City], cancel=None) -> Tour:
        """
        Solve the TSP over `cities` and return the best tour found.

        Args:
            cities: Cities to visit; ids must be unique
            cancel: Optional cancel signal (threading.Event or similar)

        Raises:
            TSPValidationError: invalid input
            SolverCancelled: the cancel signal was set
        """
        if cities is None:
            raise TSPValidationError("cities must not be None")
        cities = list(cities)
        for city in cities:
            if not isinstance(city, City):
                raise TSPValidationError(f"Expected City instances, got {type(city).__name__}")
        check_cancelled(cancel, self.name)

        logger.info("%s: solving %d cities", self.name, len(cities))
        tour = self._solve(cities, cancel)
        logger.info("%s: finished with length %.2f", self.name, tour.total_length())
        return tour

    @abstractmethod
    def _solve(self, cities: List[City], cancel) -> Tour:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r})"
