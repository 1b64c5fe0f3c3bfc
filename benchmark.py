"""
TSP Benchmark Harness
Runs several solvers on the same cities, times each one and ranks the
results by tour length (best first).
"""

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import pandas as pd
from tqdm import tqdm

from tsp_core import City, Tour
from solver_base import TSPSolver, check_cancelled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BenchmarkResult:
    solver_name: str
    length: float
    duration: float  # seconds
    tour: Tour


class _EitherSet:
    """Cancel signal that fires when the caller's or the harness' event is set."""

    def __init__(self, *events):
        self.events = [e for e in events if e is not None]

    def is_set(self) -> bool:
        return any(e.is_set() for e in self.events)


class TSPBenchmark:
    """
    Compare solvers on one problem instance.

    Solvers run concurrently, each building its own distance matrix and
    tours. If any solver fails or is cancelled, the others are asked to stop
    and the error is re-raised; no partial result list is returned.
    """

    def __init__(self, max_workers: Optional[int] = None, show_progress: bool = False):
        self.max_workers = max_workers
        self.show_progress = show_progress

    def _timed(self, solver: TSPSolver, cities: Sequence[City], cancel) -> BenchmarkResult:
        start = time.perf_counter()
        tour = solver.solve(cities, cancel)
        elapsed = time.perf_counter() - start
        logger.info("%s: length %.2f in %.3fs", solver.name, tour.total_length(), elapsed)
        return BenchmarkResult(solver.name, tour.total_length(), elapsed, tour)

    def run(
        self,
        cities: Sequence[City],
        solvers: Iterable[TSPSolver],
        cancel=None,
    ) -> List[BenchmarkResult]:
        solvers = list(solvers)
        cities = list(cities)
        check_cancelled(cancel, "benchmark")
        if not solvers:
            return []

        abort = threading.Event()
        signal = _EitherSet(cancel, abort)
        workers = self.max_workers or len(solvers)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._timed, s, cities, signal) for s in solvers]
            with tqdm(total=len(futures), desc="Benchmark", disable=not self.show_progress) as bar:
                pending = set(futures)
                while pending:
                    done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                    bar.update(len(done))
                    failed = [f for f in done if f.exception() is not None]
                    if failed:
                        abort.set()
                        for f in pending:
                            f.cancel()
                        raise failed[0].exception()

        results = [f.result() for f in futures]
        return sorted(results, key=lambda r: r.length)

    @staticmethod
    def to_frame(results: Sequence[BenchmarkResult]) -> pd.DataFrame:
        """Results as a table, one row per solver, ranked best first."""
        rows = []
        best = results[0].length if results else 0.0
        for rank, r in enumerate(results, start=1):
            rows.append({
                "rank": rank,
                "solver": r.solver_name,
                "length": r.length,
                "time_ms": r.duration * 1000.0,
                "pct_from_best": ((r.length - best) / best * 100.0) if best > 0 else 0.0,
            })
        return pd.DataFrame(rows, columns=["rank", "solver", "length", "time_ms", "pct_from_best"])

    @classmethod
    def format_results(cls, results: Sequence[BenchmarkResult]) -> str:
        lines = ["", "=== TSP Solver Benchmark Results ==="]
        if not results:
            lines.append("(no solvers were run)")
            return "\n".join(lines)

        lines.append(f"{'Rank':<5} {'Solver':<20} {'Length':<15} {'Time (ms)':<10} {'% from Best':<12}")
        lines.append("-" * 75)
        for row in cls.to_frame(results).itertuples(index=False):
            pct = f"{row.pct_from_best:.2f}%"
            lines.append(
                f"{row.rank:<5} {row.solver:<20} {row.length:<15.2f} "
                f"{row.time_ms:<10.1f} {pct:<12}"
            )
        return "\n".join(lines)
