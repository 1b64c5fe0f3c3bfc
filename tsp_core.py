"""
TSP Solver - Core Module
Contains the fundamental data structures for representing the TSP problem:
cities, the precomputed distance matrix and the mutable tour.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from parallel import chunk_ranges, parallel_map

logger = logging.getLogger(__name__)

# Below this size the whole matrix is computed in one vectorised step.
PARALLEL_MATRIX_THRESHOLD = 500


class TSPValidationError(ValueError):
    """Raised when cities, tours or solver settings are invalid."""


@dataclass(frozen=True)
class City:
    """Represents a city with an id, a display name and x, y coordinates."""

    id: int
    name: str = field(compare=False)
    x: float
    y: float

    def __post_init__(self):
        if not isinstance(self.id, (int, np.integer)) or isinstance(self.id, bool):
            raise TSPValidationError(f"City id must be an integer, got {self.id!r}")
        if not isinstance(self.name, str) or not self.name.strip():
            raise TSPValidationError(f"City {self.id} must have a non-empty name")
        for axis in ("x", "y"):
            value = getattr(self, axis)
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise TSPValidationError(
                    f"City {self.name!r}: {axis} must be a number, got {value!r}"
                ) from None
            if not math.isfinite(value):
                raise TSPValidationError(f"City {self.name!r}: {axis} must be finite, got {value}")
            object.__setattr__(self, axis, value)
        object.__setattr__(self, "id", int(self.id))

    def distance_to(self, city: "City") -> float:
        """Calculate Euclidean distance to another city."""
        return math.hypot(self.x - city.x, self.y - city.y)

    def __repr__(self):
        return f"City({self.id}, {self.name!r}, {self.x:.2f}, {self.y:.2f})"


class DistanceMatrix:
    """
    Precomputed, symmetric distance matrix for efficient distance lookups.

    Rows are addressed by a dense index assigned in input order, so city ids
    only need to be unique. The numpy array is kept for vectorised access;
    inner loops go through `distance` / `by_index`, which read a flat
    row-major list.
    """

    def __init__(self, cities: Sequence[City], workers: int = 1):
        self.cities = list(cities)
        self.n = len(self.cities)
        self.city_to_index = {}
        names = set()
        for i, city in enumerate(self.cities):
            if city.id in self.city_to_index:
                raise TSPValidationError(f"Duplicate city id {city.id} ({city.name!r})")
            if city.name in names:
                raise TSPValidationError(f"Duplicate city name {city.name!r} (id {city.id})")
            self.city_to_index[city.id] = i
            names.add(city.name)

        self.matrix = self._build(workers)
        self._flat: List[float] = self.matrix.ravel().tolist()

    def _build(self, workers: int) -> np.ndarray:
        if self.n == 0:
            return np.zeros((0, 0))

        xs = np.array([c.x for c in self.cities], dtype=float)
        ys = np.array([c.y for c in self.cities], dtype=float)

        def rows(bounds: Tuple[int, int]) -> np.ndarray:
            lo, hi = bounds
            return np.hypot(xs[lo:hi, None] - xs[None, :], ys[lo:hi, None] - ys[None, :])

        if workers > 1 and self.n >= PARALLEL_MATRIX_THRESHOLD:
            blocks = parallel_map(rows, chunk_ranges(0, self.n, workers), workers)
            matrix = np.vstack(blocks)
            logger.debug("Built %dx%d distance matrix on %d workers", self.n, self.n, workers)
        else:
            matrix = rows((0, self.n))

        if not np.all(np.isfinite(matrix)):
            raise TSPValidationError("Distance matrix contains non-finite values")
        matrix.setflags(write=False)
        return matrix

    def distance(self, city1: City, city2: City) -> float:
        """Get precomputed distance between two cities."""
        index = self.city_to_index
        return self._flat[index[city1.id] * self.n + index[city2.id]]

    def by_index(self, i: int, j: int) -> float:
        """Get distance by row indices."""
        if not (0 <= i < self.n and 0 <= j < self.n):
            raise IndexError(f"Matrix index ({i}, {j}) out of range for size {self.n}")
        return self._flat[i * self.n + j]

    def __len__(self):
        return self.n


class Tour:
    """
    Represents a tour (solution) as an ordered sequence of cities.

    The total length is cached and invalidated by every mutation, so reads
    are O(1) between moves and never stale.
    """

    def __init__(self, cities: Sequence[City], distances: DistanceMatrix):
        self.cities: List[City] = list(cities)
        self.distances = distances
        self._length: Optional[float] = None

    # ---------------------------------------
    # Length
    # ---------------------------------------

    def total_length(self) -> float:
        """Total length of the closed tour, including the edge back to the start."""
        if self._length is not None:
            return self._length

        n = len(self.cities)
        if n < 2:
            self._length = 0.0
            return self._length

        dist = self.distances.distance
        cities = self.cities
        length = 0.0
        for i in range(n - 1):
            length += dist(cities[i], cities[i + 1])
        length += dist(cities[-1], cities[0])

        self._length = length
        return length

    def invalidate_cache(self):
        self._length = None

    # ---------------------------------------
    # Moves
    # ---------------------------------------

    def _check_index(self, index: int):
        if not 0 <= index < len(self.cities):
            raise IndexError(f"Tour index {index} out of range for {len(self.cities)} cities")

    def swap(self, i: int, j: int):
        """Exchange the cities at positions i and j."""
        self._check_index(i)
        self._check_index(j)
        if i == j:
            return
        self.cities[i], self.cities[j] = self.cities[j], self.cities[i]
        self._length = None

    def reverse(self, start: int, end: int):
        """Reverse the closed range [start, end] in place."""
        self._check_index(start)
        self._check_index(end)
        if start > end:
            raise TSPValidationError(f"reverse() needs start <= end, got {start} > {end}")
        cities = self.cities
        while start < end:
            cities[start], cities[end] = cities[end], cities[start]
            start += 1
            end -= 1
        self._length = None

    def edge_delta(self, i: int, j: int) -> float:
        """
        Length change of the 2-opt exchange of edges (i, i+1) and (j, j+1)
        for (i, j) and (i+1, j+1), without applying it.

        Positions wrap around, so j = n - 1 refers to the closing edge.
        Applying the move means reversing positions i+1 .. j.
        """
        self._check_index(i)
        self._check_index(j)
        cities = self.cities
        n = len(cities)
        dist = self.distances.distance
        a, b = cities[i], cities[(i + 1) % n]
        c, d = cities[j], cities[(j + 1) % n]
        return dist(a, c) + dist(b, d) - dist(a, b) - dist(c, d)

    def clone(self) -> "Tour":
        """Independent copy sharing the same distance matrix."""
        copy = Tour(self.cities, self.distances)
        copy._length = self._length
        return copy

    def city_ids(self) -> List[int]:
        return [c.id for c in self.cities]

    def __len__(self):
        return len(self.cities)

    def __getitem__(self, index):
        return self.cities[index]

    def __iter__(self) -> Iterator[City]:
        return iter(self.cities)

    def __repr__(self):
        return f"Tour(cities={len(self.cities)}, length={self.total_length():.2f})"

    def __str__(self):
        if not self.cities:
            return "Tour Length: 0.00\nRoute: (empty)"
        route = " -> ".join(c.name for c in self.cities)
        return f"Tour Length: {self.total_length():.2f}\nRoute: {route} -> {self.cities[0].name}"
