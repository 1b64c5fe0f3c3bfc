"""
Genetic Algorithm Solver
Population search with tournament selection, order crossover, swap mutation,
elitism and an early stop once the best tour stagnates.
The first city is held fixed so rotations of one cycle are not counted twice.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from tsp_core import City, DistanceMatrix, Tour, TSPValidationError
from solver_base import TSPSolver, check_cancelled
from parallel import chunk_ranges, flatten, parallel_map

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10


class Population:
    """Represents a population of tour solutions."""

    def __init__(self, tours: Optional[List[Tour]] = None):
        self.tours: List[Tour] = tours if tours is not None else []

    def get_fittest(self) -> Tour:
        return min(self.tours, key=lambda tour: tour.total_length())

    def ranked(self) -> List[Tour]:
        return sorted(self.tours, key=lambda tour: tour.total_length())

    def get_average_length(self) -> float:
        return float(np.mean([t.total_length() for t in self.tours]))

    def __len__(self):
        return len(self.tours)


@dataclass
class GARun:
    """Outcome of one evolution: the best tour plus the trace of how it was found."""

    best: Tour
    population: Optional[Population] = None
    generation: int = 0
    best_length_history: List[float] = field(default_factory=list)


class GeneticAlgorithmSolver(TSPSolver):
    """
    Genetic Algorithm solver for TSP.

    Every random individual and every offspring draws from its own stream,
    seeded from the solver's master generator. Results with a fixed seed are
    therefore the same whatever the number of workers.
    """

    name = "Genetic Algorithm"

    def __init__(
        self,
        population_size: int = 100,
        generations: int = 500,
        mutation_rate: float = 0.02,
        elitism_rate: float = 0.2,
        tournament_size: int = 5,
        stagnation_limit: Optional[int] = None,
        workers: int = 1,
        seed: Optional[int] = None,
    ):
        super().__init__(workers)
        if int(population_size) < 1:
            raise TSPValidationError(f"population_size must be > 0, got {population_size}")
        if int(generations) < 0:
            raise TSPValidationError(f"generations must be >= 0, got {generations}")
        if not 0.0 <= mutation_rate <= 1.0:
            raise TSPValidationError(f"mutation_rate must be in [0, 1], got {mutation_rate}")
        if not 0.0 <= elitism_rate <= 1.0:
            raise TSPValidationError(f"elitism_rate must be in [0, 1], got {elitism_rate}")
        if int(tournament_size) < 1:
            raise TSPValidationError(f"tournament_size must be > 0, got {tournament_size}")
        if stagnation_limit is not None and int(stagnation_limit) < 1:
            raise TSPValidationError(f"stagnation_limit must be > 0, got {stagnation_limit}")

        self.population_size = int(population_size)
        self.generations = int(generations)
        self.mutation_rate = float(mutation_rate)
        self.elitism_rate = float(elitism_rate)
        self.tournament_size = int(tournament_size)
        if stagnation_limit is None:
            stagnation_limit = min(500, max(50, self.generations // 4))
        self.stagnation_limit = int(stagnation_limit)
        self.seed = seed

    @classmethod
    def scaled(cls, city_count: int, seed: Optional[int] = None, workers: int = 1) -> "GeneticAlgorithmSolver":
        """Parameters that grow with the problem size, bounded for very large inputs."""
        if city_count < 0:
            raise TSPValidationError(f"city_count must be >= 0, got {city_count}")
        return cls(
            population_size=min(max(200, city_count * 2), 1000),
            generations=min(max(1000, city_count * 10), 5000),
            mutation_rate=0.1,
            elitism_rate=0.1,
            workers=workers,
            seed=seed,
        )

    # ---------------------------------------
    # Initialization
    # ---------------------------------------

    def random_tour(self, distances: DistanceMatrix, rng: random.Random) -> Tour:
        cities = distances.cities
        rest = cities[1:]
        rng.shuffle(rest)
        return Tour([cities[0]] + rest, distances)

    def initialize(self, distances: DistanceMatrix, rng: random.Random) -> Population:
        seeds = [rng.getrandbits(64) for _ in range(self.population_size)]

        def build(bounds):
            lo, hi = bounds
            return [self.random_tour(distances, random.Random(s)) for s in seeds[lo:hi]]

        tours = flatten(parallel_map(build, chunk_ranges(0, len(seeds), self.workers), self.workers))
        return Population(tours)

    # ---------------------------------------
    # Genetic operators
    # ---------------------------------------

    def tournament_selection(self, population: Population, rng: random.Random) -> Tour:
        tours = population.tours
        candidates = [tours[rng.randrange(len(tours))] for _ in range(self.tournament_size)]
        return min(candidates, key=lambda t: t.total_length())

    def ordered_crossover(self, parent1: Tour, parent2: Tour, rng: random.Random) -> Tour:
        """
        Copy parent1[start..end] into the child at the same positions, then
        fill the free positions with parent2's remaining cities in order.
        Position 0 always keeps the fixed first city.
        """
        size = len(parent1)
        start = rng.randint(1, size - 1)
        end = rng.randint(start, size - 1)

        child: List[Optional[City]] = [None] * size
        child[0] = parent1.cities[0]
        used = {child[0].id}
        for i in range(start, end + 1):
            child[i] = parent1.cities[i]
            used.add(child[i].id)

        fill = (c for c in parent2.cities if c.id not in used)
        for i in range(1, size):
            if child[i] is None:
                child[i] = next(fill)

        return Tour(child, parent1.distances)

    def swap_mutation(self, tour: Tour, rng: random.Random):
        if rng.random() < self.mutation_rate:
            i, j = rng.sample(range(1, len(tour)), 2)
            tour.swap(i, j)

    def make_child(self, population: Population, rng: random.Random) -> Tour:
        p1 = self.tournament_selection(population, rng)
        p2 = self.tournament_selection(population, rng)
        child = self.ordered_crossover(p1, p2, rng)
        self.swap_mutation(child, rng)
        child.total_length()
        return child

    # ---------------------------------------
    # Single generation evolution
    # ---------------------------------------

    def evolve_generation(self, population: Population, rng: random.Random) -> Population:
        elite_count = int(self.population_size * self.elitism_rate)
        new_tours = [t.clone() for t in population.ranked()[:elite_count]]

        seeds = [rng.getrandbits(64) for _ in range(self.population_size - len(new_tours))]

        def breed(bounds):
            lo, hi = bounds
            return [self.make_child(population, random.Random(s)) for s in seeds[lo:hi]]

        # scatter the offspring, then merge on this thread
        offspring = parallel_map(breed, chunk_ranges(0, len(seeds), self.workers), self.workers)
        new_tours.extend(flatten(offspring))
        return Population(new_tours)

    # ---------------------------------------
    # Solve
    # ---------------------------------------

    def _solve(self, cities: List[City], cancel) -> Tour:
        return self.evolve(self._build_matrix(cities), cancel).best

    def evolve(self, distances: DistanceMatrix, cancel=None) -> GARun:
        """
        Run the search over `distances`.
        All run state lives in the returned GARun, so one solver instance can
        serve several runs at the same time.
        """
        # up to three cities every ordering has the same length
        if len(distances) <= 3:
            tour = Tour(distances.cities, distances)
            return GARun(best=tour, best_length_history=[tour.total_length()])

        rng = random.Random(self.seed)
        population = self.initialize(distances, rng)

        best = population.get_fittest().clone()
        best_len = best.total_length()
        run = GARun(best=best, population=population, best_length_history=[best_len])
        stagnant = 0

        for gen in range(self.generations):
            check_cancelled(cancel, self.name)

            run.population = self.evolve_generation(run.population, rng)
            run.generation = gen + 1

            fittest = run.population.get_fittest()
            if fittest.total_length() < best_len:
                run.best = fittest.clone()
                best_len = run.best.total_length()
                stagnant = 0
            else:
                stagnant += 1
            run.best_length_history.append(best_len)

            if gen % PROGRESS_EVERY == 0:
                self._notify(gen, best_len, f"Generation {gen}, Best: {best_len:.2f}")

            if stagnant >= self.stagnation_limit:
                logger.debug("%s: stopping after %d stagnant generations", self.name, stagnant)
                break

        return run
