"""
Solver Factory
Creates solvers by kind, and whole solver sets from a YAML file:

    solvers:
      - type: two_opt
        max_iterations: 500
      - type: genetic_algorithm
        population_size: 150
        seed: 7
"""

import os
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

import yaml

from tsp_core import TSPValidationError
from solver_base import TSPSolver
from nearest_neighbor import NearestNeighborSolver
from two_opt import TwoOptSolver
from simulated_annealing import SimulatedAnnealingSolver
from genetic_algorithm import GeneticAlgorithmSolver


class SolverType(str, Enum):
    NEAREST_NEIGHBOR = "nearest_neighbor"
    TWO_OPT = "two_opt"
    SIMULATED_ANNEALING = "simulated_annealing"
    GENETIC_ALGORITHM = "genetic_algorithm"


SOLVER_CLASSES = {
    SolverType.NEAREST_NEIGHBOR: NearestNeighborSolver,
    SolverType.TWO_OPT: TwoOptSolver,
    SolverType.SIMULATED_ANNEALING: SimulatedAnnealingSolver,
    SolverType.GENETIC_ALGORITHM: GeneticAlgorithmSolver,
}


def create_solver(kind: Union[SolverType, str], **options) -> TSPSolver:
    try:
        kind = SolverType(kind)
    except ValueError:
        known = ", ".join(t.value for t in SolverType)
        raise TSPValidationError(f"Unknown solver type: {kind!r} (expected one of: {known})") from None

    cls = SOLVER_CLASSES[kind]
    try:
        return cls(**options)
    except TypeError as e:
        raise TSPValidationError(f"Invalid options for {kind.value}: {e}") from None


def create_all_solvers(seed: Optional[int] = None) -> Iterator[TSPSolver]:
    """One solver of each kind with default settings."""
    yield NearestNeighborSolver()
    yield TwoOptSolver()
    yield SimulatedAnnealingSolver(seed=seed)
    yield GeneticAlgorithmSolver(seed=seed)


def load_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            obj = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise TSPValidationError(f"Invalid YAML in {path}: {e}") from None
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise TSPValidationError(f"YAML root must be a mapping (dict). Got: {type(obj).__name__} @ {path}")
    return obj


def load_solvers(path: str) -> List[TSPSolver]:
    cfg = load_yaml(path)
    entries = cfg.get("solvers")
    if not isinstance(entries, list) or not entries:
        raise TSPValidationError(f"Missing or invalid 'solvers' list in solver config: {path}")

    solvers = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict) or "type" not in entry:
            raise TSPValidationError(f"solvers[{idx}] in {path} must be a mapping with a 'type' key")
        options = dict(entry)
        kind = options.pop("type")
        solvers.append(create_solver(kind, **options))
    return solvers
