import os
import re
from typing import Dict, List, Optional, Tuple

import numpy as np

from tsp_core import City, TSPValidationError


_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_COORD_LINE = re.compile(rf"^(\S+)\s+({_NUMBER})\s+({_NUMBER})(?:\s|$)")
_HEADER_LINE = re.compile(r"^([A-Za-z_]+)\s*:\s*(.*)$")


def _read_header(lines: List[str]) -> Tuple[Dict[str, str], int]:
    """Collect "KEY : value" header lines; return them and where the coordinates start."""
    header: Dict[str, str] = {}
    for i, line in enumerate(lines):
        if line.upper().startswith("NODE_COORD_SECTION"):
            return header, i + 1
        match = _HEADER_LINE.match(line)
        if match is None:
            # bare coordinate file, no header at all
            return header, i
        header[match.group(1).upper()] = match.group(2).strip()
    return header, len(lines)


def load_tsp_file(path) -> List[City]:
    """
    Load a TSPLIB file (or a bare "<label> <x> <y>" listing).

    Cities get ids 0..n-1 in file order and are named after their node
    labels. Coordinates may be signed or in scientific notation. When the
    header declares a DIMENSION, the number of nodes read must match it.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"TSP file not found: {path}")

    with open(path, "r") as f:
        lines = [line.strip() for line in f]
    lines = [line for line in lines if line]

    header, start = _read_header(lines)

    cities: List[City] = []
    for line in lines[start:]:
        if line.upper() == "EOF" or line.upper().endswith("_SECTION"):
            break
        match = _COORD_LINE.match(line)
        if match is None:
            raise TSPValidationError(f"Malformed coordinate line {line!r} in: {path}")
        label, x, y = match.groups()
        cities.append(City(len(cities), label, float(x), float(y)))

    if not cities:
        raise TSPValidationError(f"No coordinates parsed in: {path}")

    if "DIMENSION" in header:
        try:
            dimension = int(header["DIMENSION"])
        except ValueError:
            raise TSPValidationError(f"Invalid DIMENSION {header['DIMENSION']!r} in: {path}") from None
        if dimension != len(cities):
            raise TSPValidationError(
                f"{path} declares DIMENSION {dimension} but lists {len(cities)} nodes"
            )

    return cities


def generate_random_cities(
    n: int, width: float = 100, height: float = 100, seed: Optional[int] = None
) -> List[City]:
    """Cities placed uniformly at random in a width x height box."""
    rng = np.random.default_rng(seed)
    xs = rng.uniform(0, width, n)
    ys = rng.uniform(0, height, n)
    return [City(i, f"City_{i}", float(xs[i]), float(ys[i])) for i in range(n)]


def generate_circle_cities(n: int, radius: float = 50, center_x: float = 50, center_y: float = 50) -> List[City]:
    """Cities evenly spaced on a circle; the optimal tour follows the circle."""
    cities = []
    for i in range(n):
        angle = 2 * np.pi * i / n
        x = center_x + radius * np.cos(angle)
        y = center_y + radius * np.sin(angle)
        cities.append(City(i, f"City_{i}", float(x), float(y)))
    return cities


def generate_grid_cities(rows: int, cols: int, spacing: float = 10) -> List[City]:
    cities = []
    for row in range(rows):
        for col in range(cols):
            idx = len(cities)
            cities.append(City(idx, f"City_{idx}", col * spacing, row * spacing))
    return cities
