import threading

import pytest

from tsp_core import City, DistanceMatrix, Tour
from data_generator import generate_random_cities


@pytest.fixture
def square_cities():
    return [
        City(0, "A", 0, 0),
        City(1, "B", 1, 0),
        City(2, "C", 1, 1),
        City(3, "D", 0, 1),
    ]


@pytest.fixture
def square_tour(square_cities):
    return Tour(square_cities, DistanceMatrix(square_cities))


@pytest.fixture
def random_cities():
    return generate_random_cities(40, seed=42)


@pytest.fixture
def cancelled():
    event = threading.Event()
    event.set()
    return event


@pytest.fixture
def assert_permutation():
    def check(tour, cities):
        ids = tour.city_ids()
        assert len(ids) == len(cities)
        assert sorted(ids) == sorted(c.id for c in cities)

    return check
