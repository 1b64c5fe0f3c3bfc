import math

import numpy as np
import pytest

from tsp_core import City, DistanceMatrix, Tour, TSPValidationError


# ---------------------------------------
# City
# ---------------------------------------

def test_city_fields():
    city = City(1, "TestCity", 10.5, 20.3)
    assert (city.id, city.name, city.x, city.y) == (1, "TestCity", 10.5, 20.3)


def test_distance_three_four_five():
    assert City(1, "a", 0, 0).distance_to(City(2, "b", 3, 4)) == pytest.approx(5.0, abs=1e-2)


@pytest.mark.parametrize(
    "x1, y1, x2, y2, expected",
    [(0, 0, 1, 0, 1.0), (0, 0, 0, 1, 1.0), (1, 1, 4, 5, 5.0), (-1, -1, 2, 3, 5.0), (-5, -10, 5, 10, math.sqrt(500))],
)
def test_distance_various(x1, y1, x2, y2, expected):
    assert City(1, "a", x1, y1).distance_to(City(2, "b", x2, y2)) == pytest.approx(expected)


def test_distance_to_self_is_zero():
    city = City(1, "a", 10, 20)
    assert city.distance_to(city) == 0.0


def test_city_equality_and_hash():
    a = City(1, "TestCity", 10, 20)
    b = City(1, "TestCity", 10, 20)
    c = City(2, "TestCity", 10, 20)
    assert a == b
    assert hash(a) == hash(b)
    assert a != c


def test_city_is_immutable():
    city = City(1, "a", 0, 0)
    with pytest.raises(AttributeError):
        city.x = 5


@pytest.mark.parametrize("x, y", [(float("nan"), 0), (0, float("inf")), (float("-inf"), 1)])
def test_city_rejects_non_finite(x, y):
    with pytest.raises(TSPValidationError):
        City(1, "a", x, y)


@pytest.mark.parametrize("name", ["", "   ", None])
def test_city_rejects_empty_name(name):
    with pytest.raises(TSPValidationError):
        City(1, name, 0, 0)


def test_city_rejects_non_integer_id():
    with pytest.raises(TSPValidationError):
        City("1", "a", 0, 0)


# ---------------------------------------
# DistanceMatrix
# ---------------------------------------

def test_matrix_is_symmetric_with_zero_diagonal(random_cities):
    dm = DistanceMatrix(random_cities)
    assert dm.matrix.shape == (40, 40)
    assert np.allclose(dm.matrix, dm.matrix.T)
    assert np.all(np.diag(dm.matrix) == 0)
    assert np.all(dm.matrix >= 0)


def test_matrix_matches_city_distances(square_cities):
    dm = DistanceMatrix(square_cities)
    a, _, c, _ = square_cities
    assert dm.distance(a, c) == pytest.approx(math.sqrt(2))
    assert dm.by_index(0, 2) == pytest.approx(math.sqrt(2))


def test_matrix_accepts_sparse_ids():
    cities = [City(10, "a", 0, 0), City(250, "b", 3, 4)]
    dm = DistanceMatrix(cities)
    assert dm.distance(cities[0], cities[1]) == pytest.approx(5.0)


def test_matrix_rejects_duplicate_ids():
    with pytest.raises(TSPValidationError):
        DistanceMatrix([City(1, "a", 0, 0), City(1, "b", 1, 1)])


def test_matrix_rejects_duplicate_names():
    with pytest.raises(TSPValidationError, match="name"):
        DistanceMatrix([City(1, "a", 0, 0), City(2, "a", 1, 1)])


def test_matrix_is_read_only(square_cities):
    dm = DistanceMatrix(square_cities)
    with pytest.raises(ValueError):
        dm.matrix[0, 1] = 3.0


def test_by_index_out_of_range(square_cities):
    dm = DistanceMatrix(square_cities)
    with pytest.raises(IndexError):
        dm.by_index(0, 4)


def test_parallel_matrix_equals_sequential():
    from data_generator import generate_random_cities

    cities = generate_random_cities(600, seed=3)
    assert np.array_equal(DistanceMatrix(cities, workers=4).matrix, DistanceMatrix(cities).matrix)


def test_empty_matrix():
    dm = DistanceMatrix([])
    assert len(dm) == 0


# ---------------------------------------
# Tour
# ---------------------------------------

def test_square_length(square_tour):
    assert square_tour.total_length() == pytest.approx(4.0)


def test_length_includes_closing_edge():
    cities = [City(0, "A", 0, 0), City(1, "B", 1, 0), City(2, "C", 0, 0)]
    tour = Tour(cities, DistanceMatrix(cities))
    assert tour.total_length() == pytest.approx(2.0)


def test_length_of_empty_and_single_tour():
    assert Tour([], DistanceMatrix([])).total_length() == 0.0
    one = [City(0, "A", 5, 5)]
    assert Tour(one, DistanceMatrix(one)).total_length() == 0.0


def test_length_is_cached(square_tour):
    first = square_tour.total_length()
    assert square_tour.total_length() == first
    assert first > 0


def test_swap_exchanges_cities(square_tour, square_cities):
    square_tour.swap(0, 1)
    assert square_tour[0] == square_cities[1]
    assert square_tour[1] == square_cities[0]


def test_swap_same_index_is_noop(square_tour):
    before = square_tour.city_ids()
    square_tour.swap(1, 1)
    assert square_tour.city_ids() == before


def test_swap_invalidates_cache(square_tour):
    assert square_tour.total_length() == pytest.approx(4.0)
    square_tour.swap(1, 2)  # A C B D: crosses the square
    assert square_tour.total_length() == pytest.approx(2 + 2 * math.sqrt(2))


@pytest.mark.parametrize("i, j", [(-1, 0), (0, 4), (4, 4)])
def test_swap_out_of_range(square_tour, i, j):
    with pytest.raises(IndexError):
        square_tour.swap(i, j)


def test_reverse_segment(square_tour):
    square_tour.reverse(1, 2)
    assert [c.name for c in square_tour] == ["A", "C", "B", "D"]
    assert square_tour.total_length() == pytest.approx(2 + 2 * math.sqrt(2))


def test_reverse_whole_range():
    cities = [City(0, "A", 0, 0), City(1, "B", 1, 0), City(2, "C", 2, 0)]
    tour = Tour(cities, DistanceMatrix(cities))
    tour.reverse(0, 2)
    assert [c.name for c in tour] == ["C", "B", "A"]


def test_reverse_single_position_is_noop(square_tour):
    square_tour.reverse(2, 2)
    assert [c.name for c in square_tour] == ["A", "B", "C", "D"]


def test_reverse_rejects_start_after_end(square_tour):
    with pytest.raises(TSPValidationError):
        square_tour.reverse(3, 1)
    assert [c.name for c in square_tour] == ["A", "B", "C", "D"]


def test_edge_delta_matches_applied_move(random_cities):
    tour = Tour(random_cities, DistanceMatrix(random_cities))
    n = len(tour)
    for i, j in [(0, 5), (3, 17), (10, n - 1), (1, 2)]:
        moved = tour.clone()
        before = moved.total_length()
        delta = moved.edge_delta(i, j)
        moved.reverse(i + 1, j)
        assert moved.total_length() - before == pytest.approx(delta, abs=1e-9)


def test_edge_delta_does_not_mutate(square_tour):
    square_tour.total_length()
    square_tour.edge_delta(0, 2)
    assert square_tour.city_ids() == [0, 1, 2, 3]
    assert square_tour.total_length() == pytest.approx(4.0)


@pytest.mark.parametrize("i, j", [(-1, 2), (0, 4), (4, 0), (1, -2)])
def test_edge_delta_out_of_range(square_tour, i, j):
    with pytest.raises(IndexError):
        square_tour.edge_delta(i, j)


def test_clone_is_independent(square_tour):
    copy = square_tour.clone()
    copy.swap(0, 3)
    assert square_tour.city_ids() == [0, 1, 2, 3]
    assert copy.city_ids() == [3, 1, 2, 0]
    assert copy.distances is square_tour.distances


def test_str_shows_closed_route(square_tour):
    text = str(square_tour)
    assert "4.00" in text
    assert "A -> B -> C -> D -> A" in text
