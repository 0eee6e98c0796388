import math

import pytest

from detecporc.geo import GeoPoint
from detecporc.ranking import Filters, nearest, rank
from detecporc.schemas import Point

ORIGIN = GeoPoint(6.4969, 2.6036)


def make_point(id, name, lat, lng, **extra):
    return Point(id=id, name=name, lat=lat, lng=lng, **extra)


@pytest.fixture
def points():
    return [
        make_point(7, "Porc Express", 6.51, 2.607, address="Rue du Port", comment="Livraison locale possible."),
        make_point(1, "Boucherie Porc d'Or", 6.4969, 2.6036, address="Quartier Zogbo"),
        make_point(3, "Chez Mama Porc", 6.4935, 2.6001, comment="Vente a emporter"),
    ]


def test_origin_sorts_by_distance():
    p1 = make_point(1, "P1", 6.4969, 2.6036)
    p2 = make_point(2, "P2", 6.5100, 2.6070)

    ranked = rank([p2, p1], ORIGIN)

    assert [p.id for p in ranked] == [1, 2]
    assert ranked[0].distance == pytest.approx(0, abs=1e-6)
    assert ranked[1].distance > 0


def test_distances_are_non_decreasing(points):
    distances = [p.distance for p in rank(points, ORIGIN)]
    assert distances == sorted(distances)


def test_without_origin_order_and_distance_are_untouched(points):
    ranked = rank(points)
    assert [p.id for p in ranked] == [7, 1, 3]
    assert all(p.distance is None for p in ranked)


def test_equal_distances_keep_input_order():
    twins = [make_point(i, f"T{i}", 6.5, 2.6) for i in (5, 2, 9)]
    assert [p.id for p in rank(twins, ORIGIN)] == [5, 2, 9]


def test_empty_point_set():
    assert rank([], ORIGIN, Filters(query="porc", max_distance_km=1)) == []


def test_query_is_case_insensitive_substring(points):
    assert [p.id for p in rank(points, filters=Filters(query="  DU PORT "))] == [7]
    assert [p.id for p in rank(points, filters=Filters(query="zogbo"))] == [1]
    assert [p.id for p in rank(points, filters=Filters(query="emporter"))] == [3]


def test_query_is_not_tokenized(points):
    assert rank(points, filters=Filters(query="porc mama")) == []


def test_max_distance_zero_excludes_everything_off_origin():
    off = [make_point(2, "P2", 6.51, 2.607)]
    assert rank(off, ORIGIN, Filters(max_distance_km=0)) == []


def test_max_distance_zero_keeps_point_at_origin(points):
    assert [p.id for p in rank(points, ORIGIN, Filters(max_distance_km=0))] == [1]


def test_max_distance_in_kilometers(points):
    ranked = rank(points, ORIGIN, Filters(max_distance_km=1))
    assert [p.id for p in ranked] == [1, 3]
    assert all(p.distance <= 1000 for p in ranked)


def test_max_distance_without_origin_excludes_all(points):
    assert rank(points, filters=Filters(max_distance_km=5)) == []


@pytest.mark.parametrize("value", [None, math.nan, math.inf])
def test_non_finite_max_distance_is_ignored(points, value):
    assert len(rank(points, ORIGIN, Filters(max_distance_km=value))) == 3


def test_limit_bounds_the_result(points):
    assert [p.id for p in rank(points, ORIGIN, Filters(limit=2))] == [1, 3]
    assert rank(points, ORIGIN, Filters(limit=0)) == []


def test_nearest(points):
    assert nearest(rank(points, ORIGIN)).id == 1
    assert nearest(rank(points)) is None
    assert nearest([]) is None
