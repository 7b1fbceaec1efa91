import itertools
import math

import pytest

from app.motion.area import (
    EF_MAX,
    EF_MIN,
    EF_PLACEHOLDER,
    biplane_ejection_fraction,
    ejection_fraction,
    polygon_area,
)
from app.motion.types import Point2


def test_fewer_than_three_points_has_no_area():
    assert polygon_area([]) == 0.0
    assert polygon_area([Point2(0, 0)]) == 0.0
    assert polygon_area([Point2(0, 0), Point2(10, 10)]) == 0.0


def test_square_area_does_not_depend_on_point_order():
    corners = [Point2(0, 0), Point2(100, 0), Point2(100, 100), Point2(0, 100)]
    for perm in itertools.permutations(corners):
        assert polygon_area(list(perm)) == pytest.approx(10000.0)


def test_triangle_area():
    assert polygon_area([Point2(0, 0), Point2(4, 0), Point2(0, 3)]) == pytest.approx(6.0)


def test_ejection_fraction_is_clamped():
    assert ejection_fraction(100.0, 50.0) == pytest.approx(50.0)
    assert ejection_fraction(100.0, 99.0) == EF_MIN
    assert ejection_fraction(100.0, 1.0) == EF_MAX
    assert ejection_fraction(100.0, 0.0) == EF_MAX


def test_ejection_fraction_placeholder_without_usable_area():
    assert ejection_fraction(0.0, math.inf) == EF_PLACEHOLDER
    assert ejection_fraction(0.0, 0.0) == EF_PLACEHOLDER
    assert ejection_fraction(100.0, math.inf) == EF_PLACEHOLDER


def test_biplane_is_mean_of_views():
    assert biplane_ejection_fraction(60.0, 50.0) == pytest.approx(55.0)
