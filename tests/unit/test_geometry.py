"""
Unit tests for delivery zone geometry helpers.

Tests meter/degree conversion, tolerance comparison, centroid, circle
corners, bounds accumulation and great circle distance.
"""

import math

import pytest

from zonemap.zones.geometry import (
    DEGREE_EPSILON,
    METERS_PER_DEGREE,
    Bounds,
    centroid,
    circle_corners,
    haversine_distance_m,
    meters_to_lat_delta,
    meters_to_lng_delta,
    path_approx_equal,
    points_approx_equal,
)
from zonemap.zones.models import LatLng


class TestMeterConversion:
    """Meters to degree deltas."""

    def test_one_degree_of_latitude(self):
        """111320 m is exactly one degree of latitude."""
        assert meters_to_lat_delta(111320) == pytest.approx(1.0)

    def test_lng_delta_at_equator_matches_lat_delta(self):
        assert meters_to_lng_delta(111320, 0.0) == pytest.approx(1.0)

    def test_lng_delta_at_60_degrees_doubles(self):
        """cos(60°) = 0.5, so a meter spans twice the longitude."""
        assert meters_to_lng_delta(111320, 60.0) == pytest.approx(2.0)

    def test_lng_delta_sign_of_latitude_does_not_matter(self):
        assert meters_to_lng_delta(5000, -23.5) == pytest.approx(meters_to_lng_delta(5000, 23.5))

    def test_lng_delta_at_pole_is_finite(self):
        """The cosine is clamped, so the pole does not divide by zero."""
        delta = meters_to_lng_delta(1000, 90.0)
        assert math.isfinite(delta)
        assert delta <= 180.0


class TestApproxEqual:
    """Tolerance comparison of points and paths."""

    def test_points_within_epsilon(self):
        a = LatLng(-23.5, -46.6)
        b = LatLng(-23.5 + DEGREE_EPSILON / 2, -46.6 - DEGREE_EPSILON / 2)
        assert points_approx_equal(a, b)

    def test_points_beyond_epsilon(self):
        a = LatLng(-23.5, -46.6)
        b = LatLng(-23.5 + 1e-5, -46.6)
        assert not points_approx_equal(a, b)

    def test_paths_with_different_lengths(self):
        path = [LatLng(0, 0), LatLng(0, 1), LatLng(1, 1)]
        assert not path_approx_equal(path, path[:2])

    def test_paths_compared_vertex_by_vertex(self):
        path = [LatLng(0, 0), LatLng(0, 1), LatLng(1, 1)]
        moved = [LatLng(0, 0), LatLng(0, 1), LatLng(1, 1.001)]
        assert path_approx_equal(path, list(path))
        assert not path_approx_equal(path, moved)

    def test_custom_epsilon(self):
        assert points_approx_equal(LatLng(0, 0), LatLng(0.01, 0), eps=0.1)


class TestCentroid:
    """Vertex centroid."""

    def test_triangle(self):
        """[(0,0),(0,1),(1,1)] -> (1/3, 2/3)."""
        c = centroid([LatLng(0, 0), LatLng(0, 1), LatLng(1, 1)])
        assert c.lat == pytest.approx(1 / 3)
        assert c.lng == pytest.approx(2 / 3)

    def test_square_is_its_center(self):
        c = centroid([LatLng(1, 1), LatLng(1, 3), LatLng(3, 3), LatLng(3, 1)])
        assert c == LatLng(2.0, 2.0)

    def test_empty_path_rejected(self):
        with pytest.raises(ValueError):
            centroid([])


class TestCircleCorners:
    """Corners of the box around a circle."""

    def test_corners_at_equator(self):
        corners = circle_corners(LatLng(0.0, 0.0), METERS_PER_DEGREE)
        lats = sorted({round(c.lat, 9) for c in corners})
        lngs = sorted({round(c.lng, 9) for c in corners})
        assert lats == [-1.0, 1.0]
        assert lngs == [-1.0, 1.0]

    def test_four_corners(self):
        assert len(circle_corners(LatLng(-23.5, -46.6), 2000)) == 4


class TestBounds:
    """Bounding box accumulator."""

    def test_new_bounds_are_empty(self):
        bounds = Bounds()
        assert bounds.is_empty
        assert bounds.center is None

    def test_extend_single_point(self):
        bounds = Bounds().extend(LatLng(1.0, 2.0))
        assert not bounds.is_empty
        assert bounds.to_dict() == {"south": 1.0, "west": 2.0, "north": 1.0, "east": 2.0}

    def test_extend_all(self):
        bounds = Bounds().extend_all([LatLng(-1, -2), LatLng(3, 4), LatLng(0, 0)])
        south_west, north_east = bounds.corners()
        assert south_west == LatLng(-1, -2)
        assert north_east == LatLng(3, 4)
        assert bounds.center == LatLng(1.0, 1.0)


class TestHaversine:
    """Great circle distance."""

    def test_same_point(self):
        p = LatLng(-23.56, -46.65)
        assert haversine_distance_m(p, p) == pytest.approx(0.0)

    def test_one_degree_of_latitude(self):
        """One degree along a meridian is about 111.2 km on the mean sphere."""
        d = haversine_distance_m(LatLng(0, 0), LatLng(1, 0))
        assert d == pytest.approx(111195, rel=1e-3)

    def test_symmetric(self):
        a, b = LatLng(-23.5, -46.6), LatLng(-22.9, -43.2)
        assert haversine_distance_m(a, b) == pytest.approx(haversine_distance_m(b, a))
