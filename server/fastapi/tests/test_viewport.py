"""Unit tests for viewport.py zoom and center calculations."""

import pytest

from models import Coordinate
from viewport import (
    DEFAULT_LOCATION_ZOOM,
    center_of,
    haversine_distance,
    route_viewport,
    zoom_for_distance,
    zoom_for_query,
    zoom_for_route,
)


# ---------------------------------------------------------------------------
# zoom_for_query
# ---------------------------------------------------------------------------

class TestZoomForQuery:
    @pytest.mark.parametrize("query, zoom", [
        ("Where is the Eiffel Tower?", 18),
        ("Show me the British Museum", 18),
        ("find a cafe in Rome", 18),
        ("Where is Central Park?", 16),
        ("Show me the financial district", 16),
        ("Where is Mexico City?", 13),
        ("find the village of Hallstatt", 13),
        ("Where is Big Ben?", DEFAULT_LOCATION_ZOOM),
    ])
    def test_keyword_categories(self, query, zoom):
        assert zoom_for_query(query) == zoom

    def test_building_beats_area_and_city(self):
        assert zoom_for_query("the tower in the park of the old town") == 18

    def test_area_beats_city(self):
        assert zoom_for_query("a garden in the city") == 16

    def test_matches_substrings_case_insensitively(self):
        assert zoom_for_query("TOWERS") == 18
        assert zoom_for_query("Parkside") == 16

    def test_empty_text_uses_default(self):
        assert zoom_for_query("") == 17


# ---------------------------------------------------------------------------
# haversine_distance / zoom_for_distance / zoom_for_route
# ---------------------------------------------------------------------------

class TestHaversineDistance:
    def test_same_point_is_zero(self):
        point = Coordinate(lat=12.5, lon=-70.1)
        assert haversine_distance(point, point) == 0

    def test_one_degree_of_longitude_on_equator(self):
        distance = haversine_distance(Coordinate(lat=0, lon=0), Coordinate(lat=0, lon=1))
        assert distance == pytest.approx(111.19, abs=0.01)

    def test_london_to_paris(self, london, paris):
        assert haversine_distance(london, paris) == pytest.approx(343.5, abs=1)

    def test_is_symmetric(self, london, paris):
        assert haversine_distance(london, paris) == pytest.approx(haversine_distance(paris, london))

    def test_antipodes(self):
        distance = haversine_distance(Coordinate(lat=0, lon=0), Coordinate(lat=0, lon=180))
        assert distance == pytest.approx(20015.09, abs=0.1)


class TestZoomForDistance:
    @pytest.mark.parametrize("distance_km, zoom", [
        (0, 15),
        (0.999, 15),
        (1.0, 13),
        (4.999, 13),
        (5.0, 11),
        (19.999, 11),
        (20.0, 10),
        (49.999, 10),
        (50.0, 9),
        (99.999, 9),
        (100.0, 7),
        (249.999, 7),
        (250.0, 6),
        (499.999, 6),
        (500.0, 5),
        (999.999, 5),
        (1000.0, 4),
        (2499.999, 4),
        (2500.0, 3),
        (20000.0, 3),
    ])
    def test_thresholds_are_exclusive_upper_bounds(self, distance_km, zoom):
        assert zoom_for_distance(distance_km) == zoom

    def test_zoom_for_route_uses_great_circle_distance(self, london, paris):
        # ~343 km
        assert zoom_for_route(london, paris) == 6

    def test_zoom_for_route_same_point(self, london):
        assert zoom_for_route(london, london) == 15


# ---------------------------------------------------------------------------
# center_of / route_viewport
# ---------------------------------------------------------------------------

class TestCenterOf:
    def test_single_coordinate_is_its_own_center(self, london):
        assert center_of([london]) == london

    def test_midpoint_of_bounds(self):
        points = [
            Coordinate(lat=10, lon=20),
            Coordinate(lat=30, lon=40),
            Coordinate(lat=20, lon=60),
        ]
        assert center_of(points) == Coordinate(lat=20, lon=40)

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            center_of([])


class TestRouteViewport:
    def test_uses_first_and_last_point_only(self):
        route = [
            Coordinate(lat=0, lon=0),
            Coordinate(lat=50, lon=50),
            Coordinate(lat=10, lon=10),
        ]
        viewport = route_viewport(route)
        assert viewport.center == Coordinate(lat=5, lon=5)
        assert viewport.zoom == zoom_for_route(route[0], route[-1])

    def test_london_paris(self, london, paris):
        viewport = route_viewport([london, paris])
        assert viewport.center.lat == pytest.approx((51.5074 + 48.8566) / 2)
        assert viewport.center.lon == pytest.approx((-0.1278 + 2.3522) / 2)
        assert viewport.zoom == 6

    def test_needs_two_points(self, london):
        with pytest.raises(ValueError):
            route_viewport([london])
