"""Map viewport math: zoom levels and center points."""

import math
from typing import Sequence

from models import Coordinate, Viewport

EARTH_RADIUS_KM = 6371

# Checked in order; the first category with a keyword contained in the query wins.
LOCATION_TYPE_ZOOMS = [
    # Buildings, monuments, specific places
    (("tower", "temple", "museum", "stadium", "palace", "monument", "building", "restaurant", "cafe", "shop"), 18),
    # Areas, neighborhoods
    (("park", "garden", "district", "neighborhood", "campus", "complex"), 16),
    # Cities and larger areas
    (("city", "town", "village"), 13),
]
DEFAULT_LOCATION_ZOOM = 17

# (exclusive upper bound in km, zoom); anything beyond the last bound gets ROUTE_ZOOM_FALLBACK
ROUTE_ZOOM_THRESHOLDS = [
    (1, 15),     # street level
    (5, 13),     # local area
    (20, 11),    # city area
    (50, 10),    # metropolitan
    (100, 9),    # regional
    (250, 7),    # state level
    (500, 6),    # multi-state
    (1000, 5),   # country level
    (2500, 4),   # continental
]
ROUTE_ZOOM_FALLBACK = 3  # intercontinental


def zoom_for_query(text: str) -> int:
    """Pick a zoom level for a single place from the wording of the user's query."""
    text = text.lower()
    for keywords, zoom in LOCATION_TYPE_ZOOMS:
        if any(keyword in text for keyword in keywords):
            return zoom
    return DEFAULT_LOCATION_ZOOM


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Calculate distance in km between two coordinates using Haversine formula."""
    dlat = math.radians(b.lat - a.lat)
    dlon = math.radians(b.lon - a.lon)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def zoom_for_distance(distance_km: float) -> int:
    for upper_bound, zoom in ROUTE_ZOOM_THRESHOLDS:
        if distance_km < upper_bound:
            return zoom
    return ROUTE_ZOOM_FALLBACK


def zoom_for_route(start: Coordinate, end: Coordinate) -> int:
    return zoom_for_distance(haversine_distance(start, end))


def center_of(coordinates: Sequence[Coordinate]) -> Coordinate:
    """Midpoint of the bounding box around ``coordinates``."""
    if not coordinates:
        raise ValueError("center_of() needs at least one coordinate")
    lats = [c.lat for c in coordinates]
    lons = [c.lon for c in coordinates]
    return Coordinate(
        lat=(min(lats) + max(lats)) / 2,
        lon=(min(lons) + max(lons)) / 2,
    )


def route_viewport(route: Sequence[Coordinate]) -> Viewport:
    """Frame a route by its endpoints; intermediate points are ignored."""
    if len(route) < 2:
        raise ValueError("a route needs at least two points")
    start, end = route[0], route[-1]
    return Viewport(center=center_of([start, end]), zoom=zoom_for_route(start, end))
