"""Distance and containment helpers over lat/lon points and polygons.

Planar helpers work directly in degrees and are only used for ranking
("which vertex is closest"); reported distances use the spherical formula.
"""

import math
from collections.abc import Sequence

from weather_data.models.weather import Point

# Same mean radius MySQL uses for ST_Distance_Sphere.
EARTH_RADIUS_M = 6_370_986.0


def distance_sphere(a: Point, b: Point, radius: float = EARTH_RADIUS_M) -> float:
    """Great-circle distance in metres."""
    p1 = math.radians(a.lat)
    p2 = math.radians(b.lat)
    dp = math.radians(b.lat - a.lat)
    dl = math.radians(b.lon - a.lon)
    h = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * radius * math.asin(min(1.0, math.sqrt(h)))


def planar_distance(a: Point, b: Point) -> float:
    return math.hypot(a.lon - b.lon, a.lat - b.lat)


def nearest_vertex(point: Point, polygon: Sequence[Point]) -> Point:
    if not polygon:
        raise ValueError("Polygon has no vertices")
    return min(polygon, key=lambda vertex: planar_distance(point, vertex))


def point_in_polygon(point: Point, polygon: Sequence[Point]) -> bool:
    """Ray casting test. Points exactly on an edge may fall either way."""
    inside = False
    n = len(polygon)
    if n < 3:
        return False
    j = n - 1
    for i in range(n):
        vi, vj = polygon[i], polygon[j]
        if (vi.lat > point.lat) != (vj.lat > point.lat):
            crossing = (vj.lon - vi.lon) * (point.lat - vi.lat) / (vj.lat - vi.lat) + vi.lon
            if point.lon < crossing:
                inside = not inside
        j = i
    return inside


def distance_to_segment(point: Point, a: Point, b: Point) -> float:
    dx = b.lon - a.lon
    dy = b.lat - a.lat
    if dx == 0 and dy == 0:
        return planar_distance(point, a)
    t = ((point.lon - a.lon) * dx + (point.lat - a.lat) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))
    return math.hypot(point.lon - (a.lon + t * dx), point.lat - (a.lat + t * dy))


def distance_to_polygon(point: Point, polygon: Sequence[Point]) -> float:
    """Planar distance from a point to a polygon; zero when inside it."""
    if not polygon:
        raise ValueError("Polygon has no vertices")
    if point_in_polygon(point, polygon):
        return 0.0
    if len(polygon) == 1:
        return planar_distance(point, polygon[0])
    return min(
        distance_to_segment(point, polygon[i - 1], polygon[i])
        for i in range(len(polygon))
    )
