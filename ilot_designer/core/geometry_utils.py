"""Geometry kernel.

Scalar helpers live on :class:`GeometryUtils`; the ``points_in_polygon`` and
``distances_to_polygon`` functions are their numpy counterparts, used to
rasterize the occupancy grid and to score whole layouts at once.

Malformed input never raises: a polygon with fewer than three points has no
area and contains nothing.
"""

import math
from typing import Iterable, Sequence, Tuple

import numpy as np
from shapely.geometry import LinearRing, LineString, Polygon, box
from shapely.geometry import Point as ShapelyPoint

from ilot_designer.core.models import Bounds, Point

Coordinate = Tuple[float, float]


class GeometryUtils:
    @staticmethod
    def point_in_polygon(point: Coordinate, polygon: Sequence[Coordinate]) -> bool:
        """Even-odd ray casting.

        Points lying exactly on an edge are not special-cased; their result
        depends on the edge orientation.
        """
        if len(polygon) < 3:
            return False

        px, py = point
        inside = False
        j = len(polygon) - 1
        for i in range(len(polygon)):
            xi, yi = polygon[i]
            xj, yj = polygon[j]
            if (yi > py) != (yj > py):
                if px < (xj - xi) * (py - yi) / (yj - yi) + xi:
                    inside = not inside
            j = i
        return inside

    @staticmethod
    def polygon_area(polygon: Sequence[Coordinate]) -> float:
        ring = _open_ring(polygon)
        if len(ring) < 3:
            return 0.0
        return Polygon(ring).area

    @staticmethod
    def distance(p1: Coordinate, p2: Coordinate) -> float:
        return ShapelyPoint(p1).distance(ShapelyPoint(p2))

    @staticmethod
    def distance_to_segment(point: Coordinate, start: Coordinate, end: Coordinate) -> float:
        if tuple(start) == tuple(end):
            return GeometryUtils.distance(point, start)
        return ShapelyPoint(point).distance(LineString([start, end]))

    @staticmethod
    def distance_to_polygon(point: Coordinate, polygon: Sequence[Coordinate]) -> float:
        """Distance to the nearest edge; infinite for an empty polygon."""
        ring = _open_ring(polygon)
        if not ring:
            return math.inf
        if len(ring) == 1:
            return GeometryUtils.distance(point, ring[0])
        if len(ring) == 2:
            return GeometryUtils.distance_to_segment(point, ring[0], ring[1])
        return ShapelyPoint(point).distance(LinearRing(ring))

    @staticmethod
    def bounds_of(points: Iterable[Coordinate]) -> Bounds:
        xs, ys = [], []
        for x, y in points:
            xs.append(x)
            ys.append(y)
        if not xs:
            return Bounds()
        return Bounds(min(xs), max(xs), min(ys), max(ys))

    @staticmethod
    def centroid(polygon: Sequence[Coordinate]) -> Point:
        if not polygon:
            return Point(0.0, 0.0)
        if len(polygon) >= 3:
            shape = Polygon(polygon)
            if shape.is_valid and shape.area > 0:
                c = shape.centroid
                return Point(c.x, c.y)
        # Degenerate or self-intersecting: fall back to the vertex mean
        return Point(
            sum(p[0] for p in polygon) / len(polygon),
            sum(p[1] for p in polygon) / len(polygon)
        )

    @staticmethod
    def rect_gap(a: Bounds, b: Bounds) -> float:
        """Euclidean gap between two axis-aligned rectangles, 0 when they touch or overlap."""
        return box(a.min_x, a.min_y, a.max_x, a.max_y).distance(box(b.min_x, b.min_y, b.max_x, b.max_y))

    @staticmethod
    def path_length(path: Sequence[Coordinate]) -> float:
        return sum(GeometryUtils.distance(path[i - 1], path[i]) for i in range(1, len(path)))


def _open_ring(polygon: Sequence[Coordinate]) -> list:
    """Vertices without a repeated closing point."""
    ring = [tuple(p) for p in polygon]
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring.pop()
    return ring


def points_in_polygon(xs: np.ndarray, ys: np.ndarray, polygon: Sequence[Coordinate]) -> np.ndarray:
    """Vectorized even-odd test over arrays of x and y coordinates."""
    inside = np.zeros(np.shape(xs), dtype=bool)
    n = len(polygon)
    if n < 3:
        return inside

    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        crosses = (yi > ys) != (yj > ys)
        if yj != yi:
            x_cross = (xj - xi) * (ys - yi) / (yj - yi) + xi
            inside ^= crosses & (xs < x_cross)
        j = i
    return inside


def distances_to_polygon(xs: np.ndarray, ys: np.ndarray, polygon: Sequence[Coordinate]) -> np.ndarray:
    """Vectorized distance from each point to the nearest polygon edge."""
    best = np.full(np.shape(xs), np.inf, dtype=float)
    n = len(polygon)
    for i in range(n):
        ax, ay = polygon[i]
        bx, by = polygon[(i + 1) % n]
        dx, dy = bx - ax, by - ay
        length_sq = dx * dx + dy * dy
        if length_sq == 0:
            t = np.zeros(np.shape(xs))
        else:
            t = np.clip(((xs - ax) * dx + (ys - ay) * dy) / length_sq, 0.0, 1.0)
        best = np.minimum(best, np.hypot(xs - (ax + t * dx), ys - (ay + t * dy)))
    return best
