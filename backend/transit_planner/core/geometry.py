"""Planar geometry helpers over (lon, lat) degree-space using Shapely.

Distances are Euclidean in degrees over a service area of roughly 200 km;
nothing here is geodesic.
"""

import logging
import math
from collections.abc import Sequence

import numpy as np
import shapely
from shapely.geometry import LineString, MultiPoint, MultiPolygon, Point, Polygon

from transit_planner.core.errors import GeometryError
from transit_planner.core.models import Coord, Department

logger = logging.getLogger(__name__)

# Approximate km per degree, used only for presentation estimates
KM_PER_DEG = 111.32

BBox = tuple[float, float, float, float]


def planar_distance(a: Coord, b: Coord) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def line_geometry(coords: Sequence[Coord]) -> LineString | Point:
    """Build the Shapely geometry for a route polyline."""
    if not coords:
        raise GeometryError("route polyline has no vertices")
    if len(coords) == 1:
        return Point(coords[0])
    return LineString(coords)


def vertex_points(coords: Sequence[Coord]) -> np.ndarray:
    """Vectorised Shapely points, one per vertex."""
    return shapely.points(np.asarray(coords, dtype=float).reshape(-1, 2))


def bounding_box(coords: Sequence[Coord]) -> BBox:
    xs = [c[0] for c in coords]
    ys = [c[1] for c in coords]
    return (min(xs), min(ys), max(xs), max(ys))


def expand_bbox(bbox: BBox, margin: float) -> BBox:
    return (bbox[0] - margin, bbox[1] - margin, bbox[2] + margin, bbox[3] + margin)


def bboxes_overlap(a: BBox, b: BBox) -> bool:
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]


def closest_vertex(coords: Sequence[Coord], point: Coord) -> tuple[Coord, float]:
    """Return the polyline vertex nearest to ``point`` and its distance.

    Ties keep the earliest vertex.
    """
    best = coords[0]
    best_dist = planar_distance(best, point)
    for c in coords[1:]:
        d = planar_distance(c, point)
        if d < best_dist:
            best, best_dist = c, d
    return best, best_dist


def nearest_pair(points_a: Sequence[Coord], points_b: Sequence[Coord]) -> tuple[int, float] | None:
    """Closest pair between two point sets.

    Returns ``(index into points_a, distance)``. Scanning ``points_a`` in order,
    the first point that reaches the global minimum wins.
    """
    if not points_a or not points_b:
        return None
    target = MultiPoint(list(points_b))
    distances = shapely.distance(vertex_points(points_a), target)
    idx = int(np.argmin(distances))
    return idx, float(distances[idx])


def department_geometry(department: Department) -> MultiPolygon:
    """Parse a department's rings into a single planar MultiPolygon."""
    parts = []
    for rings in department.polygons:
        if not rings:
            continue
        exterior, *holes = rings
        if len(exterior) < 3:
            raise GeometryError(f"department {department.name!r} has a degenerate ring")
        parts.append(Polygon(exterior, holes))
    if not parts:
        raise GeometryError(f"department {department.name!r} has no polygons")
    geom = MultiPolygon(parts)
    if not geom.is_valid:
        logger.warning("Department %s boundary is not a valid polygon", department.name)
    return geom
