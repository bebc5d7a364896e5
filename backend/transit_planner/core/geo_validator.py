"""Classify query points and routes by the department that contains them."""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import shapely
from shapely.geometry import MultiLineString, MultiPolygon, Point

from transit_planner.core.errors import DepartmentNotFound, InvalidCoordinates, OutsideCountry
from transit_planner.core.geometry import department_geometry
from transit_planner.core.models import Coord, Department, Route, ValidationResult

logger = logging.getLogger(__name__)

# Points outside every polygon but closer than this (degrees, ~1 km) are ambiguous
NEAR_BOUNDARY_THRESHOLD = 0.01


@dataclass(frozen=True)
class DepartmentBoundary:
    name: str
    area: MultiPolygon
    boundary: MultiLineString


class GeoValidator:
    """Point-in-department lookups over a fixed set of department polygons."""

    def __init__(
        self,
        departments: Sequence[Department],
        near_boundary_threshold: float = NEAR_BOUNDARY_THRESHOLD,
    ) -> None:
        self.near_boundary_threshold = near_boundary_threshold
        self._departments: list[DepartmentBoundary] = []
        for dept in departments:
            area = department_geometry(dept)
            shapely.prepare(area)
            self._departments.append(DepartmentBoundary(dept.name, area, area.boundary))
        logger.info("Geo validator ready with %d departments", len(self._departments))

    def validate_point(self, point: Coord) -> str | None:
        """Return the containing department's name.

        Returns None for a point outside every department but within the
        near-boundary threshold of one; raises OutsideCountry otherwise. When
        polygons overlap the first department in input order wins.
        """
        _check_coordinates(point)
        geom = Point(point)
        for dept in self._departments:
            if dept.area.contains(geom):
                logger.debug("Point %s found in department %s", point, dept.name)
                return dept.name

        min_distance = min((d.area.distance(geom) for d in self._departments), default=math.inf)
        if min_distance < self.near_boundary_threshold:
            logger.debug("Point %s near department boundary: %.6f", point, min_distance)
            return None
        logger.info("Point %s outside country boundaries: %.6f", point, min_distance)
        raise OutsideCountry(f"{point} is {min_distance:.6f} deg from the nearest department")

    def validate_route(self, origin: Coord, destination: Coord) -> ValidationResult:
        """Validate both endpoints and classify the trip."""
        origin_dept = self.validate_point(origin)
        dest_dept = self.validate_point(destination)

        is_interdepartmental = (
            origin_dept is not None and dest_dept is not None and origin_dept != dest_dept
        )
        result = ValidationResult(
            is_valid=origin_dept is not None and dest_dept is not None,
            origin_department=origin_dept,
            destination_department=dest_dept,
            is_interdepartmental=is_interdepartmental,
            distance_to_boundary=self.distance_to_boundary(origin),
        )
        logger.debug("Route validation result: %s", result)
        return result

    def distance_to_boundary(self, point: Coord) -> float:
        """Distance from ``point`` to the nearest department edge."""
        geom = Point(point)
        return min((d.boundary.distance(geom) for d in self._departments), default=math.inf)

    def get_route_departments(self, route: Route) -> list[str]:
        """Departments that contain at least one vertex of the route."""
        if not route.coordinates:
            return []
        coords = np.asarray(route.coordinates, dtype=float).reshape(-1, 2)
        return [
            dept.name
            for dept in self._departments
            if shapely.contains_xy(dept.area, coords[:, 0], coords[:, 1]).any()
        ]

    def is_near_boundary(self, point: Coord, max_distance: float) -> bool:
        is_near = self.distance_to_boundary(point) <= max_distance
        logger.debug("Point %s near boundary check: %s", point, is_near)
        return is_near

    def get_nearest_department(self, point: Coord) -> str:
        geom = Point(point)
        nearest = min(
            self._departments,
            key=lambda d: d.area.distance(geom),
            default=None,
        )
        if nearest is None:
            raise DepartmentNotFound("no departments loaded")
        return nearest.name


def _check_coordinates(point: Coord) -> None:
    lon, lat = point
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise InvalidCoordinates(f"non-finite coordinate {point}")
    if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
        raise InvalidCoordinates(f"coordinate {point} out of range")
