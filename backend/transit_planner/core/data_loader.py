"""Load departments, routes and bus stops from the GeoJSON dataset.

Loading is all-or-nothing: any malformed file raises a LoaderError and no
partial dataset is returned.
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path

import orjson
from shapely.errors import ShapelyError
from shapely.geometry import LineString, MultiLineString, MultiPolygon, Polygon, shape
from shapely.ops import linemerge

from transit_planner.core.errors import (
    GeoJSONError,
    InvalidDataError,
    LoaderIOError,
    LoaderJSONError,
)
from transit_planner.core.models import BusStop, Coord, Department, Route, RouteSubtype

logger = logging.getLogger(__name__)

DEPARTMENTS_FILE = "LIM DEPARTAMENTALES.geojson"
STOPS_FILE = "Paradas Transporte Colectivo AMSS.geojson"
# Route files and the subtype assumed when a feature has no SUBTIPO
ROUTE_FILES = {
    "Rutas Interdepartamentales.geojson": RouteSubtype.INTERDEPARTMENTAL,
    "Rutas Interurbanas.geojson": RouteSubtype.INTERURBAN,
    "Rutas Urbanas.geojson": RouteSubtype.URBAN,
}

_SUBTYPE_ALIASES = {
    "urbana": RouteSubtype.URBAN,
    "urbano": RouteSubtype.URBAN,
    "urban": RouteSubtype.URBAN,
    "interurbana": RouteSubtype.INTERURBAN,
    "interurbano": RouteSubtype.INTERURBAN,
    "interurban": RouteSubtype.INTERURBAN,
    "interdepartamental": RouteSubtype.INTERDEPARTMENTAL,
    "interdepartmental": RouteSubtype.INTERDEPARTMENTAL,
}


@dataclass(frozen=True)
class Dataset:
    departments: tuple[Department, ...]
    routes: tuple[Route, ...]
    bus_stops: tuple[BusStop, ...]

    def find_routes_by_department(self, department: str) -> list[Route]:
        return [r for r in self.routes if r.department == department]

    def find_stops_by_route(self, route_code: str) -> list[BusStop]:
        return [s for s in self.bus_stops if s.route_code == route_code]

    def find_interdepartmental_routes(self) -> list[Route]:
        return [r for r in self.routes if r.subtype is RouteSubtype.INTERDEPARTMENTAL]


class DataLoader:
    """Reads the GeoJSON files found in ``data_dir``."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def load_all(self) -> Dataset:
        departments = self.load_departments(DEPARTMENTS_FILE)
        bus_stops = self.load_bus_stops(STOPS_FILE)

        routes: list[Route] = []
        seen: set[str] = set()
        for filename, default_subtype in ROUTE_FILES.items():
            for route in self.load_routes(filename, default_subtype):
                if route.code in seen:
                    logger.warning("Duplicate route code %s in %s, keeping first", route.code, filename)
                    continue
                seen.add(route.code)
                routes.append(route)

        logger.info(
            "Loaded %d departments, %d routes, %d bus stops",
            len(departments), len(routes), len(bus_stops),
        )
        return Dataset(tuple(departments), tuple(routes), tuple(bus_stops))

    # ------------------------------------------------------------------

    def load_departments(self, filename: str) -> list[Department]:
        departments = []
        for props, geometry in self._features(filename):
            name = props.get("NAM")
            if not name:
                raise InvalidDataError(f"{filename}: department without NAM")
            if isinstance(geometry, Polygon):
                polygons = [geometry]
            elif isinstance(geometry, MultiPolygon):
                polygons = list(geometry.geoms)
            else:
                kind = geometry.geom_type if geometry is not None else "no"
                raise GeoJSONError(f"{filename}: department {name} has {kind} geometry")
            departments.append(Department(
                name=name,
                polygons=tuple(_polygon_rings(p) for p in polygons),
            ))
        return departments

    def load_bus_stops(self, filename: str) -> list[BusStop]:
        stops = []
        for props, geometry in self._features(filename):
            route_code = props.get("Ruta")
            if not route_code:
                continue
            lon, lat = props.get("Longitud"), props.get("Latitud")
            if lon is None or lat is None:
                if geometry is None or geometry.geom_type != "Point":
                    raise InvalidDataError(f"{filename}: stop of route {route_code} has no coordinates")
                lon, lat = geometry.x, geometry.y
            location = (_as_float(lon, filename), _as_float(lat, filename))
            stops.append(BusStop(route_code=str(route_code), location=location, name=props.get("NAM")))
        return stops

    def load_routes(self, filename: str, default_subtype: RouteSubtype) -> list[Route]:
        routes = []
        for props, geometry in self._features(filename):
            code = props.get("Código_de")
            if not code:
                logger.warning("%s: route feature without code skipped", filename)
                continue
            coords = _route_coordinates(geometry, filename, code)
            subtype = _SUBTYPE_ALIASES.get(str(props.get("SUBTIPO") or "").strip().lower(), default_subtype)
            routes.append(Route(
                code=str(code),
                name=props.get("Nombre_de_") or "",
                coordinates=coords,
                department=props.get("DEPARTAMEN") or "",
                subtype=subtype,
            ))
        return routes

    def _features(self, filename: str):
        path = self.data_dir / filename
        logger.info("Loading %s", path)
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise LoaderIOError(f"cannot read {path}: {e}") from e
        try:
            document = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            logger.error("Failed to parse GeoJSON from %s: %s", filename, e)
            raise LoaderJSONError(f"{filename}: {e}") from e

        if not isinstance(document, dict) or document.get("type") != "FeatureCollection":
            raise GeoJSONError(f"{filename}: not a FeatureCollection")
        features = document.get("features")
        if not isinstance(features, list):
            raise GeoJSONError(f"{filename}: features must be a list")
        logger.debug("Found %d features in %s", len(features), filename)

        for feature in features:
            if not isinstance(feature, dict):
                raise GeoJSONError(f"{filename}: feature must be an object")
            geometry = feature.get("geometry")
            try:
                geom = shape(geometry) if geometry else None
            except (ShapelyError, ValueError, TypeError, AttributeError, KeyError) as e:
                raise GeoJSONError(f"{filename}: bad geometry: {e}") from e
            yield feature.get("properties") or {}, geom


def _polygon_rings(polygon: Polygon) -> tuple[tuple[Coord, ...], ...]:
    rings = [polygon.exterior, *polygon.interiors]
    return tuple(tuple((x, y) for x, y, *_ in ring.coords) for ring in rings)


def _route_coordinates(geometry, filename: str, code: str) -> tuple[Coord, ...]:
    if isinstance(geometry, MultiLineString):
        merged = linemerge(geometry)
        if isinstance(merged, MultiLineString):
            logger.warning("%s: route %s is disjoint, keeping its longest part", filename, code)
            merged = max(merged.geoms, key=lambda part: part.length)
        geometry = merged
    if not isinstance(geometry, LineString) or geometry.is_empty:
        kind = geometry.geom_type if geometry is not None else "no"
        raise GeoJSONError(f"{filename}: route {code} has {kind} geometry")
    return tuple((x, y) for x, y, *_ in geometry.coords)


def _as_float(value, filename: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidDataError(f"{filename}: bad coordinate {value!r}") from e
    if not math.isfinite(number):
        raise InvalidDataError(f"{filename}: bad coordinate {value!r}")
    return number
