"""Route intersection index and bounded transfer search.

On construction every ordered pair of routes gets at most one TransferPoint,
picked by tier (shared stop, then nearby stops, then nearby polyline
vertices). The resulting adjacency map is the graph the depth-first search
walks when planning a trip.
"""

import logging
import math
import os
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType

import numpy as np
import shapely
from shapely.geometry import Point

from transit_planner.core.errors import (
    CacheError,
    DistanceError,
    MaxTransfersExceeded,
    NoRoutesNearDestination,
    NoRoutesNearOrigin,
    NoValidPath,
)
from transit_planner.core.geometry import (
    bboxes_overlap,
    bounding_box,
    closest_vertex,
    expand_bbox,
    line_geometry,
    nearest_pair,
)
from transit_planner.core.intersection_cache import IntersectionCache, dataset_fingerprint
from transit_planner.core.models import (
    AdjacencyMap,
    BusStop,
    Coord,
    Route,
    RoutePlan,
    RouteSegment,
    TransferPoint,
    TransferType,
)

logger = logging.getLogger(__name__)

# Transfer tier thresholds in degrees (~500 m and ~1 km)
NEAR_TRANSFER_THRESHOLD = 0.005
PROXIMATE_TRANSFER_THRESHOLD = 0.01

# Hard ceiling on the transfer budget a single search may explore
MAX_TRANSFERS_LIMIT = 10
SEARCH_RESULTS_LIMIT = 3


class SpatialSearch:
    """Per-route indices plus the precomputed transfer graph between routes."""

    def __init__(
        self,
        routes: Sequence[Route],
        bus_stops: Sequence[BusStop],
        cache: IntersectionCache | None = None,
        near_threshold: float = NEAR_TRANSFER_THRESHOLD,
        proximate_threshold: float = PROXIMATE_TRANSFER_THRESHOLD,
        max_workers: int | None = None,
    ) -> None:
        self.near_threshold = near_threshold
        self.proximate_threshold = proximate_threshold
        self.max_workers = max_workers or os.cpu_count() or 1

        self._routes: dict[str, Route] = {}
        for route in routes:
            if route.code in self._routes:
                logger.warning("Duplicate route code %s ignored", route.code)
                continue
            if not route.coordinates:
                logger.warning("Route %s has no geometry, skipped", route.code)
                continue
            self._routes[route.code] = route

        self._stops: dict[str, list[BusStop]] = {}
        for stop in bus_stops:
            self._stops.setdefault(stop.route_code, []).append(stop)

        self._lines = {code: line_geometry(r.coordinates) for code, r in self._routes.items()}
        self._bboxes = {code: bounding_box(r.coordinates) for code, r in self._routes.items()}
        # Vertex sets as one array so nearby-route lookups run vectorised
        self._route_codes = list(self._routes)
        self._vertex_sets = np.array(
            [shapely.multipoints(self._routes[c].coordinates) for c in self._route_codes],
            dtype=object,
        )

        self.cache_key = dataset_fingerprint(
            self._routes.values(), bus_stops, near_threshold, proximate_threshold
        )
        self._intersections: MappingProxyType[str, list[TransferPoint]] = MappingProxyType(
            self._load_or_build_intersections(cache)
        )

    # ------------------------------------------------------------------
    # Index access

    @property
    def routes(self) -> MappingProxyType:
        return MappingProxyType(self._routes)

    @property
    def intersections(self) -> MappingProxyType:
        return self._intersections

    def get_route(self, code: str) -> Route | None:
        return self._routes.get(code)

    def get_stops(self, route_code: str) -> list[BusStop]:
        return list(self._stops.get(route_code, []))

    def transfers_from(self, route_code: str) -> list[TransferPoint]:
        return list(self._intersections.get(route_code, []))

    # ------------------------------------------------------------------
    # Precomputation

    def _load_or_build_intersections(self, cache: IntersectionCache | None) -> AdjacencyMap:
        if cache is not None:
            try:
                cached = cache.load(self.cache_key)
            except CacheError as e:
                logger.warning("Error loading intersection cache, recomputing: %s", e)
                cached = None
            if cached is not None:
                logger.info("Loaded route intersections for %d routes from cache", len(cached))
                return cached
            logger.info("Intersection cache not found, precalculating")

        intersections = self.precalculate_intersections()
        if cache is not None:
            try:
                cache.save(self.cache_key, intersections)
            except CacheError as e:
                logger.error("Failed to save intersection cache: %s", e)
        return intersections

    def precalculate_intersections(self) -> AdjacencyMap:
        """Best transfer from every route to every neighbouring route.

        Each worker owns one route's neighbour list; the map is assembled only
        after every worker has finished.
        """
        total = len(self._route_codes)
        logger.info("Pre-calculating intersections for %d routes (%d workers)", total, self.max_workers)
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            neighbour_lists = list(executor.map(self._route_transfers, self._route_codes))
        intersections = dict(zip(self._route_codes, neighbour_lists))
        edges = sum(len(v) for v in intersections.values())
        logger.info("Intersection pre-calculation completed: %d transfer edges", edges)
        return intersections

    def _route_transfers(self, route_code: str) -> list[TransferPoint]:
        transfers = []
        for other_code in self.find_potential_intersections(route_code):
            transfer = self.find_best_transfer(route_code, other_code)
            if transfer is not None:
                transfers.append(transfer)
        logger.debug("Route %s: %d transfers", route_code, len(transfers))
        return transfers

    def find_potential_intersections(self, route_code: str) -> list[str]:
        """Other routes whose bounding box comes within the proximate threshold."""
        bbox = expand_bbox(self._bboxes[route_code], self.proximate_threshold)
        return [
            code
            for code in self._route_codes
            if code != route_code and bboxes_overlap(bbox, self._bboxes[code])
        ]

    def find_best_transfer(self, from_code: str, to_code: str) -> TransferPoint | None:
        """Cheapest qualifying tier wins: direct, then near, then proximate."""
        stops_from = self._stops.get(from_code, [])
        stops_to = self._stops.get(to_code, [])

        pair = nearest_pair([s.location for s in stops_from], [s.location for s in stops_to])
        if pair is not None:
            idx, distance = pair
            stop = stops_from[idx]
            if distance == 0.0:
                return TransferPoint(from_code, to_code, stop.location, 0.0, TransferType.DIRECT, stop)
            if distance < self.near_threshold:
                return TransferPoint(from_code, to_code, stop.location, distance, TransferType.NEAR, stop)

        coords_from = self._routes[from_code].coordinates
        pair = nearest_pair(coords_from, self._routes[to_code].coordinates)
        if pair is not None:
            idx, distance = pair
            if distance < self.proximate_threshold:
                return TransferPoint(from_code, to_code, coords_from[idx], distance, TransferType.PROXIMATE)
        return None

    # ------------------------------------------------------------------
    # Queries

    def find_nearby_routes(self, point: Coord, max_distance: float) -> list[Route]:
        """Routes with at least one polyline vertex within ``max_distance``."""
        if not self._route_codes:
            return []
        mask = shapely.dwithin(self._vertex_sets, Point(point), max_distance)
        return [self._routes[code] for code, hit in zip(self._route_codes, mask) if hit]

    def find_routes_to_destination(
        self,
        origin: Coord,
        destination: Coord,
        max_transfers: int,
        max_route_distance: float,
        limit: int = SEARCH_RESULTS_LIMIT,
    ) -> list[RoutePlan]:
        """Enumerate plans from routes near ``origin`` to routes near ``destination``.

        Plans are ordered by transfer count, then total distance.
        """
        if not 0 <= max_transfers <= MAX_TRANSFERS_LIMIT:
            raise MaxTransfersExceeded(f"budget {max_transfers} outside 0..{MAX_TRANSFERS_LIMIT}")
        if not (math.isfinite(max_route_distance) and max_route_distance > 0):
            raise DistanceError(f"invalid search radius {max_route_distance}")

        origin_routes = self.find_nearby_routes(origin, max_route_distance)
        if not origin_routes:
            raise NoRoutesNearOrigin(f"none within {max_route_distance} of {origin}")
        destination_routes = self.find_nearby_routes(destination, max_route_distance)
        if not destination_routes:
            raise NoRoutesNearDestination(f"none within {max_route_distance} of {destination}")

        logger.debug(
            "Found %d routes near origin and %d near destination",
            len(origin_routes), len(destination_routes),
        )

        destination_codes = frozenset(r.code for r in destination_routes)
        plans: list[RoutePlan] = []
        for start_route in origin_routes:
            self._explore_route_path(
                start_route,
                destination_codes,
                destination,
                max_transfers,
                visited={start_route.code},
                current_plan=RoutePlan(),
                all_plans=plans,
            )

        if not plans:
            raise NoValidPath(f"no itinerary within {max_transfers} transfers")

        plans.sort(key=lambda p: (p.transfers_count, p.total_distance))
        return plans[:limit]

    def _explore_route_path(
        self,
        current_route: Route,
        destination_codes: frozenset[str],
        destination: Coord,
        transfers_left: int,
        visited: set[str],
        current_plan: RoutePlan,
        all_plans: list[RoutePlan],
    ) -> None:
        if current_route.code in destination_codes:
            end_point, end_distance = closest_vertex(current_route.coordinates, destination)
            final = TransferPoint(
                from_route=current_route.code,
                to_route="",
                location=end_point,
                distance_to_route=end_distance,
                transfer_type=TransferType.DIRECT,
            )
            current_plan.add_segment(RouteSegment(
                route=current_route,
                transfer_point=final,
                transfer_type=TransferType.DIRECT,
                segment_distance=self._route_distance(current_route.code, destination),
            ))
            all_plans.append(current_plan.copy())
            current_plan.pop_segment()
            return

        if transfers_left <= 0:
            return

        for transfer in self._intersections.get(current_route.code, []):
            next_route = self._routes.get(transfer.to_route)
            if next_route is None or next_route.code in visited:
                continue

            visited.add(next_route.code)
            current_plan.add_segment(RouteSegment(
                route=current_route,
                transfer_point=transfer,
                transfer_type=transfer.transfer_type,
                segment_distance=self._route_distance(current_route.code, transfer.location),
            ))

            self._explore_route_path(
                next_route,
                destination_codes,
                destination,
                transfers_left - 1,
                visited,
                current_plan,
                all_plans,
            )

            visited.discard(next_route.code)
            current_plan.pop_segment()

    def _route_distance(self, route_code: str, point: Coord) -> float:
        return self._lines[route_code].distance(Point(point))
