"""Query-time orchestration: validate, widen the search, search, rank."""

import logging
from dataclasses import dataclass

from transit_planner.core.errors import ConfigError, InvalidCoordinates, NoValidRoutes
from transit_planner.core.geo_validator import GeoValidator
from transit_planner.core.models import (
    Coord,
    RoutePlan,
    RouteRequest,
    TransferType,
    ValidationResult,
)
from transit_planner.core.spatial_search import MAX_TRANSFERS_LIMIT, SpatialSearch

logger = logging.getLogger(__name__)

INTERDEPARTMENTAL_WIDENING = 1.5
NEAR_BOUNDARY_WIDENING = 1.2

TRANSFER_WEIGHT = 10.0
TIER_PENALTY = {
    TransferType.DIRECT: 0.0,
    TransferType.NEAR: 2.0,
    TransferType.PROXIMATE: 5.0,
}
# Multipliers applied when a plan's own department crossing agrees with the query's
MATCHING_SCOPE_FACTOR = 0.8
MISMATCHED_SCOPE_FACTOR = 1.2


@dataclass(frozen=True)
class PlanningConfig:
    max_route_distance: float = 0.05  # ~5 km to reach a route
    max_transfer_distance: float = 0.01  # ~1 km between routes
    max_transfers: int = 10
    results_limit: int = 3

    def __post_init__(self) -> None:
        if not self.max_route_distance > 0:
            raise ConfigError(f"max_route_distance must be positive, got {self.max_route_distance}")
        if not self.max_transfer_distance > 0:
            raise ConfigError(f"max_transfer_distance must be positive, got {self.max_transfer_distance}")
        if not 0 <= self.max_transfers <= MAX_TRANSFERS_LIMIT:
            raise ConfigError(f"max_transfers must be within 0..{MAX_TRANSFERS_LIMIT}, got {self.max_transfers}")
        if self.results_limit < 1:
            raise ConfigError(f"results_limit must be at least 1, got {self.results_limit}")

    @classmethod
    def from_settings(cls, settings) -> "PlanningConfig":
        return cls(
            max_route_distance=settings.max_route_distance,
            max_transfer_distance=settings.max_transfer_distance,
            max_transfers=settings.max_transfers,
            results_limit=settings.results_limit,
        )


class RoutePlanner:
    """Stateless per query; the validator and search indices are shared read-only."""

    def __init__(
        self,
        validator: GeoValidator,
        search: SpatialSearch,
        config: PlanningConfig | None = None,
    ) -> None:
        self.validator = validator
        self.search = search
        self.config = config or PlanningConfig()

    def plan_route(self, origin: Coord, destination: Coord) -> list[RoutePlan]:
        """Ranked itineraries from ``origin`` to ``destination``, best first."""
        logger.info("Validating geographic points %s -> %s", origin, destination)
        validation = self.validator.validate_route(origin, destination)
        if not validation.is_valid:
            # Near-boundary points resolve to no department and are rejected
            raise InvalidCoordinates("origin and destination must both lie inside a department")

        request = self.create_route_request(origin, destination, validation)
        logger.debug("Search request: %s", request)

        plans = self.search.find_routes_to_destination(
            request.origin,
            request.destination,
            request.max_transfers,
            request.max_route_distance,
            limit=self.config.results_limit,
        )
        for plan in plans:
            plan.is_interdepartmental = self.plan_crosses_departments(plan)

        ranked = self.rank_plans(plans, validation)
        if not ranked:
            raise NoValidRoutes()
        return ranked[: self.config.results_limit]

    def create_route_request(
        self, origin: Coord, destination: Coord, validation: ValidationResult
    ) -> RouteRequest:
        max_route_distance = self.config.max_route_distance
        max_transfer_distance = self.config.max_transfer_distance

        if validation.is_interdepartmental:
            max_route_distance *= INTERDEPARTMENTAL_WIDENING
            max_transfer_distance *= INTERDEPARTMENTAL_WIDENING

        if validation.distance_to_boundary < self.config.max_transfer_distance:
            max_route_distance *= NEAR_BOUNDARY_WIDENING

        return RouteRequest(
            origin=origin,
            destination=destination,
            max_route_distance=max_route_distance,
            max_transfer_distance=max_transfer_distance,
            max_transfers=self.config.max_transfers,
        )

    def plan_crosses_departments(self, plan: RoutePlan) -> bool:
        departments: set[str] = set()
        for segment in plan.segments:
            departments.update(self.validator.get_route_departments(segment.route))
        return len(departments) > 1

    def rank_plans(self, plans: list[RoutePlan], validation: ValidationResult) -> list[RoutePlan]:
        scored = [(self.calculate_plan_score(p, validation), p) for p in plans]
        scored.sort(key=lambda item: item[0])
        return [plan for _, plan in scored]

    def calculate_plan_score(self, plan: RoutePlan, validation: ValidationResult) -> float:
        """Lower is better."""
        score = plan.transfers_count * TRANSFER_WEIGHT
        score += plan.total_distance / self.config.max_route_distance
        score += sum(TIER_PENALTY[s.transfer_type] for s in plan.segments)

        if plan.is_interdepartmental == validation.is_interdepartmental:
            score *= MATCHING_SCOPE_FACTOR
        else:
            score *= MISMATCHED_SCOPE_FACTOR
        return score
