"""Estimate door-to-door travel time for a ranked plan."""

import math

from transit_planner.core.geometry import KM_PER_DEG
from transit_planner.core.models import RoutePlan

# Average bus speed (km/h) used for the in-vehicle part of the trip
AVERAGE_SPEED_KMH = 30.0
# Walking and waiting allowance per transfer (seconds)
TRANSFER_PENALTY_SECONDS = 5 * 60
# Interdepartmental trips run on slower highways with more stops
INTERDEPARTMENTAL_FACTOR = 1.2


class EtaCalculator:
    """Converts planar plan distance into an estimated trip time."""

    def __init__(self, speed_kmh: float = AVERAGE_SPEED_KMH) -> None:
        self.speed_kmh = speed_kmh

    def travel_seconds(self, plan: RoutePlan) -> int:
        distance_km = plan.total_distance * KM_PER_DEG
        base_s = distance_km * 3600.0 / self.speed_kmh
        if plan.is_interdepartmental:
            base_s *= INTERDEPARTMENTAL_FACTOR
        return int(base_s) + plan.transfers_count * TRANSFER_PENALTY_SECONDS

    def estimate_minutes(self, plan: RoutePlan) -> int:
        """Estimated trip time, rounded up to whole minutes."""
        return math.ceil(self.travel_seconds(plan) / 60)
