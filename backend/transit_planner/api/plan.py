"""Trip planning REST endpoint."""

import logging

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from transit_planner.config import settings
from transit_planner.core.errors import NoValidRoutes, PlanningError, SearchError, ValidationError
from transit_planner.core.eta_calculator import EtaCalculator
from transit_planner.core.models import RoutePlan
from transit_planner.schemas.plan import (
    PlanningResponse,
    RoutePlanInfo,
    RouteSegmentInfo,
    TransferPointInfo,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["planning"])

# Will be set by main.py
planner = None

_eta = EtaCalculator()

TRANSFER_TYPE_LABELS = {
    "direct": "Directo",
    "near": "Cercano",
    "proximate": "Próximo",
}


def is_within_country(lat: float, lng: float) -> bool:
    return (
        settings.country_min_lat <= lat <= settings.country_max_lat
        and settings.country_min_lon <= lng <= settings.country_max_lon
    )


def plan_to_response(plan: RoutePlan) -> RoutePlanInfo:
    segments = []
    for segment in plan.segments:
        tp = segment.transfer_point
        segments.append(RouteSegmentInfo(
            route_code=segment.route.code,
            route_name=segment.route.name,
            transfer_type=TRANSFER_TYPE_LABELS[segment.transfer_type.value],
            transfer_point=TransferPointInfo(
                latitude=tp.location[1],
                longitude=tp.location[0],
                stop_name=tp.bus_stop.name if tp.bus_stop else None,
                distance=tp.distance_to_route,
            ),
            segment_distance=segment.segment_distance,
        ))
    return RoutePlanInfo(
        segments=segments,
        total_distance=plan.total_distance,
        transfers_count=plan.transfers_count,
        is_interdepartmental=plan.is_interdepartmental,
        estimated_time=_eta.estimate_minutes(plan),
    )


def _failure(status_code: int, message: str) -> JSONResponse:
    body = PlanningResponse(success=False, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.get("/plan-route", response_model=PlanningResponse)
def plan_route(
    start_lat: float = Query(...),
    start_lng: float = Query(...),
    end_lat: float = Query(...),
    end_lng: float = Query(...),
):
    """Plan bus itineraries between two points, best first."""
    logger.info("Planning routes from (%s, %s) to (%s, %s)", start_lat, start_lng, end_lat, end_lng)

    if not (is_within_country(start_lat, start_lng) and is_within_country(end_lat, end_lng)):
        return _failure(400, "Coordinates must be within country bounds")
    if planner is None:
        logger.error("Route planner not initialized")
        return _failure(503, "Route planning system not initialized")

    try:
        plans = planner.plan_route((start_lng, start_lat), (end_lng, end_lat))
    except ValidationError as e:
        return _failure(400, str(e))
    except (SearchError, NoValidRoutes) as e:
        logger.info("No route found: %s", e)
        return _failure(404, str(e))
    except PlanningError as e:
        logger.error("Error planning route: %s", e)
        return _failure(500, str(e))

    logger.debug("Found %d possible route plans", len(plans))
    return PlanningResponse(success=True, routes=[plan_to_response(p) for p in plans])
