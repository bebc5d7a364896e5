"""Route lookup REST endpoints backed by the in-memory spatial index."""

from fastapi import APIRouter, HTTPException, Query

from transit_planner.schemas.route import RouteDetail, RouteInfo, RouteStopInfo

router = APIRouter(prefix="/api/routes", tags=["routes"])

# Will be set by main.py
planner = None


def _require_planner():
    if planner is None:
        raise HTTPException(status_code=503, detail="Route planning system not initialized")
    return planner


@router.get("/nearby", response_model=list[RouteInfo])
def nearby_routes(
    lat: float,
    lng: float,
    max_distance: float = Query(0.005, gt=0, le=0.1),
):
    """Routes with a vertex within ``max_distance`` degrees of the point."""
    search = _require_planner().search
    routes = search.find_nearby_routes((lng, lat), max_distance)
    return [
        RouteInfo(code=r.code, name=r.name, department=r.department, subtype=r.subtype.value)
        for r in routes
    ]


@router.get("/{code}", response_model=RouteDetail)
def get_route(code: str):
    """Route detail with stops, geometry and one-transfer neighbours."""
    current = _require_planner()
    route = current.search.get_route(code)
    if route is None:
        raise HTTPException(status_code=404, detail="Route not found")

    stops = [
        RouteStopInfo(name=s.name, lat=s.location[1], lon=s.location[0])
        for s in current.search.get_stops(code)
    ]
    return RouteDetail(
        code=route.code,
        name=route.name,
        department=route.department,
        subtype=route.subtype.value,
        departments=current.validator.get_route_departments(route),
        stops=stops,
        geometry=[[lat, lon] for lon, lat in route.coordinates],
        transfers=[t.to_route for t in current.search.transfers_from(code)],
    )
