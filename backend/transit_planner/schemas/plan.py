from pydantic import BaseModel


class TransferPointInfo(BaseModel):
    latitude: float
    longitude: float
    stop_name: str | None = None
    distance: float


class RouteSegmentInfo(BaseModel):
    route_code: str
    route_name: str
    transfer_type: str
    transfer_point: TransferPointInfo
    segment_distance: float


class RoutePlanInfo(BaseModel):
    segments: list[RouteSegmentInfo]
    total_distance: float
    transfers_count: int
    is_interdepartmental: bool
    estimated_time: int  # minutes


class PlanningResponse(BaseModel):
    success: bool
    message: str | None = None
    routes: list[RoutePlanInfo] | None = None
