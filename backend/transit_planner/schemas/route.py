from pydantic import BaseModel


class RouteInfo(BaseModel):
    code: str
    name: str
    department: str
    subtype: str


class RouteStopInfo(BaseModel):
    name: str | None = None
    lat: float
    lon: float


class RouteDetail(BaseModel):
    code: str
    name: str
    department: str
    subtype: str
    departments: list[str] = []
    stops: list[RouteStopInfo] = []
    geometry: list[list[float]] = []  # [[lat, lon], ...]
    transfers: list[str] = []  # route codes reachable with one transfer
