"""Value types shared by the validator, the spatial search and the planner.

Coordinates are ``(lon, lat)`` pairs treated as planar x/y, the same order
Shapely uses.
"""

import enum
from dataclasses import dataclass, field

Coord = tuple[float, float]
Ring = tuple[Coord, ...]
PolygonRings = tuple[Ring, ...]  # exterior ring first, then holes


class RouteSubtype(str, enum.Enum):
    URBAN = "urban"
    INTERURBAN = "interurban"
    INTERDEPARTMENTAL = "interdepartmental"


class TransferType(str, enum.Enum):
    DIRECT = "direct"  # shared stop
    NEAR = "near"  # stops within the near threshold
    PROXIMATE = "proximate"  # polyline vertices within the proximate threshold


@dataclass(frozen=True)
class Department:
    name: str
    polygons: tuple[PolygonRings, ...]


@dataclass(frozen=True)
class Route:
    code: str
    name: str
    coordinates: tuple[Coord, ...]
    department: str = ""
    subtype: RouteSubtype = RouteSubtype.URBAN


@dataclass(frozen=True)
class BusStop:
    route_code: str
    location: Coord
    name: str | None = None

    def to_dict(self) -> dict:
        return {"route_code": self.route_code, "location": list(self.location), "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "BusStop":
        return cls(
            route_code=data["route_code"],
            location=(data["location"][0], data["location"][1]),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class TransferPoint:
    """Best place to change from ``from_route`` to ``to_route``.

    An empty ``to_route`` marks the final leg, where the location is the
    vertex of ``from_route`` closest to the destination.
    """

    from_route: str
    to_route: str
    location: Coord
    distance_to_route: float
    transfer_type: TransferType
    bus_stop: BusStop | None = None

    def to_dict(self) -> dict:
        return {
            "from_route": self.from_route,
            "to_route": self.to_route,
            "location": list(self.location),
            "distance_to_route": self.distance_to_route,
            "transfer_type": self.transfer_type.value,
            "bus_stop": self.bus_stop.to_dict() if self.bus_stop else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TransferPoint":
        stop = data.get("bus_stop")
        return cls(
            from_route=data["from_route"],
            to_route=data["to_route"],
            location=(data["location"][0], data["location"][1]),
            distance_to_route=data["distance_to_route"],
            transfer_type=TransferType(data["transfer_type"]),
            bus_stop=BusStop.from_dict(stop) if stop else None,
        )


AdjacencyMap = dict[str, list[TransferPoint]]


@dataclass(frozen=True)
class RouteSegment:
    route: Route
    transfer_point: TransferPoint
    transfer_type: TransferType
    segment_distance: float


@dataclass
class RoutePlan:
    segments: list[RouteSegment] = field(default_factory=list)
    total_distance: float = 0.0
    transfers_count: int = 0
    is_interdepartmental: bool = False

    def add_segment(self, segment: RouteSegment) -> None:
        self.segments.append(segment)
        self.total_distance += segment.segment_distance
        self.transfers_count = len(self.segments) - 1

    def pop_segment(self) -> RouteSegment:
        segment = self.segments.pop()
        # Re-summing in append order keeps totals identical to a fresh build
        self.total_distance = sum((s.segment_distance for s in self.segments), 0.0)
        self.transfers_count = max(0, len(self.segments) - 1)
        return segment

    def copy(self) -> "RoutePlan":
        return RoutePlan(
            segments=list(self.segments),
            total_distance=self.total_distance,
            transfers_count=self.transfers_count,
            is_interdepartmental=self.is_interdepartmental,
        )

    @property
    def route_codes(self) -> list[str]:
        return [s.route.code for s in self.segments]


@dataclass(frozen=True)
class RouteRequest:
    origin: Coord
    destination: Coord
    max_route_distance: float
    max_transfer_distance: float
    max_transfers: int


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    origin_department: str | None
    destination_department: str | None
    is_interdepartmental: bool
    distance_to_boundary: float
