"""Synthetic departments, routes and stops around San Salvador (~13.7N, -89.2E)."""

from transit_planner.core.models import BusStop, Department, Route, RouteSubtype


def square(name: str, min_lon: float, min_lat: float, max_lon: float, max_lat: float) -> Department:
    ring = (
        (min_lon, min_lat),
        (max_lon, min_lat),
        (max_lon, max_lat),
        (min_lon, max_lat),
        (min_lon, min_lat),
    )
    return Department(name=name, polygons=((ring,),))


SAN_SALVADOR = square("San Salvador", -89.30, 13.60, -89.15, 13.80)
# Leaves a 0.02 deg gap to San Salvador
LA_LIBERTAD = square("La Libertad", -89.50, 13.60, -89.32, 13.80)


def make_route(code: str, *coords: tuple[float, float], department: str = "San Salvador") -> Route:
    return Route(
        code=code,
        name=f"Ruta {code}",
        coordinates=tuple(coords),
        department=department,
        subtype=RouteSubtype.URBAN,
    )


def make_stop(code: str, lon: float, lat: float, name: str | None = None) -> BusStop:
    return BusStop(route_code=code, location=(lon, lat), name=name)


def shared_stop_network() -> tuple[list[Route], list[BusStop]]:
    """Two routes meeting at a shared stop at (-89.20, 13.70)."""
    routes = [
        make_route("R1", (-89.22, 13.69), (-89.21, 13.695), (-89.20, 13.70)),
        make_route("R2", (-89.20, 13.70), (-89.19, 13.705), (-89.18, 13.71)),
    ]
    stops = [
        make_stop("R1", -89.22, 13.69, "Terminal Occidente"),
        make_stop("R1", -89.20, 13.70, "Plaza Barrios"),
        make_stop("R2", -89.20, 13.70, "Plaza Barrios"),
        make_stop("R2", -89.18, 13.71, "Metrocentro"),
    ]
    return routes, stops


def chain_network(with_bypass: bool = False) -> tuple[list[Route], list[BusStop]]:
    """Four routes along 13.70N, each sharing its end stop with the next.

    The optional bypass C5 links the C1/C2 stop directly to the C3/C4 stop.
    """
    xs = [-89.29, -89.27, -89.25, -89.23, -89.21]
    routes, stops = [], []
    for i in range(4):
        code = f"C{i + 1}"
        routes.append(make_route(code, (xs[i], 13.70), (xs[i + 1], 13.70)))
        stops.append(make_stop(code, xs[i], 13.70))
        stops.append(make_stop(code, xs[i + 1], 13.70))
    if with_bypass:
        routes.append(make_route("C5", (-89.27, 13.70), (-89.25, 13.72), (-89.23, 13.70)))
        stops.append(make_stop("C5", -89.27, 13.70))
        stops.append(make_stop("C5", -89.23, 13.70))
    return routes, stops
