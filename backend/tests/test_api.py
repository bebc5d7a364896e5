"""HTTP tests against an in-memory planner; the data-loading lifespan is not run."""

import pytest
from fastapi.testclient import TestClient

from helpers import LA_LIBERTAD, SAN_SALVADOR, shared_stop_network
from transit_planner.api import plan, routes
from transit_planner.core.geo_validator import GeoValidator
from transit_planner.core.route_planner import PlanningConfig, RoutePlanner
from transit_planner.core.spatial_search import SpatialSearch
from transit_planner.main import app

TRIP = {"start_lat": 13.69, "start_lng": -89.221, "end_lat": 13.71, "end_lng": -89.179}


@pytest.fixture
def planner() -> RoutePlanner:
    return RoutePlanner(
        GeoValidator([SAN_SALVADOR, LA_LIBERTAD]),
        SpatialSearch(*shared_stop_network()),
        PlanningConfig(max_route_distance=0.005),
    )


@pytest.fixture
def client(planner, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(plan, "planner", planner)
    monkeypatch.setattr(routes, "planner", planner)
    return TestClient(app)


def test_plan_route(client):
    response = client.get("/api/plan-route", params=TRIP)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    (itinerary,) = body["routes"]
    assert [s["route_code"] for s in itinerary["segments"]] == ["R1", "R2"]
    assert itinerary["transfers_count"] == 1
    assert itinerary["is_interdepartmental"] is False
    assert itinerary["estimated_time"] >= 5

    transfer = itinerary["segments"][0]
    assert transfer["transfer_type"] == "Directo"
    assert transfer["transfer_point"]["stop_name"] == "Plaza Barrios"
    assert transfer["transfer_point"]["latitude"] == 13.70
    assert transfer["transfer_point"]["longitude"] == -89.20


def test_plan_route_outside_country_bounds(client):
    response = client.get("/api/plan-route", params={**TRIP, "start_lat": 20.0})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_plan_route_outside_departments(client):
    # Within the coarse country box but far from every department
    response = client.get("/api/plan-route", params={**TRIP, "start_lat": 13.2, "start_lng": -88.0})
    assert response.status_code == 400


def test_plan_route_without_nearby_routes(client):
    response = client.get("/api/plan-route", params={**TRIP, "start_lat": 13.75, "start_lng": -89.28})
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_plan_route_before_startup(client, monkeypatch):
    monkeypatch.setattr(plan, "planner", None)
    response = client.get("/api/plan-route", params=TRIP)
    assert response.status_code == 503


def test_plan_route_missing_parameter(client):
    response = client.get("/api/plan-route", params={"start_lat": 13.69})
    assert response.status_code == 422


def test_nearby_routes(client):
    response = client.get("/api/routes/nearby", params={"lat": 13.70, "lng": -89.20})
    assert response.status_code == 200
    assert [r["code"] for r in response.json()] == ["R1", "R2"]
    assert response.json()[0]["subtype"] == "urban"


def test_route_detail(client):
    response = client.get("/api/routes/R1")
    assert response.status_code == 200
    body = response.json()
    assert body["departments"] == ["San Salvador"]
    assert body["geometry"][0] == [13.69, -89.22]
    assert len(body["stops"]) == 2
    assert body["transfers"] == ["R2"]


def test_unknown_route(client):
    assert client.get("/api/routes/R99").status_code == 404


def test_health(client):
    response = client.get("/api/health")
    assert response.json() == {"status": "ok", "planner_ready": True}
