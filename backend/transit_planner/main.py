"""FastAPI application entry point."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from transit_planner.api import plan, routes
from transit_planner.config import Settings, settings
from transit_planner.core.data_loader import DataLoader
from transit_planner.core.errors import LoaderError
from transit_planner.core.geo_validator import GeoValidator
from transit_planner.core.intersection_cache import FileIntersectionCache
from transit_planner.core.route_planner import PlanningConfig, RoutePlanner
from transit_planner.core.spatial_search import SpatialSearch

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_planner(config: Settings) -> RoutePlanner:
    """Load the dataset and build every index the planner needs."""
    dataset = DataLoader(config.data_dir).load_all()

    validator = GeoValidator(dataset.departments, near_boundary_threshold=config.near_boundary_threshold)
    cache = FileIntersectionCache(config.cache_dir) if config.cache_enabled else None
    search = SpatialSearch(
        dataset.routes,
        dataset.bus_stops,
        cache=cache,
        near_threshold=config.near_transfer_threshold,
        proximate_threshold=config.proximate_transfer_threshold,
        max_workers=config.precompute_workers,
    )
    return RoutePlanner(validator, search, PlanningConfig.from_settings(config))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the planner once before serving any query."""
    started = time.perf_counter()
    try:
        route_planner = await asyncio.to_thread(build_planner, settings)
    except LoaderError:
        logger.exception("Failed to load dataset from %s", settings.data_dir)
        raise

    # Wire up API modules
    plan.planner = route_planner
    routes.planner = route_planner
    logger.info(
        "Route planner ready with %d routes in %.1fs",
        len(route_planner.search.routes), time.perf_counter() - started,
    )

    yield

    plan.planner = None
    routes.planner = None
    logger.info("Route planner shut down")


app = FastAPI(
    title="Bus Route Planner",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s %d %dms",
        request.method, request.url.path, response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


app.include_router(plan.router)
app.include_router(routes.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "planner_ready": plan.planner is not None}
