"""Persistence for the precomputed route adjacency map."""

import datetime
import hashlib
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

import orjson

from transit_planner.core.errors import CacheError
from transit_planner.core.models import AdjacencyMap, BusStop, Route, TransferPoint

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 2
CACHE_MAGIC = b"RTIX"
CACHE_FILE_PREFIX = "route_intersections"


class IntersectionCache(Protocol):
    def load(self, key: str) -> AdjacencyMap | None: ...

    def save(self, key: str, intersections: AdjacencyMap) -> None: ...


def dataset_fingerprint(
    routes: Iterable[Route],
    bus_stops: Iterable[BusStop],
    near_threshold: float,
    proximate_threshold: float,
) -> str:
    """SHA-256 over everything the adjacency map is derived from."""
    payload = {
        "version": CACHE_FORMAT_VERSION,
        "near": near_threshold,
        "proximate": proximate_threshold,
        "routes": sorted([r.code, [list(c) for c in r.coordinates]] for r in routes),
        "stops": sorted([s.route_code, list(s.location), s.name or ""] for s in bus_stops),
    }
    return hashlib.sha256(orjson.dumps(payload)).hexdigest()


def encode_intersections(key: str, intersections: AdjacencyMap) -> bytes:
    document = {
        "version": CACHE_FORMAT_VERSION,
        "key": key,
        "created_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "intersections": {
            code: [t.to_dict() for t in transfers] for code, transfers in intersections.items()
        },
    }
    return CACHE_MAGIC + orjson.dumps(document)


def decode_intersections(payload: bytes, key: str) -> AdjacencyMap | None:
    """Decode a cache artifact; None when it was written for another key or version."""
    if not payload.startswith(CACHE_MAGIC):
        raise CacheError("missing cache header")
    try:
        document = orjson.loads(payload[len(CACHE_MAGIC):])
        if document.get("version") != CACHE_FORMAT_VERSION:
            logger.info("Ignoring intersection cache with version %s", document.get("version"))
            return None
        if document.get("key") != key:
            logger.info("Ignoring intersection cache built for another dataset")
            return None
        return {
            code: [TransferPoint.from_dict(t) for t in transfers]
            for code, transfers in document["intersections"].items()
        }
    except (orjson.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
        raise CacheError(f"corrupt intersection cache: {e}") from e


class FileIntersectionCache:
    """Stores one versioned artifact per dataset fingerprint under ``cache_dir``."""

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = Path(cache_dir)

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{CACHE_FILE_PREFIX}-{key[:16]}.cache"

    def load(self, key: str) -> AdjacencyMap | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            payload = path.read_bytes()
        except OSError as e:
            raise CacheError(f"cannot read {path}: {e}") from e
        return decode_intersections(payload, key)

    def save(self, key: str, intersections: AdjacencyMap) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(encode_intersections(key, intersections))
            tmp.replace(path)
        except OSError as e:
            raise CacheError(f"cannot write {path}: {e}") from e
        logger.info("Saved intersection cache to %s", path)
