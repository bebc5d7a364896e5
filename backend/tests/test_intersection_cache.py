"""Tests for the on-disk intersection cache."""

import pytest

from helpers import make_stop, shared_stop_network
from transit_planner.core.errors import CacheError
from transit_planner.core.intersection_cache import (
    FileIntersectionCache,
    dataset_fingerprint,
    decode_intersections,
    encode_intersections,
)
from transit_planner.core.spatial_search import SpatialSearch


def test_round_trip(tmp_path):
    search = SpatialSearch(*shared_stop_network())
    cache = FileIntersectionCache(tmp_path)

    cache.save(search.cache_key, dict(search.intersections))

    assert cache.path_for(search.cache_key).exists()
    assert cache.load(search.cache_key) == dict(search.intersections)


def test_missing_file_is_a_miss(tmp_path):
    assert FileIntersectionCache(tmp_path / "nothing").load("0" * 64) is None


def test_key_mismatch_is_a_miss(tmp_path):
    cache = FileIntersectionCache(tmp_path)
    key = "a" * 64
    cache.save(key, {})
    # Same file name prefix, different dataset
    assert cache.load("a" * 16 + "b" * 48) is None


def test_corrupt_file_raises(tmp_path):
    cache = FileIntersectionCache(tmp_path)
    key = "c" * 64
    cache.path_for(key).write_bytes(b"not a cache file")
    with pytest.raises(CacheError):
        cache.load(key)

    with pytest.raises(CacheError):
        decode_intersections(encode_intersections(key, {})[:-5], key)


def test_second_build_loads_from_cache(tmp_path, monkeypatch):
    cache = FileIntersectionCache(tmp_path)
    first = SpatialSearch(*shared_stop_network(), cache=cache)

    def fail(self):
        raise AssertionError("cache should have been used")

    monkeypatch.setattr(SpatialSearch, "precalculate_intersections", fail)
    second = SpatialSearch(*shared_stop_network(), cache=cache)

    assert dict(second.intersections) == dict(first.intersections)


def test_corrupt_cache_triggers_recompute(tmp_path):
    cache = FileIntersectionCache(tmp_path)
    routes, stops = shared_stop_network()
    key = SpatialSearch(routes, stops).cache_key
    cache.path_for(key).write_bytes(b"RTIX{broken")

    search = SpatialSearch(routes, stops, cache=cache)

    assert search.transfers_from("R1")[0].to_route == "R2"
    # Recomputed map overwrote the corrupt artifact
    assert cache.load(key) == dict(search.intersections)


def test_fingerprint_tracks_dataset():
    routes, stops = shared_stop_network()
    base = dataset_fingerprint(routes, stops, 0.005, 0.01)

    assert base == dataset_fingerprint(list(reversed(routes)), stops, 0.005, 0.01)
    assert base != dataset_fingerprint(routes, stops + [make_stop("R1", -89.21, 13.695)], 0.005, 0.01)
    assert base != dataset_fingerprint(routes, stops, 0.004, 0.01)


def test_failed_save_is_not_fatal(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where the cache directory should be")
    cache = FileIntersectionCache(blocker / "cache")

    search = SpatialSearch(*shared_stop_network(), cache=cache)

    assert search.transfers_from("R1")
