"""Tests for the in-memory pipeline result cache."""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fixturekit.services import pipeline_cache  # type: ignore
from fixturekit.services.mesh_pipeline import PipelineOptions, run_pipeline  # type: ignore
from fixturekit.services.mesh_types import TriangleMesh  # type: ignore
from meshes import cube_vertices  # type: ignore


@pytest.fixture(autouse=True)
def empty_cache():
    pipeline_cache.clear_pipeline_cache()
    yield
    pipeline_cache.clear_pipeline_cache()


def _cube(size: float) -> TriangleMesh:
    return TriangleMesh.from_flat(cube_vertices(size))


def test_key_depends_on_mesh_and_options() -> None:
    mesh = _cube(1.0)
    key = pipeline_cache.PipelineCacheKey.for_run(mesh, PipelineOptions())
    assert key == pipeline_cache.PipelineCacheKey.for_run(mesh.copy(), PipelineOptions())
    assert key != pipeline_cache.PipelineCacheKey.for_run(_cube(2.0), PipelineOptions())
    assert key != pipeline_cache.PipelineCacheKey.for_run(mesh, PipelineOptions(decimate=True))


def test_digest_depends_on_normals() -> None:
    mesh = _cube(1.0)
    ones = TriangleMesh(positions=mesh.positions.copy(), normals=np.ones_like(mesh.positions))
    zeros = TriangleMesh(positions=mesh.positions.copy(), normals=np.zeros_like(mesh.positions))
    digests = {pipeline_cache.mesh_digest(m) for m in (mesh, ones, zeros)}
    assert len(digests) == 3
    assert pipeline_cache.mesh_digest(ones) == pipeline_cache.mesh_digest(ones.copy())


def test_round_trip() -> None:
    mesh = _cube(1.0)
    key = pipeline_cache.PipelineCacheKey.for_run(mesh, PipelineOptions())
    assert pipeline_cache.get_pipeline_result_from_cache(key) is None
    entry = (run_pipeline(mesh), ())
    pipeline_cache.put_pipeline_result_in_cache(key, entry)
    assert pipeline_cache.get_pipeline_result_from_cache(key) is entry


def test_least_recently_used_entry_is_evicted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(pipeline_cache, "MAX_CACHE_ENTRIES", 2)
    keys = []
    for size in (1.0, 2.0, 3.0):
        mesh = _cube(size)
        key = pipeline_cache.PipelineCacheKey.for_run(mesh, PipelineOptions())
        keys.append(key)
        pipeline_cache.put_pipeline_result_in_cache(key, (run_pipeline(mesh), ()))
        if size == 2.0:
            # touch the first entry so the second becomes the oldest
            assert pipeline_cache.get_pipeline_result_from_cache(keys[0]) is not None

    assert pipeline_cache.pipeline_cache_size() == 2
    assert pipeline_cache.get_pipeline_result_from_cache(keys[0]) is not None
    assert pipeline_cache.get_pipeline_result_from_cache(keys[1]) is None
    assert pipeline_cache.get_pipeline_result_from_cache(keys[2]) is not None
