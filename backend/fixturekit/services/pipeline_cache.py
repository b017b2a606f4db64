"""
Simple in‑memory caching layer for mesh pipeline results.

Running the analysis/repair/decimation pipeline on a large mesh is
expensive and the UI tends to resubmit the same mesh (for example when
the user toggles decimation back off).  Results are cached under a key
made of the SHA‑256 digest of the vertex and normal buffers and the
pipeline options.  A run that replaces no mesh returns the input
mesh, normals included, as its final mesh.

The cache is an ``OrderedDict`` providing least‑recently‑used eviction
once ``MAX_CACHE_ENTRIES`` is exceeded.  Cached results are immutable
value objects, so they can be handed out to several callers.
"""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from dataclasses import dataclass
from threading import RLock
from typing import Optional, Tuple

import numpy as np

from .mesh_pipeline import PipelineOptions, PipelineResult
from .mesh_types import ProcessingProgress, TriangleMesh


@dataclass(frozen=True)
class PipelineCacheKey:
    """Unique identifier for a cached pipeline run."""

    mesh_digest: str
    auto_repair: bool
    decimate: bool
    target_triangles: int

    @classmethod
    def for_run(cls, mesh: TriangleMesh, options: PipelineOptions) -> "PipelineCacheKey":
        return cls(
            mesh_digest=mesh_digest(mesh),
            auto_repair=options.auto_repair,
            decimate=options.decimate,
            target_triangles=options.target_triangles,
        )


CachedRun = Tuple[PipelineResult, Tuple[ProcessingProgress, ...]]

# Reentrant lock guards the dictionary for concurrent requests.
_cache: "OrderedDict[PipelineCacheKey, CachedRun]" = OrderedDict()
_lock = RLock()
MAX_CACHE_ENTRIES: int = 8


def mesh_digest(mesh: TriangleMesh) -> str:
    """SHA‑256 of the mesh's float32 position and normal buffers."""
    digest = hashlib.sha256()
    digest.update(np.ascontiguousarray(mesh.positions, dtype=np.float32).tobytes())
    if mesh.normals is None:
        digest.update(b"no-normals")
    else:
        digest.update(b"normals")
        digest.update(np.ascontiguousarray(mesh.normals, dtype=np.float32).tobytes())
    return digest.hexdigest()


def get_pipeline_result_from_cache(key: PipelineCacheKey) -> Optional[CachedRun]:
    with _lock:
        entry = _cache.get(key)
        if entry is not None:
            _cache.move_to_end(key)
        return entry


def put_pipeline_result_in_cache(key: PipelineCacheKey, entry: CachedRun) -> None:
    """Store a pipeline run, evicting the least recently used entry if full."""
    with _lock:
        _cache[key] = entry
        _cache.move_to_end(key)
        if len(_cache) > MAX_CACHE_ENTRIES:
            _cache.popitem(last=False)


def clear_pipeline_cache() -> None:
    with _lock:
        _cache.clear()


def pipeline_cache_size() -> int:
    with _lock:
        return len(_cache)
