"""
Staged mesh processing pipeline: analyze, then optionally repair and
decimate.

Stages run strictly one after another on the calling thread.  A stage
that fails does not abort the pipeline: its output is simply not
adopted and the next stage works on the previous mesh.  Progress is
reported through the callback passed in by the caller; there is no
module level state, so independent pipelines may run concurrently on
different worker threads.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .mesh_analysis import analyze
from .mesh_decimation import decimate
from .mesh_repair import repair
from .mesh_types import (
    DECIMATION_TARGET,
    AnalysisResult,
    BoundsTreeBuilder,
    DecimationResult,
    ProgressCallback,
    RepairResult,
    TriangleMesh,
    report_progress,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOptions:
    auto_repair: bool = True
    decimate: bool = False
    target_triangles: int = DECIMATION_TARGET


@dataclass(frozen=True)
class PipelineResult:
    analysis: AnalysisResult
    final_mesh: TriangleMesh
    repair: Optional[RepairResult] = None
    decimation: Optional[DecimationResult] = None


def run_pipeline(
    mesh: TriangleMesh,
    options: Optional[PipelineOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    bounds_tree_builder: Optional[BoundsTreeBuilder] = None,
) -> PipelineResult:
    """Run analysis and the optional repair/decimation stages on ``mesh``.

    Repair only runs when ``auto_repair`` is set and analysis reported at
    least one issue.  Decimation runs whenever ``decimate`` is set.  The
    input mesh is returned as ``final_mesh`` when no stage produced a
    replacement.
    """
    opts = options or PipelineOptions()
    start = time.perf_counter()

    analysis = analyze(mesh, on_progress)

    current = mesh
    repair_result: Optional[RepairResult] = None
    decimation_result: Optional[DecimationResult] = None

    if opts.auto_repair and analysis.issues:
        repair_result = repair(current, analysis, on_progress, bounds_tree_builder)
        if repair_result.success and repair_result.mesh is not None:
            current = repair_result.mesh
        else:
            logger.warning("Repair stage failed, continuing with unrepaired mesh: %s", repair_result.error)

    if opts.decimate:
        decimation_result = decimate(current, opts.target_triangles, on_progress, bounds_tree_builder)
        if decimation_result.success and decimation_result.mesh is not None:
            current = decimation_result.mesh
        else:
            logger.warning("Decimation stage failed, keeping previous mesh: %s", decimation_result.error)

    report_progress(on_progress, "complete", 100, "Processing complete")
    logger.debug(
        "run_pipeline: %d -> %d triangles in %.3f s",
        mesh.triangle_count,
        current.triangle_count,
        time.perf_counter() - start,
    )
    return PipelineResult(
        analysis=analysis,
        final_mesh=current,
        repair=repair_result,
        decimation=decimation_result,
    )
