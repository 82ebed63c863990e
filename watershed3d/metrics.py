"""Segmentation summary metrics."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from watershed3d.cleanup import CleanupResult
from watershed3d.flood import FloodResult
from watershed3d.labels import WATERSHED


@dataclass(frozen=True)
class SegmentationMetrics:
    """Basin and boundary summary for one segmented volume."""

    voxel_count: int
    level_count: int
    basin_count: int
    watershed_voxels_raw: int
    watershed_voxels_final: int
    largest_basin_voxels: int
    largest_basin_ratio: float
    top_10_basin_sizes: tuple[int, ...]
    cleanup_mode: str
    cleanup_passes: int
    cleanup_converged: bool
    height_min: float
    height_max: float


def basin_sizes(labels: np.ndarray) -> np.ndarray:
    """Voxel count per basin id; index 0 counts watershed voxels."""

    basin = labels[labels >= WATERSHED]
    return np.bincount(basin.astype(np.int64))


def segmentation_metrics(
    labels: np.ndarray,
    heights: np.ndarray,
    flood: FloodResult,
    cleanup: CleanupResult | None,
) -> SegmentationMetrics:
    """Summarize final labels together with flood and cleanup statistics."""

    total = int(labels.size)
    sizes = basin_sizes(labels)[1:]
    present = sizes[sizes > 0]
    largest = int(present.max()) if present.size else 0
    top = tuple(int(s) for s in np.sort(present)[::-1][:10])

    return SegmentationMetrics(
        voxel_count=total,
        level_count=flood.level_count,
        basin_count=flood.basin_count,
        watershed_voxels_raw=flood.watershed_voxels,
        watershed_voxels_final=int(np.count_nonzero(labels == WATERSHED)),
        largest_basin_voxels=largest,
        largest_basin_ratio=float(largest / total) if total else 0.0,
        top_10_basin_sizes=top,
        cleanup_mode=cleanup.mode if cleanup is not None else "none",
        cleanup_passes=cleanup.passes if cleanup is not None else 0,
        cleanup_converged=cleanup.converged if cleanup is not None else True,
        height_min=float(heights.min()),
        height_max=float(heights.max()),
    )
