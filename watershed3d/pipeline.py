"""Segmentation pipeline: smoothing, ordering, flood, cleanup."""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Sequence

import numpy as np
import structlog

from watershed3d.cleanup import CleanupResult, fill_watershed_voxels, remove_watershed_voxels
from watershed3d.config import SegmentationConfig
from watershed3d.flood import FloodResult, flood_basins
from watershed3d.grid import VoxelGrid
from watershed3d.metrics import SegmentationMetrics, segmentation_metrics
from watershed3d.ordering import sort_by_height
from watershed3d.smoothing import apply_smoothing
from watershed3d.topology import neighbor_table

logger = structlog.get_logger()


@dataclass(frozen=True)
class SegmentationResult:
    """Final and intermediate outputs of one segmentation run."""

    grid: VoxelGrid
    raw_labels: np.ndarray
    flood: FloodResult
    cleanup: CleanupResult | None
    metrics: SegmentationMetrics
    flood_seconds: float

    @property
    def labels(self) -> np.ndarray:
        return self.grid.labels

    def label_volume(self) -> np.ndarray:
        return self.grid.volume(self.grid.labels)

    def raw_label_volume(self) -> np.ndarray:
        return self.grid.volume(self.raw_labels)

    def height_volume(self) -> np.ndarray:
        return self.grid.volume()


def segment_grid(grid: VoxelGrid, *, config: SegmentationConfig | None = None) -> SegmentationResult:
    """Segment a loaded grid into basins.

    When smoothing is configured the result carries a new grid holding the
    filtered heights; the input grid's scalar field is left untouched.
    """

    cfg = config or SegmentationConfig()
    cfg.validate()

    if cfg.smoothing.kind != "none":
        work = grid.with_heights(apply_smoothing(grid.volume(), cfg.smoothing))
        logger.info(
            "smoothing applied",
            kind=cfg.smoothing.kind,
            radius=cfg.smoothing.radius,
            iterations=cfg.smoothing.iterations,
        )
    else:
        work = grid

    h_min, h_max = work.height_range()
    logger.info("segmenting grid", dimensions=work.dimensions, h_min=h_min, h_max=h_max)

    start = time.perf_counter()
    ordering = sort_by_height(work)
    neighbors = neighbor_table(work, cfg.flood.connectivity)
    flood = flood_basins(work, ordering, neighbors=neighbors)
    flood_seconds = time.perf_counter() - start
    raw_labels = work.labels.copy()

    cleanup: CleanupResult | None
    if cfg.cleanup.mode == "remove":
        cleanup = remove_watershed_voxels(work.labels, neighbors, max_passes=cfg.cleanup.max_passes)
    elif cfg.cleanup.mode == "fill":
        cleanup = fill_watershed_voxels(work.labels, neighbors, max_passes=cfg.cleanup.max_passes)
    else:
        cleanup = None

    metrics = segmentation_metrics(work.labels, work.heights, flood, cleanup)
    return SegmentationResult(
        grid=work,
        raw_labels=raw_labels,
        flood=flood,
        cleanup=cleanup,
        metrics=metrics,
        flood_seconds=flood_seconds,
    )


def segment_volume(
    volume: np.ndarray,
    *,
    origin: Sequence[float] = (0.0, 0.0, 0.0),
    spacing: Sequence[float] = (1.0, 1.0, 1.0),
    config: SegmentationConfig | None = None,
) -> SegmentationResult:
    """Segment a 3D ``[x, y, z]`` scalar array."""

    grid = VoxelGrid.from_volume(volume, origin=origin, spacing=spacing)
    return segment_grid(grid, config=config)
