"""Post-flood resolution of watershed voxels."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import structlog

from watershed3d.config import DEFAULT_MAX_CLEANUP_PASSES
from watershed3d.labels import WATERSHED

logger = structlog.get_logger()


@dataclass(frozen=True)
class CleanupResult:
    mode: str
    passes: int
    resolved_voxels: int
    residual_boundary: int
    converged: bool


def remove_watershed_voxels(
    labels: np.ndarray,
    neighbors: np.ndarray,
    *,
    max_passes: int = DEFAULT_MAX_CLEANUP_PASSES,
) -> CleanupResult:
    """Absorb watershed voxels into their most common neighboring basin.

    Each pass visits watershed voxels in linear order and updates ``labels``
    in place, so voxels resolved earlier in a pass vote for later ones.
    Ties go to the label met first in neighbor order. A voxel with no basin
    neighbor stays on the boundary. Passes repeat until one resolves nothing,
    no watershed voxel is left, or ``max_passes`` is reached.
    """

    return _run_passes(labels, neighbors, _majority_label, mode="remove", max_passes=max_passes)


def fill_watershed_voxels(
    labels: np.ndarray,
    neighbors: np.ndarray,
    *,
    max_passes: int = DEFAULT_MAX_CLEANUP_PASSES,
) -> CleanupResult:
    """Merge watershed voxels whose basin neighbors all agree on one label.

    Voxels touching two or more distinct basins, or none, keep ``WATERSHED``
    as a persistent background class.
    """

    return _run_passes(labels, neighbors, _unanimous_label, mode="fill", max_passes=max_passes)


def _run_passes(labels: np.ndarray, neighbors: np.ndarray, choose, *, mode: str, max_passes: int) -> CleanupResult:
    if max_passes < 1:
        raise ValueError("max_passes must be >= 1")

    passes = 0
    resolved_total = 0
    converged = False
    pending = np.flatnonzero(labels == WATERSHED)

    while pending.size:
        if passes >= max_passes:
            break
        passes += 1
        resolved = 0
        for voxel in pending.tolist():
            best = choose(labels, neighbors[voxel].tolist())
            if best > WATERSHED:
                labels[voxel] = best
                resolved += 1
        resolved_total += resolved
        pending = np.flatnonzero(labels == WATERSHED)
        if resolved == 0:
            converged = True
            break
    else:
        converged = True

    residual = int(pending.size)
    logger.info(
        "watershed cleanup",
        mode=mode,
        passes=passes,
        resolved=resolved_total,
        residual_boundary=residual,
        converged=converged,
    )
    return CleanupResult(
        mode=mode,
        passes=passes,
        resolved_voxels=resolved_total,
        residual_boundary=residual,
        converged=converged,
    )


def _majority_label(labels: np.ndarray, nbrs: list[int]) -> int:
    counts: dict[int, int] = {}
    for nb in nbrs:
        if nb < 0:
            continue
        value = int(labels[nb])
        if value > WATERSHED:
            counts[value] = counts.get(value, 0) + 1

    best = WATERSHED
    best_count = 0
    for value, count in counts.items():
        if count > best_count:
            best = value
            best_count = count
    return best


def _unanimous_label(labels: np.ndarray, nbrs: list[int]) -> int:
    found = WATERSHED
    for nb in nbrs:
        if nb < 0:
            continue
        value = int(labels[nb])
        if value <= WATERSHED:
            continue
        if found == WATERSHED:
            found = value
        elif value != found:
            return WATERSHED
    return found
