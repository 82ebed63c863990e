"""Vincent-Soille immersion flood over a voxel grid.

Tie levels are processed strictly in ascending height. For each level:

1. every voxel of the level is masked, and those touching an already
   confirmed voxel (basin or watershed) seed the frontier at distance 1;
2. the frontier is expanded one geodesic distance class at a time, so a
   masked voxel takes its label only from neighbors one class closer to the
   already flooded territory;
3. masked voxels still unreached are new minima and get fresh basin ids;
4. distances touched by the level are reset to 0.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

import numpy as np
import structlog

from watershed3d.grid import VoxelGrid
from watershed3d.labels import MASKED, UNVISITED, WATERSHED
from watershed3d.ordering import HeightOrdering, sort_by_height
from watershed3d.topology import neighbor_table

logger = structlog.get_logger()


class GeodesicInvariantError(RuntimeError):
    """A propagating neighbor was not exactly one distance class closer."""

    def __init__(self, voxel: tuple[int, int, int], expected: int, observed: int) -> None:
        self.voxel = voxel
        self.expected = expected
        self.observed = observed
        super().__init__(
            f"geodesic distance mismatch at voxel {voxel}: expected {expected}, observed {observed}"
        )


@dataclass(frozen=True)
class FloodResult:
    basin_count: int
    level_count: int
    watershed_voxels: int
    level_rank: np.ndarray


def flood_basins(
    grid: VoxelGrid,
    ordering: HeightOrdering | None = None,
    *,
    connectivity: int = 6,
    neighbors: np.ndarray | None = None,
) -> FloodResult:
    """Label every voxel of ``grid`` with a basin id or ``WATERSHED``.

    Labels are written into ``grid.labels`` in place. ``level_rank`` records
    the index of the tie level that finalized each voxel.
    """

    if ordering is None:
        ordering = sort_by_height(grid)
    if neighbors is None:
        neighbors = neighbor_table(grid, connectivity)

    grid.reset_working_state()
    labels = grid.labels
    dist = grid.distance
    level_rank = np.full(grid.size, -1, dtype=np.int64)
    current_label = 0

    for rank, (start, stop) in enumerate(ordering.levels()):
        level = ordering.level_voxels(start, stop)
        frontier = _mask_level(labels, dist, neighbors, level)
        _propagate(grid, neighbors, frontier)
        current_label = _label_new_minima(grid, neighbors, level, current_label)
        dist[level] = 0
        level_rank[level] = rank

    if np.any(labels < WATERSHED):
        # Every voxel belongs to exactly one level, so nothing can stay masked.
        remaining = int(np.count_nonzero(labels < WATERSHED))
        raise RuntimeError(f"flood finished with {remaining} unresolved voxels")

    watershed_voxels = int(np.count_nonzero(labels == WATERSHED))
    logger.info(
        "flood complete",
        levels=ordering.level_count,
        basins=current_label,
        watershed_voxels=watershed_voxels,
        connectivity=neighbors.shape[1],
    )
    return FloodResult(
        basin_count=current_label,
        level_count=ordering.level_count,
        watershed_voxels=watershed_voxels,
        level_rank=level_rank,
    )


def _mask_level(labels: np.ndarray, dist: np.ndarray, neighbors: np.ndarray, level: np.ndarray) -> list[int]:
    labels[level] = MASKED

    nbrs = neighbors[level]
    valid = nbrs >= 0
    nb_labels = np.where(valid, labels[np.where(valid, nbrs, 0)], UNVISITED)
    touches_flooded = np.any(nb_labels >= WATERSHED, axis=1)

    seeds = level[touches_flooded]
    dist[seeds] = 1
    return seeds.tolist()


def _propagate(grid: VoxelGrid, neighbors: np.ndarray, frontier: list[int]) -> None:
    labels = grid.labels
    dist = grid.distance
    current = 1

    while frontier:
        next_frontier: list[int] = []
        for voxel in frontier:
            for nb in neighbors[voxel].tolist():
                if nb < 0:
                    continue
                nb_label = int(labels[nb])
                nb_dist = int(dist[nb])

                if nb_dist < current and nb_label >= WATERSHED:
                    if nb_dist != current - 1:
                        raise GeodesicInvariantError(grid.coords(nb), current - 1, nb_dist)
                    own = int(labels[voxel])
                    if nb_label > WATERSHED:
                        if own == MASKED or own == WATERSHED:
                            labels[voxel] = nb_label
                        elif own != nb_label:
                            labels[voxel] = WATERSHED
                    elif own == MASKED:
                        labels[voxel] = WATERSHED
                elif nb_label == MASKED and nb_dist == 0:
                    # Plateau voxel: reachable only through the level itself.
                    dist[nb] = current + 1
                    next_frontier.append(nb)
        frontier = next_frontier
        current += 1


def _label_new_minima(grid: VoxelGrid, neighbors: np.ndarray, level: np.ndarray, current_label: int) -> int:
    labels = grid.labels

    for start in level.tolist():
        if labels[start] != MASKED:
            continue
        current_label += 1
        labels[start] = current_label
        queue = deque([start])
        size = 0
        while queue:
            voxel = queue.popleft()
            size += 1
            for nb in neighbors[voxel].tolist():
                if nb >= 0 and labels[nb] == MASKED:
                    labels[nb] = current_label
                    queue.append(nb)
        logger.debug(
            "new minimum",
            basin=current_label,
            voxel=grid.coords(start),
            height=float(grid.heights[start]),
            voxels=size,
        )

    return current_label
