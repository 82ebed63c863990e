"""Ascending height ordering of voxels, grouped into tie levels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import numpy as np

from watershed3d.grid import VoxelGrid


@dataclass(frozen=True)
class HeightOrdering:
    """All voxel indices sorted by ascending height.

    Ties keep linear (x-fastest) order. ``level_bounds`` holds the start of
    every tie level followed by the total voxel count.
    """

    order: np.ndarray
    sorted_heights: np.ndarray
    level_bounds: np.ndarray

    def __len__(self) -> int:
        return int(self.order.size)

    @property
    def level_count(self) -> int:
        return int(self.level_bounds.size - 1)

    def level_end(self, start: int) -> int:
        """End (exclusive) of the tie run beginning at or containing ``start``."""

        if start < 0 or start >= len(self):
            raise IndexError(f"position {start} outside ordering of length {len(self)}")
        slot = int(np.searchsorted(self.level_bounds, start, side="right"))
        return int(self.level_bounds[slot])

    def levels(self) -> Iterator[tuple[int, int]]:
        """Yield ``(start, stop)`` for every tie level in ascending height."""

        bounds = self.level_bounds.tolist()
        for start, stop in zip(bounds[:-1], bounds[1:]):
            yield start, stop

    def level_voxels(self, start: int, stop: int) -> np.ndarray:
        return self.order[start:stop]


def sort_by_height(grid: VoxelGrid) -> HeightOrdering:
    """Stable ascending sort of the grid's scalar field."""

    order = np.argsort(grid.heights, kind="stable")
    sorted_heights = grid.heights[order]
    changes = np.flatnonzero(sorted_heights[1:] != sorted_heights[:-1]) + 1
    level_bounds = np.concatenate(([0], changes, [order.size])).astype(np.int64)
    return HeightOrdering(order=order, sorted_heights=sorted_heights, level_bounds=level_bounds)
