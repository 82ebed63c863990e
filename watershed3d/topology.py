"""Voxel neighbor offsets and per-voxel neighbor tables."""

from __future__ import annotations

import numpy as np

from watershed3d.config import CONNECTIVITIES
from watershed3d.grid import VoxelGrid


FACE_OFFSETS = (
    (-1, 0, 0),
    (1, 0, 0),
    (0, -1, 0),
    (0, 1, 0),
    (0, 0, -1),
    (0, 0, 1),
)
EDGE_OFFSETS = (
    (0, -1, -1),
    (0, -1, 1),
    (0, 1, -1),
    (0, 1, 1),
    (-1, 0, -1),
    (-1, 0, 1),
    (1, 0, -1),
    (1, 0, 1),
    (-1, -1, 0),
    (-1, 1, 0),
    (1, -1, 0),
    (1, 1, 0),
)
CORNER_OFFSETS = (
    (-1, -1, -1),
    (-1, -1, 1),
    (-1, 1, -1),
    (-1, 1, 1),
    (1, -1, -1),
    (1, -1, 1),
    (1, 1, -1),
    (1, 1, 1),
)

_OFFSETS = {
    6: FACE_OFFSETS,
    18: FACE_OFFSETS + EDGE_OFFSETS,
    26: FACE_OFFSETS + EDGE_OFFSETS + CORNER_OFFSETS,
}

NO_NEIGHBOR = -1


def neighbor_offsets(connectivity: int = 6) -> tuple[tuple[int, int, int], ...]:
    """Offsets for one connectivity scheme, face neighbors first."""

    if connectivity not in CONNECTIVITIES:
        raise ValueError(f"connectivity must be one of {CONNECTIVITIES}, got {connectivity}")
    return _OFFSETS[connectivity]


def neighbor_table(grid: VoxelGrid, connectivity: int = 6) -> np.ndarray:
    """Linear neighbor indices for every voxel, shape ``(size, connectivity)``.

    Column order follows ``neighbor_offsets``. Offsets that land outside the
    grid are stored as ``NO_NEIGHBOR`` and must be skipped by callers.
    """

    offsets = neighbor_offsets(connectivity)
    dtype = np.int32 if grid.size < np.iinfo(np.int32).max else np.int64
    x, y, z = grid.coord_arrays()
    table = np.full((grid.size, len(offsets)), NO_NEIGHBOR, dtype=dtype)

    for col, (ox, oy, oz) in enumerate(offsets):
        nx = x + ox
        ny = y + oy
        nz = z + oz
        inside = ~grid.outside(nx, ny, nz)
        table[inside, col] = grid.index(nx[inside], ny[inside], nz[inside])

    return table


def neighbors_of(grid: VoxelGrid, x: int, y: int, z: int, connectivity: int = 6) -> list[tuple[int, int, int]]:
    """In-grid neighbor coordinates of one voxel."""

    out: list[tuple[int, int, int]] = []
    for ox, oy, oz in neighbor_offsets(connectivity):
        nx, ny, nz = x + ox, y + oy, z + oz
        if grid.outside(nx, ny, nz):
            continue
        out.append((nx, ny, nz))
    return out
