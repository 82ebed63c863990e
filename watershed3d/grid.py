"""Voxel grid storage for the scalar field and per-voxel flood state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from watershed3d.labels import LABEL_DTYPE, UNVISITED, VoxelLabel, classify_label


class GridConfigError(ValueError):
    """Raised when grid dimensions, geometry or values are inconsistent."""


@dataclass
class VoxelGrid:
    """Flat, x-fastest storage for one scalar volume and its working state.

    Linear offset of ``(x, y, z)`` is ``x + Dx * (y + Dy * z)``, which is the
    order the import collaborator supplies values in. ``heights`` is read-only
    once the grid exists; ``labels`` and ``distance`` belong to whichever stage
    is currently running (flood, then cleanup).
    """

    dimensions: tuple[int, int, int]
    origin: tuple[float, float, float]
    spacing: tuple[float, float, float]
    heights: np.ndarray
    labels: np.ndarray = field(repr=False)
    distance: np.ndarray = field(repr=False)

    @classmethod
    def from_values(
        cls,
        dimensions: Sequence[int],
        values: Sequence[float] | np.ndarray,
        *,
        origin: Sequence[float] = (0.0, 0.0, 0.0),
        spacing: Sequence[float] = (1.0, 1.0, 1.0),
    ) -> "VoxelGrid":
        """Build a grid from the import quadruple, validating every part of it."""

        dims = _validate_dimensions(dimensions)
        origin_t = _validate_triple("origin", origin)
        spacing_t = _validate_triple("spacing", spacing)
        if any(s <= 0.0 for s in spacing_t):
            raise GridConfigError(f"spacing must be positive, got {spacing_t}")

        flat = np.asarray(values, dtype=np.float64).ravel()
        expected = dims[0] * dims[1] * dims[2]
        if flat.size != expected:
            raise GridConfigError(
                f"value array has {flat.size} entries but dimensions {dims} require {expected}"
            )
        if not np.isfinite(flat).all():
            raise GridConfigError("scalar values must be finite")

        heights = flat.copy()
        heights.flags.writeable = False
        return cls(
            dimensions=dims,
            origin=origin_t,
            spacing=spacing_t,
            heights=heights,
            labels=np.full(expected, UNVISITED, dtype=LABEL_DTYPE),
            distance=np.zeros(expected, dtype=np.int32),
        )

    @classmethod
    def from_volume(
        cls,
        volume: np.ndarray,
        *,
        origin: Sequence[float] = (0.0, 0.0, 0.0),
        spacing: Sequence[float] = (1.0, 1.0, 1.0),
    ) -> "VoxelGrid":
        """Build a grid from a 3D array indexed ``[x, y, z]``."""

        arr = np.asarray(volume)
        if arr.ndim != 3:
            raise GridConfigError(f"volume must be 3D, got shape {arr.shape}")
        return cls.from_values(arr.shape, arr.ravel(order="F"), origin=origin, spacing=spacing)

    def with_heights(self, volume: np.ndarray) -> "VoxelGrid":
        """New grid with the same geometry and a replacement scalar field."""

        arr = np.asarray(volume)
        if arr.shape != self.dimensions:
            raise GridConfigError(f"replacement field shape {arr.shape} != grid dimensions {self.dimensions}")
        return VoxelGrid.from_volume(arr, origin=self.origin, spacing=self.spacing)

    @property
    def size(self) -> int:
        return self.heights.size

    def index(self, x: int, y: int, z: int) -> int:
        dx, dy, _ = self.dimensions
        return x + dx * (y + dy * z)

    def coords(self, index: int) -> tuple[int, int, int]:
        dx, dy, _ = self.dimensions
        index = int(index)
        x = index % dx
        y = (index // dx) % dy
        z = index // (dx * dy)
        return x, y, z

    def coord_arrays(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Coordinates of every voxel in linear order."""

        dx, dy, _ = self.dimensions
        flat = np.arange(self.size, dtype=np.int64)
        return flat % dx, (flat // dx) % dy, flat // (dx * dy)

    def outside(self, x, y, z):
        """True where any coordinate is negative or past its dimension.

        Accepts ints or equally shaped integer arrays.
        """

        dx, dy, dz = self.dimensions
        return (x < 0) | (y < 0) | (z < 0) | (x >= dx) | (y >= dy) | (z >= dz)

    def height_at(self, x: int, y: int, z: int) -> float:
        return float(self.heights[self.index(x, y, z)])

    def label_at(self, x: int, y: int, z: int) -> VoxelLabel:
        if self.outside(x, y, z):
            raise IndexError(f"voxel {(x, y, z)} is outside grid {self.dimensions}")
        return classify_label(self.labels[self.index(x, y, z)])

    def height_range(self) -> tuple[float, float]:
        return float(self.heights.min()), float(self.heights.max())

    def reset_working_state(self) -> None:
        self.labels.fill(UNVISITED)
        self.distance.fill(0)

    def volume(self, flat: np.ndarray | None = None) -> np.ndarray:
        """Reshape a flat per-voxel array (heights by default) to ``[x, y, z]``."""

        values = self.heights if flat is None else flat
        return np.asarray(values).reshape(self.dimensions, order="F")


def _validate_dimensions(dimensions: Sequence[int]) -> tuple[int, int, int]:
    dims = tuple(dimensions)
    if len(dims) != 3:
        raise GridConfigError(f"dimensions must have 3 entries, got {len(dims)}")
    out = []
    for d in dims:
        if isinstance(d, (bool, np.bool_)) or not isinstance(d, (int, np.integer)):
            raise GridConfigError(f"dimensions must be integers, got {dims}")
        if d <= 0:
            raise GridConfigError(f"dimensions must be positive, got {dims}")
        out.append(int(d))
    return out[0], out[1], out[2]


def _validate_triple(name: str, values: Sequence[float]) -> tuple[float, float, float]:
    vals = tuple(float(v) for v in values)
    if len(vals) != 3:
        raise GridConfigError(f"{name} must have 3 entries, got {len(vals)}")
    if not all(np.isfinite(vals)):
        raise GridConfigError(f"{name} must be finite, got {vals}")
    return vals[0], vals[1], vals[2]
