"""Per-voxel label states.

Labels are stored as a flat ``int32`` buffer for speed. Three sentinel values
share that buffer with the basin ids:

* ``UNVISITED`` - not yet reached by the current sweep.
* ``MASKED`` - part of the tie level being flooded, basin not yet known.
* ``WATERSHED`` - lies on the boundary between two or more basins.

Any positive value is a basin id. Basin ids are handed out sequentially from 1
and are never reused within one flood.

``classify_label`` turns a stored value into one of the tagged variants below,
which is what callers outside the flood loop should inspect.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


UNVISITED = -1
MASKED = -2
WATERSHED = 0

LABEL_DTYPE = np.int32


@dataclass(frozen=True)
class Unvisited:
    pass


@dataclass(frozen=True)
class Masked:
    pass


@dataclass(frozen=True)
class Watershed:
    pass


@dataclass(frozen=True)
class Basin:
    basin_id: int

    def __post_init__(self) -> None:
        if self.basin_id < 1:
            raise ValueError(f"basin ids start at 1, got {self.basin_id}")


VoxelLabel = Unvisited | Masked | Watershed | Basin


def classify_label(value: int) -> VoxelLabel:
    """Map a stored label value to its tagged variant."""

    value = int(value)
    if value > WATERSHED:
        return Basin(value)
    if value == WATERSHED:
        return Watershed()
    if value == UNVISITED:
        return Unvisited()
    if value == MASKED:
        return Masked()
    raise ValueError(f"invalid stored label value: {value}")


def encode_label(label: VoxelLabel) -> int:
    """Inverse of ``classify_label``."""

    if isinstance(label, Basin):
        return label.basin_id
    if isinstance(label, Watershed):
        return WATERSHED
    if isinstance(label, Unvisited):
        return UNVISITED
    if isinstance(label, Masked):
        return MASKED
    raise TypeError(f"not a voxel label: {label!r}")


def is_confirmed(labels: np.ndarray) -> np.ndarray:
    """True where a voxel carries a basin id or the watershed class."""

    return labels >= WATERSHED
