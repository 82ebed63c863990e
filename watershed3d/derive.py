"""Derived preview rasters and masks from segmented volumes."""

from __future__ import annotations

import numpy as np
from matplotlib.colors import ListedColormap

from watershed3d.labels import WATERSHED


def basin_boundary_mask(labels: np.ndarray, neighbors: np.ndarray) -> np.ndarray:
    """Flat mask of voxels that are not interior to a single basin.

    A basin voxel is interior when every basin neighbor carries its own id.
    Watershed and unresolved voxels are always on the boundary.
    """

    nbrs = neighbors
    valid = nbrs >= 0
    nb_labels = labels[np.where(valid, nbrs, 0)]
    own = labels[:, None]
    differs = valid & (nb_labels > WATERSHED) & (nb_labels != own)
    return (labels <= WATERSHED) | np.any(differs, axis=1)


def take_slice(volume: np.ndarray, axis: int, index: int | None = None) -> np.ndarray:
    """2D slice of an ``[x, y, z]`` volume, middle slice by default."""

    if volume.ndim != 3:
        raise ValueError("volume must be 3D")
    if axis not in (0, 1, 2):
        raise ValueError("axis must be 0, 1 or 2")
    if index is None:
        index = volume.shape[axis] // 2
    # Rows follow the higher remaining axis.
    return np.take(volume, index, axis=axis).T


def float_preview_u8(values: np.ndarray, *, robust_percentiles: tuple[float, float] = (1.0, 99.0)) -> np.ndarray:
    """Map float values to 8-bit preview grayscale."""

    lo, hi = np.percentile(values, robust_percentiles)
    scale = max(hi - lo, 1e-6)
    norm = np.clip((values - lo) / scale, 0.0, 1.0)
    return np.round(norm * 255.0).astype(np.uint8)


def label_preview_u8(labels: np.ndarray) -> np.ndarray:
    """Hash basin ids into grayscale; watershed and sentinels stay black."""

    out = np.zeros(labels.shape, dtype=np.uint8)
    ids = labels.astype(np.int64)
    valid = ids > WATERSHED
    if not np.any(valid):
        return out
    # Deterministic hash-like remap to avoid monotone gradients.
    remapped = ((ids[valid] * 73 + 29) % 251) + 4
    out[valid] = remapped.astype(np.uint8)
    return out


def label_colormap_rgb(labels: np.ndarray) -> np.ndarray:
    """Map basin ids to a cycling discrete RGB palette via ListedColormap."""

    palette = [
        "#000000",  # watershed / unresolved
        "#1f77b4",
        "#ff7f0e",
        "#2ca02c",
        "#d62728",
        "#9467bd",
        "#8c564b",
        "#e377c2",
        "#bcbd22",
        "#17becf",
        "#aec7e8",
        "#ffbb78",
        "#98df8a",
        "#ff9896",
        "#c5b0d5",
        "#c49c94",
        "#f7b6d2",
        "#dbdb8d",
        "#9edae5",
    ]
    cmap = ListedColormap(palette, name="basins")
    ids = labels.astype(np.int64)
    idx = np.where(ids > WATERSHED, (ids - 1) % (len(palette) - 1) + 1, 0)
    rgba = cmap(idx)
    return np.round(rgba[..., :3] * 255.0).astype(np.uint8)
