"""Neighborhood smoothing filters applied before segmentation.

Both filters average over the cube of half-width ``radius`` around each voxel
and only count voxels that lie inside the grid, so borders are renormalized
rather than padded.
"""

from __future__ import annotations

import numpy as np
from scipy.ndimage import correlate1d

from watershed3d.config import SmoothingConfig


def gaussian_weights(radius: int) -> np.ndarray:
    """Sampled 1D Gaussian with ``sigma = radius / 3``."""

    if radius < 1:
        raise ValueError("radius must be >= 1")
    sigma = radius / 3.0
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    return np.exp(-np.square(offsets) / (2.0 * sigma * sigma)) / (np.sqrt(2.0 * np.pi) * sigma)


def gaussian_smooth(volume: np.ndarray, radius: int = 1) -> np.ndarray:
    """Separable Gaussian average, weights renormalized over in-grid voxels."""

    return _normalized_correlate(volume, gaussian_weights(radius))


def laplacian_smooth(volume: np.ndarray, radius: int = 1) -> np.ndarray:
    """Unweighted mean of the in-grid cube neighborhood."""

    if radius < 1:
        raise ValueError("radius must be >= 1")
    return _normalized_correlate(volume, np.ones(2 * radius + 1, dtype=np.float64))


def apply_smoothing(volume: np.ndarray, cfg: SmoothingConfig) -> np.ndarray:
    """Apply the configured filter ``cfg.iterations`` times."""

    cfg.validate()
    result = np.asarray(volume, dtype=np.float64)
    if cfg.kind == "none":
        return result.copy()

    smooth = gaussian_smooth if cfg.kind == "gaussian" else laplacian_smooth
    for _ in range(cfg.iterations):
        result = smooth(result, cfg.radius)
    return result


def _normalized_correlate(volume: np.ndarray, weights: np.ndarray) -> np.ndarray:
    values = np.asarray(volume, dtype=np.float64)
    if values.ndim != 3:
        raise ValueError(f"volume must be 3D, got shape {values.shape}")

    total = values
    norm = np.ones_like(values)
    for axis in range(3):
        total = correlate1d(total, weights, axis=axis, mode="constant", cval=0.0)
        norm = correlate1d(norm, weights, axis=axis, mode="constant", cval=0.0)
    return total / norm
