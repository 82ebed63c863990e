"""Synthetic scalar fields for demos and tests. All arrays are ``[x, y, z]``."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from watershed3d.smoothing import gaussian_smooth


SYNTHETIC_KINDS = ("bowl", "saddle", "wells", "noise")


def paraboloid_bowl(shape: Sequence[int]) -> np.ndarray:
    """Squared distance to the grid center: one minimum, rising outward."""

    axes = np.meshgrid(*[np.arange(n, dtype=np.float64) - (n - 1) / 2.0 for n in shape], indexing="ij")
    return sum(np.square(a) for a in axes)


def saddle_profile(profile: Sequence[float] = (0.0, 1.0, 2.0, 3.0, 2.0, 1.0, 0.0)) -> np.ndarray:
    """A 1D height profile laid along x in an ``N x 1 x 1`` grid."""

    return np.asarray(profile, dtype=np.float64).reshape((-1, 1, 1))


def multi_well(shape: Sequence[int], centers: Sequence[Sequence[float]]) -> np.ndarray:
    """Distance to the nearest of several well centers."""

    if not centers:
        raise ValueError("at least one well center is required")
    coords = np.meshgrid(*[np.arange(n, dtype=np.float64) for n in shape], indexing="ij")
    field = np.full(tuple(shape), np.inf)
    for center in centers:
        d2 = sum(np.square(c - float(v)) for c, v in zip(coords, center))
        field = np.minimum(field, np.sqrt(d2))
    return field


def default_wells(shape: Sequence[int]) -> np.ndarray:
    """Two wells on opposite sides of the x axis."""

    nx, ny, nz = shape
    centers = [
        ((nx - 1) * 0.25, (ny - 1) / 2.0, (nz - 1) / 2.0),
        ((nx - 1) * 0.75, (ny - 1) / 2.0, (nz - 1) / 2.0),
    ]
    return multi_well(shape, centers)


def noise_field(shape: Sequence[int], seed: int, *, smooth_radius: int = 2, quantize: int = 0) -> np.ndarray:
    """Deterministic smoothed uniform noise.

    ``quantize`` > 0 rounds heights to that many distinct steps, which creates
    plateaus and tie levels.
    """

    rng = np.random.Generator(np.random.PCG64(np.uint64(int(seed) & ((1 << 64) - 1))))
    field = rng.uniform(0.0, 1.0, size=tuple(shape))
    if smooth_radius > 0:
        field = gaussian_smooth(field, smooth_radius)
    if quantize > 0:
        lo = float(field.min())
        scale = max(float(field.max()) - lo, 1e-12)
        field = np.round((field - lo) / scale * quantize)
    return field


def synthetic_volume(kind: str, size: int, *, seed: int = 0) -> np.ndarray:
    """Named synthetic field on a cube of edge ``size`` (``saddle`` ignores size)."""

    if size < 1:
        raise ValueError("size must be >= 1")
    shape = (size, size, size)
    if kind == "bowl":
        return paraboloid_bowl(shape)
    if kind == "saddle":
        return saddle_profile()
    if kind == "wells":
        return default_wells(shape)
    if kind == "noise":
        return noise_field(shape, seed, quantize=16)
    raise ValueError(f"unknown synthetic kind {kind!r}; expected one of {SYNTHETIC_KINDS}")
