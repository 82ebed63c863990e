from __future__ import annotations

import numpy as np
import pytest

from watershed3d.grid import GridConfigError, VoxelGrid
from watershed3d.labels import Basin, Unvisited


def test_linear_index_is_x_fastest() -> None:
    grid = VoxelGrid.from_values((2, 3, 4), np.arange(24, dtype=np.float64))

    assert grid.size == 24
    assert grid.index(1, 0, 0) == 1
    assert grid.index(0, 1, 0) == 2
    assert grid.index(0, 0, 1) == 6
    assert grid.index(1, 2, 3) == 23
    assert grid.coords(23) == (1, 2, 3)
    assert grid.height_at(1, 2, 3) == 23.0


def test_from_volume_matches_xyz_indexing() -> None:
    volume = np.random.default_rng(3).uniform(size=(4, 3, 2))
    grid = VoxelGrid.from_volume(volume, origin=(1.0, 2.0, 3.0), spacing=(0.5, 0.5, 2.0))

    for x, y, z in [(0, 0, 0), (3, 2, 1), (2, 1, 0)]:
        assert grid.height_at(x, y, z) == volume[x, y, z]
    assert np.array_equal(grid.volume(), volume)
    assert grid.origin == (1.0, 2.0, 3.0)
    assert grid.spacing == (0.5, 0.5, 2.0)


def test_outside_predicate_scalar_and_array() -> None:
    grid = VoxelGrid.from_values((2, 3, 4), np.zeros(24))

    assert grid.outside(-1, 0, 0)
    assert grid.outside(2, 0, 0)
    assert grid.outside(0, 3, 0)
    assert grid.outside(0, 0, 4)
    assert not grid.outside(1, 2, 3)

    xs = np.array([-1, 0, 1, 2])
    mask = grid.outside(xs, np.zeros(4, dtype=int), np.zeros(4, dtype=int))
    assert mask.tolist() == [True, False, False, True]


def test_heights_are_read_only() -> None:
    grid = VoxelGrid.from_values((2, 1, 1), [1.0, 2.0])

    with pytest.raises(ValueError):
        grid.heights[0] = 5.0


def test_label_at_returns_tagged_variant() -> None:
    grid = VoxelGrid.from_values((2, 1, 1), [1.0, 2.0])

    assert grid.label_at(0, 0, 0) == Unvisited()
    grid.labels[1] = 3
    assert grid.label_at(1, 0, 0) == Basin(3)
    with pytest.raises(IndexError):
        grid.label_at(2, 0, 0)


def test_height_range() -> None:
    grid = VoxelGrid.from_values((3, 1, 1), [4.0, -1.0, 2.5])
    assert grid.height_range() == (-1.0, 4.0)


@pytest.mark.parametrize(
    "dimensions",
    [(0, 1, 1), (1, -2, 1), (1, 1), (1, 1, 1, 1), (2.0, 1, 1)],
)
def test_invalid_dimensions_are_rejected(dimensions) -> None:
    with pytest.raises(GridConfigError):
        VoxelGrid.from_values(dimensions, np.zeros(2))


def test_mismatched_value_count_is_rejected() -> None:
    with pytest.raises(GridConfigError) as exc:
        VoxelGrid.from_values((2, 2, 2), np.zeros(7))
    assert "7" in str(exc.value)


def test_bad_geometry_and_values_are_rejected() -> None:
    with pytest.raises(GridConfigError):
        VoxelGrid.from_values((1, 1, 1), [0.0], spacing=(1.0, 0.0, 1.0))
    with pytest.raises(GridConfigError):
        VoxelGrid.from_values((1, 1, 1), [0.0], origin=(0.0, 0.0))
    with pytest.raises(GridConfigError):
        VoxelGrid.from_values((2, 1, 1), [0.0, np.nan])
    with pytest.raises(GridConfigError):
        VoxelGrid.from_volume(np.zeros((2, 2)))


def test_with_heights_keeps_geometry_and_checks_shape() -> None:
    grid = VoxelGrid.from_volume(np.zeros((2, 2, 2)), spacing=(2.0, 2.0, 2.0))
    replaced = grid.with_heights(np.ones((2, 2, 2)))

    assert replaced.spacing == grid.spacing
    assert float(replaced.heights.sum()) == 8.0
    assert float(grid.heights.sum()) == 0.0
    with pytest.raises(GridConfigError):
        grid.with_heights(np.ones((2, 2, 3)))
