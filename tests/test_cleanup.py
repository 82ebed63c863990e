from __future__ import annotations

import numpy as np
import pytest

from watershed3d.cleanup import fill_watershed_voxels, remove_watershed_voxels
from watershed3d.grid import VoxelGrid
from watershed3d.labels import LABEL_DTYPE, WATERSHED
from watershed3d.topology import neighbor_table


def _line_table(n: int) -> np.ndarray:
    return neighbor_table(VoxelGrid.from_values((n, 1, 1), np.zeros(n)), 6)


def _labels(values) -> np.ndarray:
    return np.asarray(values, dtype=LABEL_DTYPE)


def test_tie_goes_to_first_neighbor_in_offset_order() -> None:
    labels = _labels([1, WATERSHED, 2])
    result = remove_watershed_voxels(labels, _line_table(3))

    assert labels.tolist() == [1, 1, 2]
    assert result.passes == 1
    assert result.resolved_voxels == 1
    assert result.residual_boundary == 0
    assert result.converged


def test_majority_label_wins() -> None:
    grid = VoxelGrid.from_values((3, 3, 1), np.zeros(9))
    labels = np.full(9, 2, dtype=LABEL_DTYPE)
    labels[grid.index(1, 1, 0)] = WATERSHED
    for x, y in ((2, 1), (1, 0), (1, 2)):
        labels[grid.index(x, y, 0)] = 1

    remove_watershed_voxels(labels, neighbor_table(grid, 6))

    assert labels[grid.index(1, 1, 0)] == 1


def test_isolated_watershed_voxel_is_residual_boundary() -> None:
    labels = _labels([WATERSHED])
    result = remove_watershed_voxels(labels, _line_table(1))

    assert labels.tolist() == [WATERSHED]
    assert result.passes == 1
    assert result.resolved_voxels == 0
    assert result.residual_boundary == 1
    assert result.converged


def test_forward_chain_resolves_in_one_pass() -> None:
    labels = _labels([1, 0, 0, 0, 0])
    result = remove_watershed_voxels(labels, _line_table(5))

    assert labels.tolist() == [1, 1, 1, 1, 1]
    assert result.passes == 1
    assert result.resolved_voxels == 4


def test_backward_chain_drains_one_voxel_per_pass() -> None:
    labels = _labels([0, 0, 0, 0, 3])
    result = remove_watershed_voxels(labels, _line_table(5))

    assert labels.tolist() == [3, 3, 3, 3, 3]
    assert result.passes == 4
    assert result.converged


def test_pass_cap_reports_residual_without_failing() -> None:
    labels = _labels([0, 0, 0, 0, 3])
    result = remove_watershed_voxels(labels, _line_table(5), max_passes=2)

    assert labels.tolist() == [0, 0, 3, 3, 3]
    assert result.passes == 2
    assert result.residual_boundary == 2
    assert not result.converged


def test_no_watershed_means_no_passes() -> None:
    labels = _labels([1, 1, 2])
    result = remove_watershed_voxels(labels, _line_table(3))

    assert result.passes == 0
    assert result.converged
    assert labels.tolist() == [1, 1, 2]


def test_fill_merges_only_unanimous_voxels() -> None:
    labels = _labels([1, WATERSHED, 1, WATERSHED, 2])
    result = fill_watershed_voxels(labels, _line_table(5))

    assert labels.tolist() == [1, 1, 1, WATERSHED, 2]
    assert result.mode == "fill"
    assert result.residual_boundary == 1
    assert result.converged


def test_fill_keeps_seam_between_basins() -> None:
    grid = VoxelGrid.from_values((3, 3, 1), np.zeros(9))
    labels = np.full(9, 2, dtype=LABEL_DTYPE)
    labels[grid.index(1, 1, 0)] = WATERSHED
    labels[grid.index(2, 1, 0)] = 1

    fill_watershed_voxels(labels, neighbor_table(grid, 6))

    assert labels[grid.index(1, 1, 0)] == WATERSHED


def test_invalid_pass_limit() -> None:
    with pytest.raises(ValueError):
        remove_watershed_voxels(_labels([0]), _line_table(1), max_passes=0)
