from __future__ import annotations

from itertools import product

import numpy as np
import pytest

from watershed3d.grid import VoxelGrid
from watershed3d.topology import FACE_OFFSETS, NO_NEIGHBOR, neighbor_offsets, neighbor_table, neighbors_of


@pytest.mark.parametrize("connectivity", [6, 18, 26])
def test_offsets_are_unique_unit_steps(connectivity: int) -> None:
    offsets = neighbor_offsets(connectivity)

    assert len(offsets) == connectivity
    assert len(set(offsets)) == connectivity
    assert offsets[:6] == FACE_OFFSETS
    for off in offsets:
        assert off != (0, 0, 0)
        assert all(v in (-1, 0, 1) for v in off)


def test_unknown_connectivity_is_rejected() -> None:
    with pytest.raises(ValueError):
        neighbor_offsets(8)


@pytest.mark.parametrize("connectivity", [6, 18, 26])
def test_single_voxel_has_no_neighbors(connectivity: int) -> None:
    grid = VoxelGrid.from_values((1, 1, 1), [0.0])
    table = neighbor_table(grid, connectivity)

    assert table.shape == (1, connectivity)
    assert np.all(table == NO_NEIGHBOR)


def test_neighbor_lookups_stay_in_bounds_for_small_grids() -> None:
    for dims in product((1, 2, 3), (1, 2, 3), (1, 2, 4)):
        grid = VoxelGrid.from_values(dims, np.zeros(int(np.prod(dims))))
        for connectivity in (6, 18, 26):
            table = neighbor_table(grid, connectivity)
            valid = table[table != NO_NEIGHBOR]
            assert np.all(valid >= 0)
            assert np.all(valid < grid.size)

            for voxel in range(grid.size):
                x, y, z = grid.coords(voxel)
                expected = sorted(grid.index(*c) for c in neighbors_of(grid, x, y, z, connectivity))
                got = sorted(int(v) for v in table[voxel] if v != NO_NEIGHBOR)
                assert got == expected, (dims, connectivity, voxel)


def test_neighbor_relation_is_symmetric() -> None:
    grid = VoxelGrid.from_values((3, 4, 2), np.zeros(24))
    table = neighbor_table(grid, 26)

    for voxel in range(grid.size):
        for nb in table[voxel]:
            if nb == NO_NEIGHBOR:
                continue
            assert voxel in table[nb].tolist()


def test_neighbor_counts_in_cube() -> None:
    grid = VoxelGrid.from_values((3, 3, 3), np.zeros(27))
    center = grid.index(1, 1, 1)
    corner = grid.index(0, 0, 0)

    for connectivity, corner_count in ((6, 3), (18, 6), (26, 7)):
        table = neighbor_table(grid, connectivity)
        assert int(np.sum(table[center] != NO_NEIGHBOR)) == connectivity
        assert int(np.sum(table[corner] != NO_NEIGHBOR)) == corner_count


def test_table_columns_follow_offset_order() -> None:
    grid = VoxelGrid.from_values((3, 3, 3), np.zeros(27))
    table = neighbor_table(grid, 6)
    center = grid.index(1, 1, 1)

    expected = [grid.index(1 + ox, 1 + oy, 1 + oz) for ox, oy, oz in FACE_OFFSETS]
    assert table[center].tolist() == expected
