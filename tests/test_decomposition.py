"""Tests for row-band decomposition and chain topology."""

import numpy as np
import pytest
from Life import (
    ChainTopology,
    FatalConfigurationError,
    FatalInputError,
    RunConfig,
    SlicedDecomposition,
    partition_grid,
)

from conftest import random_grid


class TestSlicedDecomposition:
    """Tests for equal row-band partitioning."""

    @pytest.mark.parametrize("rows,cols,size", [(4, 4, 2), (12, 5, 3), (9, 7, 9), (8, 1, 1), (15, 3, 5)])
    def test_slices_reassemble_grid(self, rows, cols, size):
        """Concatenating slices in rank order reproduces the grid."""
        grid = random_grid(rows, cols, seed=rows * cols)
        slices = partition_grid(grid, size)

        assert len(slices) == size
        assert all(s.shape == (rows // size, cols) for s in slices)
        assert np.array_equal(np.vstack(slices), grid)

    def test_row_ranges_cover_grid(self):
        """Each row owned by exactly one rank, in order."""
        decomp = SlicedDecomposition(rows=12, columns=4, size=4)

        ranges = [decomp.row_range(r) for r in range(4)]
        assert ranges == [(0, 3), (3, 6), (6, 9), (9, 12)]

    def test_rank_info(self):
        decomp = SlicedDecomposition(rows=12, columns=4, size=4)
        info = decomp.get_rank_info(2)

        assert info.slice_shape == (3, 4)
        assert (info.global_start, info.global_end) == (6, 9)
        assert info.neighbors == {"above": 1, "below": 3}

    def test_slices_are_copies(self):
        """Mutating a slice never touches the source grid."""
        grid = random_grid(4, 4)
        original = grid.copy()
        slices = partition_grid(grid, 2)
        slices[0][:] = 1 - slices[0]

        assert np.array_equal(grid, original)

    def test_run_config(self):
        config = SlicedDecomposition(rows=6, columns=5, size=3).run_config(generations=7)

        assert config == RunConfig(columns=5, slice_rows=2, generations=7)
        assert RunConfig.from_header(config.to_header()) == config


class TestTopology:
    """Tests for chain neighbours and walls."""

    def test_neighbors_correct(self):
        """Interior ranks have 2 neighbours, chain ends have 1."""
        assert ChainTopology(0, 4).neighbors == {"above": None, "below": 1}
        assert ChainTopology(1, 4).neighbors == {"above": 0, "below": 2}
        assert ChainTopology(3, 4).neighbors == {"above": 2, "below": None}

    def test_single_worker_has_walls_both_sides(self):
        topo = ChainTopology(0, 1)
        assert not topo.has_above and not topo.has_below
        assert topo.n_neighbors == 0

    def test_neighbor_reciprocity(self):
        """If A is above B, then B is below A."""
        size = 5
        for rank in range(size):
            topo = ChainTopology(rank, size)
            if topo.has_below:
                assert ChainTopology(topo.below, size).above == rank

    def test_invalid_rank(self):
        with pytest.raises(ValueError):
            ChainTopology(4, 4)


class TestEdgeCases:
    """Edge cases and error handling."""

    def test_uneven_split_raises(self):
        with pytest.raises(FatalConfigurationError):
            SlicedDecomposition(rows=10, columns=4, size=3)

    def test_zero_workers_raises(self):
        with pytest.raises(FatalConfigurationError):
            partition_grid(random_grid(4, 4), 0)

    def test_negative_generations_rejected(self):
        with pytest.raises(FatalInputError):
            RunConfig(columns=4, slice_rows=2, generations=-1)

    def test_non_2d_grid_raises(self):
        with pytest.raises(FatalInputError):
            partition_grid(np.zeros(4, dtype=np.int32), 2)
