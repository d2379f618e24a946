"""Distributed runs over the in-process transport (one thread per worker)."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest
from Life import (
    DriverState,
    FatalConfigurationError,
    FatalInputError,
    LifeSimulation,
    LocalCluster,
    format_report,
    run_worker,
)

from conftest import random_grid, reference_life, run_distributed


class TestDistributedMatchesReference:
    """The distributed report must equal the single-process result."""

    def test_example_two_workers(self, example_grid):
        report = run_distributed(example_grid, generations=1, n_workers=2)

        assert report.lines() == ["0: 0110", "0: 1001", "1: 1111", "1: 0110"]
        assert np.array_equal(report.to_grid(), reference_life(example_grid, 1))

    @pytest.mark.parametrize("n_workers", [1, 2, 3, 4, 6, 12])
    def test_any_divisor_worker_count(self, n_workers):
        grid = random_grid(12, 10, seed=42)
        report = run_distributed(grid, generations=6, n_workers=n_workers)

        assert np.array_equal(report.to_grid(), reference_life(grid, 6))

    @pytest.mark.parametrize("rows,cols,n_workers", [(9, 7, 3), (15, 5, 5), (7, 3, 7)])
    def test_odd_dimensions(self, rows, cols, n_workers):
        grid = random_grid(rows, cols, seed=rows + cols)
        report = run_distributed(grid, generations=4, n_workers=n_workers)

        assert np.array_equal(report.to_grid(), reference_life(grid, 4))

    def test_same_result_as_sequential_driver(self):
        grid = random_grid(8, 8, seed=9)
        sequential = LifeSimulation(grid, 10).run()
        distributed = run_distributed(grid, generations=10, n_workers=4)

        assert np.array_equal(distributed.to_grid(), sequential.to_grid())

    @pytest.mark.parametrize("n_workers", [1, 2, 4, 8])
    def test_glider_crosses_slice_boundaries(self, n_workers):
        grid = np.zeros((8, 8), dtype=np.int32)
        grid[0, 1] = grid[1, 2] = grid[2, 0] = grid[2, 1] = grid[2, 2] = 1

        report = run_distributed(grid, generations=12, n_workers=n_workers)
        assert np.array_equal(report.to_grid(), reference_life(grid, 12))


class TestPatterns:
    """Still lifes and oscillators across partitions."""

    @pytest.mark.parametrize("n_workers", [1, 2, 3, 6])
    def test_blinker_period_two(self, blinker_grid, n_workers):
        odd = run_distributed(blinker_grid, generations=3, n_workers=n_workers).to_grid()
        even = run_distributed(blinker_grid, generations=4, n_workers=n_workers).to_grid()

        assert np.array_equal(even, blinker_grid)
        assert odd[2, 1:4].tolist() == [1, 1, 1] and odd.sum() == 3

    @pytest.mark.parametrize("n_workers", [1, 2, 4])
    def test_block_still_life(self, n_workers):
        grid = np.zeros((4, 4), dtype=np.int32)
        grid[1:3, 1:3] = 1

        for generations in (1, 2, 5):
            report = run_distributed(grid, generations=generations, n_workers=n_workers)
            assert np.array_equal(report.to_grid(), grid)

    def test_walls_at_top_and_bottom(self):
        """Alive top and bottom rows: nothing beyond the grid edge counts."""
        grid = np.zeros((4, 5), dtype=np.int32)
        grid[0, :] = 1
        grid[-1, :] = 1

        report = run_distributed(grid, generations=1, n_workers=4)
        assert np.array_equal(report.to_grid(), reference_life(grid, 1))
        assert report.to_grid()[0, 0] == 0  # corner had only 1 live neighbour


class TestReport:
    """Report layout and zero-generation runs."""

    def test_rank_major_labels(self):
        grid = random_grid(6, 3, seed=1)
        report = run_distributed(grid, generations=2, n_workers=3)

        assert report.ranks() == [0, 0, 1, 1, 2, 2]
        assert all(line.split(": ")[0] == str(r) for line, r in zip(report.lines(), report.ranks()))

    def test_zero_generations_reports_original(self, example_grid):
        report = run_distributed(example_grid, generations=0, n_workers=2)

        assert np.array_equal(report.to_grid(), example_grid)
        assert format_report(report) == "0: 0110\n0: 1001\n1: 0110\n1: 1001"

    def test_driver_finishes_on_every_worker(self):
        grid = random_grid(4, 4, seed=5)
        cluster = LocalCluster(2, timeout=10.0)
        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [
                pool.submit(run_worker, cluster.comm(r), grid if r == 0 else None, 3)
                for r in range(2)
            ]
            sims = [f.result() for f in futures]

        assert all(s.state is DriverState.FINISHED for s in sims)
        assert sims[0].report is not None and sims[1].report is None
        assert all(s.generations == 3 for s in sims)


class TestFatalErrors:
    """Every fatal error aborts the whole run with no report."""

    def test_negative_generations(self, example_grid):
        with pytest.raises(FatalInputError):
            run_distributed(example_grid, generations=-1, n_workers=2)

    def test_rows_not_divisible(self, example_grid):
        with pytest.raises(FatalConfigurationError):
            run_distributed(example_grid, generations=1, n_workers=3)

    def test_non_rectangular_grid(self):
        with pytest.raises(FatalInputError):
            run_distributed([[0, 1], [1]], generations=1, n_workers=1)
