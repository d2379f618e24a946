"""Tests for worker-count selection and run_worker abort handling."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest
from Life import (
    CommunicationFault,
    FatalConfigurationError,
    FatalInputError,
    LocalCluster,
    SlicedDecomposition,
    check_worker_count,
    choose_worker_count,
    resolve_worker_count,
    run_worker,
)

# Long enough that a worker released by its timeout instead of the abort is noticed
SLOW_TIMEOUT = 30.0


class TestWorkerCount:
    """Tests for choosing and checking the number of workers."""

    def test_largest_divisor_not_above_available(self):
        assert choose_worker_count(12, 5) == 4

    @pytest.mark.parametrize("rows", [7, 13, 31])
    def test_prime_rows_fall_back_to_one(self, rows):
        assert choose_worker_count(rows, rows - 1) == 1

    def test_available_clamped_to_rows(self):
        assert choose_worker_count(6, 64) == 6

    def test_single_row_needs_one_worker(self):
        assert choose_worker_count(1) == 1

    @pytest.mark.parametrize("rows,n_workers", [(4, 3), (4, 0), (4, -2), (6, 4)])
    def test_check_rejects(self, rows, n_workers):
        with pytest.raises(FatalConfigurationError):
            check_worker_count(rows, n_workers)

    @pytest.mark.parametrize("rows,n_workers", [(4, 1), (4, 2), (4, 4), (9, 3)])
    def test_check_accepts_divisors(self, rows, n_workers):
        check_worker_count(rows, n_workers)

    def test_resolve_uses_explicit_count(self):
        assert resolve_worker_count(12, 3, available=12) == 3

    def test_resolve_chooses_when_unset(self):
        assert resolve_worker_count(12, None, available=5) == 4

    def test_resolve_zero_is_rejected_not_chosen(self):
        with pytest.raises(FatalConfigurationError):
            resolve_worker_count(4, 0, available=4)


def run_pair(grid, generations, timeout=SLOW_TIMEOUT):
    """Run two workers; returns ``(cluster, [error_rank0, error_rank1])``."""
    cluster = LocalCluster(2, timeout=timeout)
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(run_worker, cluster.comm(0), grid, generations),
            pool.submit(run_worker, cluster.comm(1), None, 0),
        ]
        errors = [f.exception(timeout=timeout + 5) for f in futures]
    return cluster, errors


class TestRunWorkerAbort:
    """A failing coordinator must release every other worker through Abort."""

    def test_generations_beyond_header_range(self, example_grid):
        cluster, (err0, err1) = run_pair(example_grid, 2**31)

        assert isinstance(err0, FatalInputError)
        assert isinstance(err1, CommunicationFault)
        assert "aborted" in str(err1)
        assert cluster.abort_code == 1

    def test_unexpected_error_still_aborts(self, example_grid, monkeypatch):
        def broken_split(self, grid):
            raise RuntimeError("split failed")

        monkeypatch.setattr(SlicedDecomposition, "split", broken_split)
        cluster, (err0, err1) = run_pair(example_grid, 1)

        assert isinstance(err0, RuntimeError) and str(err0) == "split failed"
        assert isinstance(err1, CommunicationFault)
        assert "aborted" in str(err1)
        assert cluster.abort_code == 1


class TestCoordinatorValidation:
    """The coordinator validates the grid before handing out any work."""

    @pytest.mark.parametrize(
        "grid",
        [
            [[0, 1], [1]],
            [[0, 2], [1, 1]],
            np.zeros(4, dtype=np.int32),
            np.zeros((2, 2, 2), dtype=np.int32),
        ],
    )
    def test_bad_grid_is_fatal_input(self, grid):
        cluster = LocalCluster(1, timeout=SLOW_TIMEOUT)
        with pytest.raises(FatalInputError):
            run_worker(cluster.comm(0), grid, 1)
        assert cluster.abort_code == 1

    def test_missing_grid_on_coordinator(self):
        with pytest.raises(FatalInputError):
            run_worker(LocalCluster(1).comm(0), None, 1)
