"""Row-band domain decomposition and initial slice distribution."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from ..datastructures import CELL_DTYPE, COORDINATOR, LocalParams, RunConfig, WorkerContext
from ..errors import FatalConfigurationError, FatalInputError
from ..io import validate_grid
from .topology import ChainTopology

log = logging.getLogger(__name__)

# Message tags for the initial handoff
HEADER_TAG = 0
SLICE_TAG = 2


class SlicedDecomposition:
    """Splits a ``rows x columns`` grid into equal horizontal bands.

    Parameters
    ----------
    rows, columns : int
        Global grid shape.
    size : int
        Number of workers. Must divide ``rows``.
    """

    def __init__(self, rows: int, columns: int, size: int):
        if size < 1:
            raise FatalConfigurationError(f"Worker count must be >= 1, got {size}")
        if rows < 1 or columns < 1:
            raise FatalInputError(f"Grid must be non-empty, got {rows}x{columns}")
        if rows % size != 0:
            raise FatalConfigurationError(
                f"{size} workers do not evenly divide {rows} rows"
            )

        self.rows = rows
        self.columns = columns
        self.size = size
        self.slice_rows = rows // size

    def row_range(self, rank: int) -> Tuple[int, int]:
        """Global rows ``[start, end)`` owned by ``rank``."""
        start = rank * self.slice_rows
        return start, start + self.slice_rows

    def get_rank_info(self, rank: int) -> LocalParams:
        start, end = self.row_range(rank)
        return LocalParams(
            rank=rank,
            neighbors=ChainTopology(rank, self.size).neighbors,
            slice_shape=(self.slice_rows, self.columns),
            global_start=start,
            global_end=end,
        )

    def run_config(self, generations: int) -> RunConfig:
        return RunConfig(
            columns=self.columns, slice_rows=self.slice_rows, generations=generations
        )

    def split(self, grid: np.ndarray) -> List[np.ndarray]:
        """Return one contiguous copy per rank, in rank order."""
        if grid.shape != (self.rows, self.columns):
            raise FatalInputError(
                f"Grid shape {grid.shape} does not match decomposition {(self.rows, self.columns)}"
            )
        slices = []
        for rank in range(self.size):
            start, end = self.row_range(rank)
            slices.append(np.ascontiguousarray(grid[start:end, :], dtype=CELL_DTYPE))
        return slices


def partition_grid(grid: np.ndarray, size: int) -> List[np.ndarray]:
    """Split ``grid`` into ``size`` equal row bands."""
    grid = np.asarray(grid, dtype=CELL_DTYPE)
    if grid.ndim != 2:
        raise FatalInputError(f"Grid must be 2D, got shape {grid.shape}")
    rows, columns = grid.shape
    return SlicedDecomposition(rows, columns, size).split(grid)


def distribute(ctx: WorkerContext, grid: np.ndarray, generations: int) -> list:
    """Coordinator side: validate, then post the header and slice for every worker.

    All validation happens before the first send, so an invalid run never
    hands out partial work. Returns the pending send requests; the caller
    keeps them alive until its own assignment has been received.
    """
    if not ctx.is_coordinator:
        raise RuntimeError(f"distribute() called on worker {ctx.rank}")
    if generations < 0:
        raise FatalInputError(
            f"Number of generations must be a non-negative integer, got {generations}"
        )

    if grid is None:
        raise FatalInputError("Coordinator needs a grid to distribute")
    grid = validate_grid(grid)
    decomp = SlicedDecomposition(grid.shape[0], grid.shape[1], ctx.size)
    header = decomp.run_config(generations).to_header()
    slices = decomp.split(grid)

    log.info(
        f"Distributing {decomp.rows}x{decomp.columns} grid to {ctx.size} workers "
        f"({decomp.slice_rows} rows each), {generations} generations"
    )

    requests = []
    for dest in range(ctx.size):
        requests.append(ctx.comm.Isend(header, dest=dest, tag=HEADER_TAG))
    for dest, slice_ in enumerate(slices):
        requests.append(ctx.comm.Isend(slice_, dest=dest, tag=SLICE_TAG))
    return requests


def receive_assignment(ctx: WorkerContext) -> Tuple[RunConfig, np.ndarray]:
    """Every worker: block for the run header, then for this worker's slice."""
    header = np.empty(RunConfig.HEADER_SIZE, dtype=CELL_DTYPE)
    ctx.comm.Recv(header, source=COORDINATOR, tag=HEADER_TAG)
    config = RunConfig.from_header(header)

    slice_ = np.empty(config.slice_shape, dtype=CELL_DTYPE)
    ctx.comm.Recv(slice_, source=COORDINATOR, tag=SLICE_TAG)
    log.debug(f"[rank {ctx.rank}] received {config.slice_rows}x{config.columns} slice")
    return config, slice_


def scatter_slices(
    ctx: WorkerContext, grid: Optional[np.ndarray] = None, generations: int = 0
) -> Tuple[RunConfig, np.ndarray]:
    """Hand every worker, the coordinator included, its config and slice.

    ``grid`` and ``generations`` are only read on the coordinator.
    """
    requests = distribute(ctx, grid, generations) if ctx.is_coordinator else []
    config, slice_ = receive_assignment(ctx)
    wait_all(requests)
    return config, slice_


def wait_all(requests: list):
    """Complete every request (works for mpi4py and in-process requests)."""
    for req in requests:
        req.Wait()
