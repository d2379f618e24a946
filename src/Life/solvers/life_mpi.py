"""Distributed Life simulation (extends the sequential driver)."""

import logging
from typing import Optional

import numpy as np

from .base import BaseSimulation, DriverState
from ..datastructures import Report, WorkerContext
from ..mpi.decomposition import scatter_slices
from ..mpi.grid import DistributedGrid

log = logging.getLogger(__name__)


class LifeMPISimulation(BaseSimulation):
    """Per-worker generation driver for a row-band decomposition.

    Every worker constructs one of these with the same arguments except
    ``grid``, which only the coordinator supplies. Construction performs the
    initial handoff: the coordinator validates and distributes, then every
    worker (the coordinator included) receives its config and slice.

    Parameters
    ----------
    ctx : WorkerContext
        Identity and communicator of this worker.
    grid : array-like, optional
        Global grid, read only on the coordinator.
    generations : int
        Number of generations, read only on the coordinator; the other
        workers learn it from the run header.
    """

    def __init__(
        self,
        ctx: WorkerContext,
        grid: Optional[np.ndarray] = None,
        generations: int = 0,
        **kwargs,
    ):
        # Distribution before parent init
        self.ctx = ctx
        self.rank = ctx.rank
        self.size = ctx.size

        self.config, self.slice = scatter_slices(ctx, grid, generations)
        self.grid = DistributedGrid(ctx, self.config)

        # Store config info
        self.slice_shape = self.grid.slice_shape
        self.halo_size_bytes = self.grid.get_halo_size_bytes()

        super().__init__(self.config.generations, **kwargs)

    def run(self) -> Optional[Report]:
        """Run every generation, then gather the final slices on the coordinator."""
        t_start = self._get_time()

        current = self.slice
        final = self._evolve(current, self.grid.allocate())
        self.slice = final

        self.report = self.grid.gather(final)
        self.state = DriverState.FINISHED

        wall_time = self._get_time() - t_start
        self._finalize(wall_time, self.config.slice_rows * self.config.columns * self.size)

        log.debug(
            f"[rank {self.rank}] finished {self.generations} generations in {wall_time:.4f}s"
        )
        return self.report

    def _sync_halos(self, current):
        return self.grid.sync_halos(current)
