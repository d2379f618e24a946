"""Distributed grid abstraction for one worker.

This module provides a DistributedGrid class that encapsulates:
- The worker's position in the chain (row range, neighbours, walls)
- Halo row exchange with the neighbouring workers
- Slice allocation and final result collection

The generation driver interacts with this single interface rather than
managing message passing directly.
"""

from __future__ import annotations

import os
import socket
from typing import Optional, Tuple

import numpy as np

from ..datastructures import CELL_DTYPE, LocalParams, Report, RunConfig, WorkerContext
from .collect import ResultCollector
from .halo import HaloExchanger
from .topology import ChainTopology


class DistributedGrid:
    """One worker's band of the global grid.

    Parameters
    ----------
    ctx : WorkerContext
        Identity and communicator of this worker.
    config : RunConfig
        Shared run configuration (slice shape, generations).

    Example
    -------
    >>> grid = DistributedGrid(ctx, config)
    >>> current, nxt = grid.allocate(), grid.allocate()
    >>> from_top, from_bottom = grid.sync_halos(current)
    >>> report = grid.gather(current)  # Report on rank 0, None elsewhere
    """

    def __init__(self, ctx: WorkerContext, config: RunConfig):
        self.ctx = ctx
        self.config = config
        self.rank = ctx.rank
        self.size = ctx.size

        self.topology = ChainTopology(self.rank, self.size)
        self.neighbors = self.topology.neighbors

        self.slice_shape = config.slice_shape
        self.global_start = self.rank * config.slice_rows
        self.global_end = self.global_start + config.slice_rows

        self._halo_exchanger = HaloExchanger(ctx, config.columns)
        self._collector = ResultCollector(ctx)

    def allocate(self) -> np.ndarray:
        """Allocate a zeroed slice buffer."""
        return np.zeros(self.slice_shape, dtype=CELL_DTYPE)

    def sync_halos(self, slice_: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Exchange boundary rows with both neighbours."""
        return self._halo_exchanger.exchange(slice_)

    def gather(self, slice_: np.ndarray) -> Optional[Report]:
        """Send/collect final slices; the coordinator gets the Report."""
        return self._collector.collect(slice_)

    def get_halo_size_bytes(self) -> int:
        return self._halo_exchanger.get_halo_size_bytes()

    def get_rank_info(self) -> LocalParams:
        """Get topology info for this rank (for MLflow artifact)."""
        try:
            cpu_ids = sorted(os.sched_getaffinity(0))
        except (AttributeError, OSError):
            cpu_ids = None  # Not available on all platforms (e.g., macOS)

        return LocalParams(
            rank=self.rank,
            hostname=socket.gethostname(),
            neighbors=self.neighbors.copy(),
            slice_shape=self.slice_shape,
            global_start=self.global_start,
            global_end=self.global_end,
            cpu_ids=cpu_ids,
        )
