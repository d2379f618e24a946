"""Halo row exchange between neighbouring workers in the chain."""

from __future__ import annotations

from typing import Tuple

import numpy as np

from ..datastructures import CELL_DTYPE, WorkerContext
from .topology import ChainTopology

# Rows flowing down the chain (last row -> worker below) and up the chain
DOWN_TAG = 3
UP_TAG = 4


class HaloExchanger:
    """Two-phase halo exchange: post both receives, then both sends.

    Every receive is posted before any send is issued, and sends are
    non-blocking, so no worker's send waits on a receive sequenced behind
    another worker's blocking send. Chain ends keep an all-zero halo row
    instead of communicating (solid wall).

    Parameters
    ----------
    ctx : WorkerContext
        Identity and communicator of this worker.
    columns : int
        Row width.
    """

    def __init__(self, ctx: WorkerContext, columns: int):
        self.ctx = ctx
        self.columns = columns
        self.topology = ChainTopology(ctx.rank, ctx.size)

        self.from_top = np.zeros(columns, dtype=CELL_DTYPE)
        self.from_bottom = np.zeros(columns, dtype=CELL_DTYPE)

    def exchange(self, slice_: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Swap boundary rows with both neighbours and return ``(from_top, from_bottom)``."""
        comm = self.ctx.comm
        above, below = self.topology.above, self.topology.below

        # Phase 1: post receives
        recvs = []
        if above is not None:
            recvs.append(comm.Irecv(self.from_top, source=above, tag=DOWN_TAG))
        else:
            self.from_top.fill(0)
        if below is not None:
            recvs.append(comm.Irecv(self.from_bottom, source=below, tag=UP_TAG))
        else:
            self.from_bottom.fill(0)

        # Phase 2: send own boundary rows
        sends = []
        if below is not None:
            to_bottom = np.ascontiguousarray(slice_[-1], dtype=CELL_DTYPE)
            sends.append(comm.Isend(to_bottom, dest=below, tag=DOWN_TAG))
        if above is not None:
            to_top = np.ascontiguousarray(slice_[0], dtype=CELL_DTYPE)
            sends.append(comm.Isend(to_top, dest=above, tag=UP_TAG))

        # Both directions complete before the kernel may read a halo row
        for req in recvs + sends:
            req.Wait()

        return self.from_top, self.from_bottom

    def get_halo_size_bytes(self) -> int:
        """Bytes sent plus received per exchange."""
        row_bytes = self.columns * np.dtype(CELL_DTYPE).itemsize
        return row_bytes * 2 * self.topology.n_neighbors
