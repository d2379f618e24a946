"""Gather final slices to the coordinator in rank order."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..datastructures import CELL_DTYPE, COORDINATOR, Report, WorkerContext

log = logging.getLogger(__name__)

RESULT_TAG = 5


class ResultCollector:
    """Assemble the rank-major report from every worker's final slice.

    Non-coordinators send their slice to the coordinator. The coordinator
    reports its own slice first, then receives from ranks ``1..size-1`` one
    source at a time, so the report order never depends on arrival order.
    """

    def __init__(self, ctx: WorkerContext):
        self.ctx = ctx

    def collect(self, final_slice: np.ndarray) -> Optional[Report]:
        """Contribute ``final_slice``; returns the Report on the coordinator, None elsewhere."""
        ctx = self.ctx
        final_slice = np.ascontiguousarray(final_slice, dtype=CELL_DTYPE)

        if not ctx.is_coordinator:
            ctx.comm.Send(final_slice, dest=COORDINATOR, tag=RESULT_TAG)
            return None

        report = Report()
        report.extend(ctx.rank, final_slice)

        buf = np.empty_like(final_slice)
        for source in range(1, ctx.size):
            ctx.comm.Recv(buf, source=source, tag=RESULT_TAG)
            report.extend(source, buf)

        log.debug(f"Collected {len(report)} rows from {ctx.size} workers")
        return report
