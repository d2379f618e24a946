"""Row-band decomposition and worker-to-worker communication.

This package provides:
- DistributedGrid: Unified per-worker interface
- SlicedDecomposition: Equal row bands, one per worker
- ChainTopology: Above/below neighbours with solid walls at the ends
- HaloExchanger: Two-phase boundary row exchange
- ResultCollector: Rank-ordered final report on the coordinator
- LocalCluster/LocalComm: In-process transport for thread-based runs
"""

from .grid import DistributedGrid
from .decomposition import (
    SlicedDecomposition,
    partition_grid,
    distribute,
    receive_assignment,
    scatter_slices,
)
from .topology import ChainTopology
from .halo import HaloExchanger
from .collect import ResultCollector
from .local import LocalCluster, LocalComm

__all__ = [
    "DistributedGrid",
    "SlicedDecomposition",
    "partition_grid",
    "distribute",
    "receive_assignment",
    "scatter_slices",
    "ChainTopology",
    "HaloExchanger",
    "ResultCollector",
    "LocalCluster",
    "LocalComm",
]
