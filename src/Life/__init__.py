"""Distributed Game of Life package.

Computes generations of Conway's Game of Life on a rectangular grid split
into equal horizontal bands, one per worker. Workers exchange only their
boundary (halo) rows each generation; the chain ends see a solid wall of dead
cells. The final state is gathered to rank 0 as a rank-labelled report.

Simulations
-----------
Sequential (no communication):
- LifeSimulation: Whole grid in one process (reference result)

Distributed:
- LifeMPISimulation: One band per worker, over mpi4py or the in-process
  LocalComm transport
"""

from pathlib import Path

from .datastructures import (
    RunConfig,
    WorkerContext,
    GlobalMetrics,
    LocalMetrics,
    LocalParams,
    Report,
    ReportRow,
)
from .errors import (
    LifeError,
    FatalInputError,
    FatalConfigurationError,
    CommunicationFault,
)
from .io import parse_grid, read_grid, validate_grid, format_report
from .kernels import NumPyKernel, NumbaKernel, create_kernel
from .solvers import LifeSimulation, LifeMPISimulation, DriverState
from .mpi import (
    DistributedGrid,
    SlicedDecomposition,
    ChainTopology,
    HaloExchanger,
    ResultCollector,
    LocalCluster,
    LocalComm,
    partition_grid,
)
from .runner import (
    choose_worker_count,
    check_worker_count,
    resolve_worker_count,
    run_worker,
    run_local,
    run_simulation,
)

__all__ = [
    # Data structures
    "RunConfig",
    "WorkerContext",
    "GlobalMetrics",
    "LocalMetrics",
    "LocalParams",
    "Report",
    "ReportRow",
    # Errors
    "LifeError",
    "FatalInputError",
    "FatalConfigurationError",
    "CommunicationFault",
    # I/O
    "parse_grid",
    "read_grid",
    "validate_grid",
    "format_report",
    # Kernels
    "NumPyKernel",
    "NumbaKernel",
    "create_kernel",
    # Simulations
    "LifeSimulation",
    "LifeMPISimulation",
    "DriverState",
    # Distribution
    "DistributedGrid",
    "SlicedDecomposition",
    "ChainTopology",
    "HaloExchanger",
    "ResultCollector",
    "LocalCluster",
    "LocalComm",
    "partition_grid",
    # Running
    "choose_worker_count",
    "check_worker_count",
    "resolve_worker_count",
    "run_worker",
    "run_local",
    "run_simulation",
    # Utilities
    "get_project_root",
]


def get_project_root() -> Path:
    """Get project root directory (contains pyproject.toml)."""
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent

    # Fallback: assume standard src layout
    return Path(__file__).resolve().parent.parent.parent
