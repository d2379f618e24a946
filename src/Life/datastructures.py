"""Data structures for run configuration, worker identity and results.

Architecture: 2x2 matrix of Params vs Metrics × Global vs Local

                 Params (input/config)         Metrics (output/results)
                 ─────────────────────         ────────────────────────
Global           RunConfig                     GlobalMetrics
(same across     columns, slice_rows,          wall_time, mcups,
ranks / agg)     generations                   final_population...

Local            LocalParams                   LocalMetrics
(per-rank)       rank, hostname,               compute_times[],
                 neighbors, row range...       halo_times[]...

WorkerContext carries the explicit identity (rank, size, communicator) that
every distributed component receives instead of reading global MPI state.
Report is the ordered, rank-labelled final state produced on the coordinator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from .errors import FatalConfigurationError, FatalInputError

# Cell storage type for grids, slices and halo rows
CELL_DTYPE = np.int32

# Rank of the worker that partitions the grid and assembles the report
COORDINATOR = 0


# ============================================================================
# Global (identical across ranks, or aggregated on the coordinator)
# ============================================================================


@dataclass(frozen=True)
class RunConfig:
    """Run configuration shared by every worker.

    Sent from the coordinator as a three-integer header
    ``[columns, slice_rows, generations]`` before the slices.
    """

    columns: int
    slice_rows: int
    generations: int

    HEADER_SIZE = 3

    def __post_init__(self):
        if self.columns <= 0 or self.slice_rows <= 0:
            raise FatalConfigurationError(
                f"Slice must be non-empty, got {self.slice_rows}x{self.columns}"
            )
        if self.generations < 0:
            raise FatalInputError(
                f"Number of generations must be a non-negative integer, got {self.generations}"
            )
        header_max = int(np.iinfo(CELL_DTYPE).max)
        for name in ("columns", "slice_rows", "generations"):
            if getattr(self, name) > header_max:
                raise FatalInputError(
                    f"{name}={getattr(self, name)} exceeds the header limit {header_max}"
                )

    @property
    def slice_shape(self) -> Tuple[int, int]:
        return (self.slice_rows, self.columns)

    def to_header(self) -> np.ndarray:
        """Pack into the integer header sent to every worker."""
        return np.array(
            [self.columns, self.slice_rows, self.generations], dtype=CELL_DTYPE
        )

    @classmethod
    def from_header(cls, header: np.ndarray) -> "RunConfig":
        columns, slice_rows, generations = (int(v) for v in header[: cls.HEADER_SIZE])
        return cls(columns=columns, slice_rows=slice_rows, generations=generations)

    def to_mlflow(self) -> dict:
        return {
            "columns": self.columns,
            "slice_rows": self.slice_rows,
            "generations": self.generations,
        }


@dataclass
class GlobalMetrics:
    """Aggregated results - logged to MLflow as metrics.

    Final results computed on the coordinator.
    """

    generations: int = 0
    wall_time: Optional[float] = None
    final_population: Optional[int] = None

    # Timing breakdown (sum across all generations, coordinator's view)
    total_compute_time: Optional[float] = None
    total_halo_time: Optional[float] = None

    # Million Cell Updates Per Second
    mcups: Optional[float] = None

    # Numba runtime info (what was actually available)
    observed_numba_threads: Optional[int] = None

    def to_mlflow(self) -> dict:
        """Convert to MLflow-compatible dict (no None, bools as int)."""
        return {
            k: (int(v) if isinstance(v, bool) else v)
            for k, v in self.__dict__.items()
            if v is not None
        }


# ============================================================================
# Local (per-rank)
# ============================================================================


@dataclass(frozen=True)
class WorkerContext:
    """Explicit worker identity passed to every distributed component.

    ``comm`` is any object exposing the point-to-point subset of the
    ``mpi4py`` communicator API: ``mpi4py.MPI.Comm`` or ``LocalComm``.
    """

    rank: int
    size: int
    comm: Any = field(repr=False, compare=False)

    @classmethod
    def from_comm(cls, comm) -> "WorkerContext":
        return cls(rank=comm.Get_rank(), size=comm.Get_size(), comm=comm)

    @property
    def is_coordinator(self) -> bool:
        return self.rank == COORDINATOR


@dataclass
class LocalParams:
    """Per-rank geometry - gathered to the coordinator, logged as artifact."""

    rank: int
    hostname: str = ""
    neighbors: Dict[str, Optional[int]] = field(default_factory=dict)
    slice_shape: Optional[Tuple[int, int]] = None
    global_start: Optional[int] = None
    global_end: Optional[int] = None
    cpu_ids: Optional[List[int]] = None  # Cores this rank can run on


@dataclass
class LocalMetrics:
    """Per-rank timeseries, accumulated during the run."""

    compute_times: List[float] = field(default_factory=list)
    halo_times: List[float] = field(default_factory=list)
    population_history: List[int] = field(default_factory=list)

    def clear(self):
        """Clear all timeseries data."""
        self.compute_times.clear()
        self.halo_times.clear()
        self.population_history.clear()


# ============================================================================
# Report
# ============================================================================


@dataclass(frozen=True)
class ReportRow:
    """One global grid row, labelled with the rank that owned it."""

    rank: int
    cells: np.ndarray

    def render(self) -> str:
        return f"{self.rank}: " + "".join(str(int(c)) for c in self.cells)


@dataclass
class Report:
    """Rank-major rendering of the final distributed grid."""

    rows: List[ReportRow] = field(default_factory=list)

    def extend(self, rank: int, slice_: np.ndarray):
        """Append every row of ``slice_`` (top to bottom) labelled with ``rank``."""
        for row in slice_:
            self.rows.append(ReportRow(rank=rank, cells=np.array(row, copy=True)))

    def __iter__(self) -> Iterator[ReportRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def lines(self) -> List[str]:
        return [row.render() for row in self.rows]

    def ranks(self) -> List[int]:
        return [row.rank for row in self.rows]

    def to_grid(self) -> np.ndarray:
        """Reassemble the global grid from the report rows."""
        if not self.rows:
            return np.zeros((0, 0), dtype=CELL_DTYPE)
        return np.vstack([row.cells for row in self.rows]).astype(CELL_DTYPE)

    @property
    def population(self) -> int:
        return int(sum(int(row.cells.sum()) for row in self.rows))
