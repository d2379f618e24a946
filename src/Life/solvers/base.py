"""Base class for simulations."""

import enum
import time
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from ..datastructures import GlobalMetrics, LocalMetrics, Report
from ..kernels import create_kernel


class DriverState(enum.Enum):
    INITIALIZED = "initialized"
    RUNNING = "running"
    FINISHED = "finished"


class BaseSimulation(ABC):
    """Abstract generation driver.

    Runs ``exchange -> update -> swap`` once per generation. ``state`` moves
    ``INITIALIZED -> RUNNING (generation 1..n) -> FINISHED``; with zero
    generations it goes straight to ``FINISHED`` and the kernel never runs.
    """

    def __init__(
        self,
        generations: int,
        use_numba: bool = False,
        numba_threads: int = 1,
    ):
        self.generations = generations
        self.use_numba = use_numba
        self.numba_threads = numba_threads
        self.kernel = create_kernel(use_numba=use_numba, numba_threads=numba_threads)

        self.metrics = GlobalMetrics()
        self.timeseries = LocalMetrics()

        self.state = DriverState.INITIALIZED
        self.generation = 0
        self.report: Optional[Report] = None

    @abstractmethod
    def run(self) -> Optional[Report]:
        """Execute every generation and return the Report (coordinator only)."""
        pass

    def warmup(self, warmup_size: int = 10):
        """Warmup kernel (trigger Numba JIT if used)."""
        self.kernel.warmup(warmup_size=warmup_size)

    def _evolve(self, current: np.ndarray, scratch: np.ndarray) -> np.ndarray:
        """Advance ``current`` by ``self.generations``; returns the final slice."""
        self.timeseries.clear()

        for g in range(1, self.generations + 1):
            self.state = DriverState.RUNNING
            self.generation = g

            t0 = self._get_time()
            from_top, from_bottom = self._sync_halos(current)
            self.timeseries.halo_times.append(self._get_time() - t0)

            t0 = self._get_time()
            self.kernel.step(current, from_top, from_bottom, scratch)
            self.timeseries.compute_times.append(self._get_time() - t0)

            # Swap buffers
            current, scratch = scratch, current
            self.timeseries.population_history.append(int(current.sum()))

        return current

    def _get_time(self) -> float:
        return time.perf_counter()

    @abstractmethod
    def _sync_halos(self, current: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(from_top, from_bottom)`` for this generation."""
        pass

    def _finalize(self, wall_time: float, n_cells: int):
        """Populate metrics after the run."""
        self.metrics.generations = self.generations
        self.metrics.wall_time = wall_time
        self.metrics.total_compute_time = sum(self.timeseries.compute_times)
        self.metrics.total_halo_time = sum(self.timeseries.halo_times)
        self.metrics.observed_numba_threads = self.kernel.observed_numba_threads
        if self.report is not None:
            self.metrics.final_population = self.report.population

        if self.generations > 0 and wall_time > 0:
            self.metrics.mcups = n_cells * self.generations / (wall_time * 1e6)
