"""Sequential Life simulation."""

import numpy as np

from .base import BaseSimulation, DriverState
from ..datastructures import COORDINATOR, Report
from ..errors import FatalInputError
from ..io import validate_grid


class LifeSimulation(BaseSimulation):
    """Single-process simulation of the whole grid.

    No communication - the grid is one slice whose halo rows are the solid
    walls above and below. Serves as the reference for distributed runs.

    Parameters
    ----------
    grid : array-like
        Rectangular 0/1 matrix.
    generations : int
        Number of generations (>= 0).
    use_numba : bool
        Use Numba JIT kernel (default: False).
    numba_threads : int
        Number of Numba threads (default: 1).
    """

    def __init__(self, grid, generations: int, **kwargs):
        if generations < 0:
            raise FatalInputError(
                f"Number of generations must be a non-negative integer, got {generations}"
            )
        super().__init__(generations, **kwargs)

        self.grid = validate_grid(grid)
        self.rows, self.columns = self.grid.shape
        self._wall = np.zeros(self.columns, dtype=self.grid.dtype)

    def run(self) -> Report:
        """Run every generation and report all rows under the coordinator's rank."""
        t_start = self._get_time()

        current = self.grid.copy()
        final = self._evolve(current, np.empty_like(current))

        self.report = Report()
        self.report.extend(COORDINATOR, final)
        self.state = DriverState.FINISHED

        self._finalize(self._get_time() - t_start, self.rows * self.columns)
        return self.report

    def _sync_halos(self, current):
        return self._wall, self._wall
