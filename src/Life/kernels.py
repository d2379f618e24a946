"""Game of Life update kernels.

Both kernels read the current slice plus its two halo rows and write the next
generation into a separate output array, so no next-generation value is ever
read as input. Off-board neighbours contribute zero: the halo rows of the
chain ends are all zeros and there is no wrap-around on the column edges.
"""

import numpy as np
import numba
from numba import njit, prange


@njit(parallel=True)
def _life_step_numba(
    current: np.ndarray, from_top: np.ndarray, from_bottom: np.ndarray, out: np.ndarray
):
    """Numba JIT implementation of one Life generation on a slice."""
    rows, cols = current.shape

    for x in prange(rows):
        for y in range(cols):
            alive = 0
            for dx in range(-1, 2):
                nx = x + dx
                for dy in range(-1, 2):
                    if dx == 0 and dy == 0:
                        continue
                    ny = y + dy
                    if ny < 0 or ny >= cols:
                        continue
                    if nx < 0:
                        alive += from_top[ny]
                    elif nx >= rows:
                        alive += from_bottom[ny]
                    else:
                        alive += current[nx, ny]

            if current[x, y] == 1:
                out[x, y] = 1 if (alive == 2 or alive == 3) else 0
            else:
                out[x, y] = 1 if alive == 3 else 0


def apply_rule(current: np.ndarray, alive: np.ndarray, out: np.ndarray) -> np.ndarray:
    """Apply the B3/S23 rule given per-cell alive-neighbour counts."""
    survive = (current == 1) & ((alive == 2) | (alive == 3))
    born = (current == 0) & (alive == 3)
    out[...] = survive | born
    return out


class NumPyKernel:
    """NumPy-based Life kernel."""

    def __init__(self, specified_numba_threads: int = 1):
        self.observed_numba_threads = None  # Not applicable for NumPy

    def step(
        self,
        current: np.ndarray,
        from_top: np.ndarray,
        from_bottom: np.ndarray,
        out: np.ndarray,
    ) -> np.ndarray:
        """Compute the next generation of ``current`` into ``out``."""
        rows, cols = current.shape

        # Halo rows above/below, zero columns left/right (solid wall)
        padded = np.zeros((rows + 2, cols + 2), dtype=np.int32)
        padded[0, 1:-1] = from_top
        padded[1:-1, 1:-1] = current
        padded[-1, 1:-1] = from_bottom

        alive = (
            padded[0:-2, 0:-2]
            + padded[0:-2, 1:-1]
            + padded[0:-2, 2:]
            + padded[1:-1, 0:-2]
            + padded[1:-1, 2:]
            + padded[2:, 0:-2]
            + padded[2:, 1:-1]
            + padded[2:, 2:]
        )
        return apply_rule(current, alive, out)

    def warmup(self, warmup_size: int = 10):
        """No-op for NumPy kernel."""
        pass


class NumbaKernel:
    """Numba JIT-compiled Life kernel."""

    def __init__(self, specified_numba_threads: int = 1):
        # Set requested threads (may be clamped by NUMBA_NUM_THREADS env var)
        if specified_numba_threads is not None:
            numba.set_num_threads(min(specified_numba_threads, numba.config.NUMBA_NUM_THREADS))

        # Record what Numba actually reports
        self.observed_numba_threads = numba.get_num_threads()

    def step(
        self,
        current: np.ndarray,
        from_top: np.ndarray,
        from_bottom: np.ndarray,
        out: np.ndarray,
    ) -> np.ndarray:
        """Compute the next generation of ``current`` into ``out``."""
        _life_step_numba(current, from_top, from_bottom, out)
        return out

    def warmup(self, warmup_size: int = 10):
        """Trigger JIT compilation with a small problem."""
        rng = np.random.default_rng(0)
        current = rng.integers(0, 2, size=(warmup_size, warmup_size)).astype(np.int32)
        halo = np.zeros(warmup_size, dtype=np.int32)
        out = np.empty_like(current)
        _life_step_numba(current, halo, halo, out)


def create_kernel(use_numba: bool = False, numba_threads: int = 1):
    """Factory: Numba kernel if requested, NumPy otherwise."""
    if use_numba:
        return NumbaKernel(specified_numba_threads=numba_threads)
    return NumPyKernel()
