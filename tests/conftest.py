"""Shared fixtures and a brute-force reference for Life tests."""

import numpy as np
import pytest

from Life import run_local

# Receive timeout for in-process runs so a broken exchange fails instead of hanging
LOCAL_TIMEOUT = 10.0


def reference_step(grid: np.ndarray) -> np.ndarray:
    """One generation computed cell by cell with solid-wall edges."""
    rows, cols = grid.shape
    out = np.zeros_like(grid)
    for x in range(rows):
        for y in range(cols):
            alive = 0
            for i in range(max(0, x - 1), min(rows, x + 2)):
                for j in range(max(0, y - 1), min(cols, y + 2)):
                    if (i, j) != (x, y):
                        alive += grid[i, j]
            out[x, y] = 1 if alive == 3 or (grid[x, y] == 1 and alive == 2) else 0
    return out


def reference_life(grid, generations: int) -> np.ndarray:
    grid = np.asarray(grid, dtype=np.int32)
    for _ in range(generations):
        grid = reference_step(grid)
    return grid


def run_distributed(grid, generations, n_workers, **kwargs):
    return run_local(grid, generations, n_workers=n_workers, timeout=LOCAL_TIMEOUT, **kwargs)


def random_grid(rows, cols, seed=0, density=0.35):
    rng = np.random.default_rng(seed)
    return (rng.random((rows, cols)) < density).astype(np.int32)


@pytest.fixture
def example_grid():
    return np.array(
        [[0, 1, 1, 0],
         [1, 0, 0, 1],
         [0, 1, 1, 0],
         [1, 0, 0, 1]],
        dtype=np.int32,
    )


@pytest.fixture
def blinker_grid():
    """Vertical blinker in the middle column of a 6x5 board."""
    grid = np.zeros((6, 5), dtype=np.int32)
    grid[1:4, 2] = 1
    return grid
