"""Grid file parsing and report formatting."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Union

import numpy as np

from .datastructures import CELL_DTYPE, Report
from .errors import FatalInputError

log = logging.getLogger(__name__)


def parse_grid(lines: Iterable[str]) -> np.ndarray:
    """Parse rows of '0'/'1' characters into a rectangular cell matrix.

    Line terminators are stripped; trailing blank lines are ignored.
    """
    rows = [line.rstrip("\r\n") for line in lines]
    while rows and not rows[-1].strip():
        rows.pop()

    if not rows:
        raise FatalInputError("Grid is empty")

    cells: List[List[int]] = []
    for i, row in enumerate(rows):
        bad = set(row) - {"0", "1"}
        if bad:
            raise FatalInputError(
                f"Row {i} contains invalid characters {sorted(bad)!r} (expected only '0'/'1')"
            )
        cells.append([int(c) for c in row])

    return validate_grid(cells)


def validate_grid(grid) -> np.ndarray:
    """Check that ``grid`` is a non-empty rectangular 0/1 matrix and return it as an array."""
    try:
        rows = [list(r) for r in grid]
    except TypeError as e:
        raise FatalInputError(f"Grid must be a 2D matrix of cells: {e}") from e
    if not rows or not rows[0]:
        raise FatalInputError("Grid is empty")

    columns = len(rows[0])
    for i, row in enumerate(rows):
        if len(row) != columns:
            raise FatalInputError(
                f"Grid is not rectangular: row {i} has {len(row)} cells, expected {columns}"
            )

    arr = np.asarray(rows, dtype=CELL_DTYPE)
    if arr.ndim != 2:
        raise FatalInputError(f"Grid must be 2D, got shape {arr.shape}")
    if not np.isin(arr, (0, 1)).all():
        raise FatalInputError("Grid cells must be 0 or 1")
    return arr


def read_grid(path: Union[str, Path]) -> np.ndarray:
    """Read a grid file (one row per line)."""
    path = Path(path)
    try:
        with open(path, "r") as f:
            lines = f.readlines()
    except OSError as e:
        raise FatalInputError(f"Error opening grid file '{path}': {e.strerror or e}") from e

    grid = parse_grid(lines)
    log.debug(f"Read {grid.shape[0]}x{grid.shape[1]} grid from {path}")
    return grid


def format_report(report: Report) -> str:
    """Render the report as ``"<rank>: <cells>"`` lines."""
    return "\n".join(report.lines())
