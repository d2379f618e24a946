"""Run Life simulations: per-worker body, in-process threads, or mpiexec subprocess."""

import json
import logging
import os
import re
import shutil
import subprocess
import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import numpy as np

from .datastructures import Report, WorkerContext
from .errors import CommunicationFault, FatalConfigurationError, LifeError
from .io import read_grid, validate_grid
from .mpi.local import LocalCluster
from .solvers import LifeMPISimulation

log = logging.getLogger(__name__)

REPORT_LINE = re.compile(r"^\d+: [01]+$")


def choose_worker_count(rows: int, available: Optional[int] = None) -> int:
    """Largest divisor of ``rows`` not exceeding ``available`` (default: CPU count)."""
    if available is None:
        available = os.cpu_count() or 1
    available = max(1, min(available, rows))
    for n in range(available, 0, -1):
        if rows % n == 0:
            return n
    return 1


def check_worker_count(rows: int, n_workers: int):
    """Raise FatalConfigurationError unless ``n_workers`` evenly divides ``rows``."""
    if n_workers < 1:
        raise FatalConfigurationError(f"Worker count must be >= 1, got {n_workers}")
    if rows % n_workers != 0:
        raise FatalConfigurationError(f"{n_workers} workers do not evenly divide {rows} rows")


def resolve_worker_count(
    rows: int, n_workers: Optional[int] = None, available: Optional[int] = None
) -> int:
    """Use ``n_workers`` if given (it must divide ``rows``), else choose one."""
    if n_workers is None:
        n_workers = choose_worker_count(rows, available)
    check_worker_count(rows, n_workers)
    return n_workers


def run_worker(
    comm,
    grid: Optional[np.ndarray] = None,
    generations: int = 0,
    use_numba: bool = False,
    numba_threads: int = 1,
) -> LifeMPISimulation:
    """SPMD body executed by every worker.

    Any error aborts the whole run through ``comm.Abort`` before it is
    re-raised, so no worker is left waiting on a peer that gave up.
    """
    ctx = WorkerContext.from_comm(comm)
    try:
        sim = LifeMPISimulation(
            ctx, grid=grid, generations=generations,
            use_numba=use_numba, numba_threads=numba_threads,
        )
        if use_numba:
            sim.warmup()
        sim.run()
    except Exception as e:
        log.error(f"[rank {ctx.rank}] {type(e).__name__}: {e}")
        comm.Abort(1)
        raise
    return sim


def run_local(
    grid,
    generations: int,
    n_workers: int = 1,
    timeout: Optional[float] = None,
    **kwargs,
) -> Report:
    """Run ``n_workers`` workers as threads of this process.

    Returns the coordinator's Report. If any worker fails, the root-cause
    error is re-raised (a CommunicationFault caused by the abort is only
    reported when nothing else went wrong).
    """
    grid = validate_grid(grid)
    cluster = LocalCluster(n_workers, timeout=timeout)

    with ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="life-worker") as pool:
        futures = [
            pool.submit(
                run_worker, cluster.comm(rank), grid if rank == 0 else None, generations, **kwargs
            )
            for rank in range(n_workers)
        ]
        errors = [f.exception() for f in futures]

    failures = [e for e in errors if e is not None]
    if failures:
        root_causes = [e for e in failures if not isinstance(e, CommunicationFault)]
        raise (root_causes or failures)[0]

    return futures[0].result().report


def run_simulation(
    input: str,
    generations: int,
    n_ranks: Optional[int] = None,
    **kwargs,
) -> dict:
    """Run a simulation of the grid in ``input`` on ``n_ranks`` MPI processes.

    Parameters
    ----------
    input : str
        Path to the grid file.
    generations : int
        Number of generations.
    n_ranks : int, optional
        Number of MPI ranks; chosen with ``choose_worker_count`` if omitted.
    **kwargs
        Extra options: use_numba, numba_threads

    Returns
    -------
    dict
        ``lines`` (report lines), ``n_ranks`` and metrics, or an ``error`` key
        on failure (in which case no report lines are returned).
    """
    try:
        grid = read_grid(input)
        n_ranks = resolve_worker_count(grid.shape[0], n_ranks)
    except LifeError as e:
        return {"error": f"{type(e).__name__}: {e}"}

    tmp = tempfile.NamedTemporaryFile(suffix=".json", delete=False)
    output = tmp.name
    tmp.close()

    config = {
        "input": str(input),
        "generations": generations,
        "output": output,
        **kwargs,
    }
    mpiexec = shutil.which("mpiexec") or "mpiexec"
    cmd = [mpiexec, "-n", str(n_ranks), sys.executable, "-m",
           "Life.helpers.runner_helper", json.dumps(config)]

    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)

        if proc.returncode != 0:
            return {"error": proc.stderr or f"mpiexec exited with {proc.returncode}"}

        if not Path(output).exists() or Path(output).stat().st_size == 0:
            return {"error": "No output file created", "stderr": proc.stderr}

        with open(output) as f:
            result = json.load(f)
    finally:
        Path(output).unlink(missing_ok=True)

    result["lines"] = [line for line in proc.stdout.splitlines() if REPORT_LINE.match(line)]
    return result
