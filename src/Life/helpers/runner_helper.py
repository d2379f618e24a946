"""MPI worker - invoked via: mpiexec -n X python -m Life.helpers.runner_helper '{config}'"""

import json
import logging
import sys
from dataclasses import asdict

from mpi4py import MPI

from Life.errors import LifeError
from Life.io import format_report, read_grid
from Life.runner import run_worker

log = logging.getLogger(__name__)


def main():
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    config = json.loads(sys.argv[1])
    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()

    # Only the coordinator reads the grid; a bad file aborts every rank
    grid = None
    if rank == 0:
        try:
            grid = read_grid(config["input"])
        except LifeError as e:
            log.error(f"{type(e).__name__}: {e}")
            comm.Abort(1)

    sim = run_worker(
        comm,
        grid,
        generations=config.get("generations", 0),
        use_numba=config.get("use_numba", False),
        numba_threads=config.get("numba_threads", 1),
    )

    if rank == 0:
        print(format_report(sim.report), flush=True)

        results = {
            "n_ranks": comm.Get_size(),
            "rows": len(sim.report),
            "columns": sim.config.columns,
            **asdict(sim.metrics),
        }
        output_path = config.get("output")
        if output_path:
            with open(output_path, "w") as f:
                json.dump(results, f)


if __name__ == "__main__":
    main()
