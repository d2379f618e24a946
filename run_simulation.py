"""
Game of Life runner - runs in-process or spawns MPI based on n_ranks.

Usage:
    python run_simulation.py input=grids/example.txt generations=1
    python run_simulation.py input=grids/glider.txt generations=20 n_ranks=4
    python run_simulation.py input=grids/glider.txt generations=20 mlflow.mode=local
"""

import logging
import os
import subprocess
import sys
from dataclasses import asdict

import hydra
from hydra.core.hydra_config import HydraConfig
from hydra.utils import to_absolute_path
from omegaconf import DictConfig, OmegaConf

log = logging.getLogger(__name__)

# Config keys forwarded to the MPI subprocess
_FORWARDED_KEYS = ["input", "generations", "use_numba", "numba_threads", "experiment_name"]


def _log_results(cfg, sim, n_ranks: int, rank_info: list = None, run_id_file: str = None):
    """Log simulation results to MLflow (coordinator only)."""
    from Life import format_report
    from utils.mlflow.io import (
        setup_mlflow_tracking, start_mlflow_run_context, log_parameters,
        log_metrics_dict, log_timeseries_metrics, log_report, log_rank_table,
    )

    if not setup_mlflow_tracking(mode=cfg.mlflow.mode):
        return

    rows = len(sim.report)
    columns = sim.report.to_grid().shape[1]
    experiment_name = cfg.get("experiment_name") or "life"
    run_name = f"{rows}x{columns}_g{sim.generations}_p{n_ranks}"

    with start_mlflow_run_context(
        experiment_name=experiment_name,
        parent_run_name=f"{rows}x{columns}",
        child_run_name=run_name,
        run_id_file=run_id_file,
    ):
        log_parameters({
            "input": cfg.input, "rows": rows, "columns": columns, "n_ranks": n_ranks,
            "generations": sim.generations, "use_numba": int(bool(cfg.get("use_numba"))),
            "halo_bytes": sim.halo_size_bytes,
        })
        log_metrics_dict(sim.metrics.to_mlflow())
        log_timeseries_metrics(sim.timeseries)
        log_report(format_report(sim.report))
        if rank_info:
            log_rank_table(rank_info)


def _run_id_file() -> str:
    return os.path.join(HydraConfig.get().runtime.output_dir, "mlflow.runid")


@hydra.main(config_path="conf", config_name="config", version_base=None)
def main(cfg: DictConfig) -> None:
    """Entry point - validates input, then runs in-process or under mpiexec."""
    from Life import (
        FatalInputError, LifeError, read_grid, resolve_worker_count,
    )

    try:
        input_path = to_absolute_path(cfg.input)
        grid = read_grid(input_path)
        if cfg.generations < 0:
            raise FatalInputError(
                f"Number of generations must be a non-negative integer, got {cfg.generations}"
            )
        n_ranks = resolve_worker_count(grid.shape[0], cfg.get("n_ranks"), cfg.get("max_ranks"))
    except LifeError as e:
        log.error(f"{type(e).__name__}: {e}")
        sys.exit(1)

    log.info(f"{grid.shape[0]}x{grid.shape[1]} grid, generations={cfg.generations}, n_ranks={n_ranks}")

    if n_ranks == 1:
        _run_in_process(cfg, grid)
    else:
        _spawn_mpi(cfg, input_path, n_ranks)


def _run_in_process(cfg: DictConfig, grid):
    """Single worker over the in-process transport (same code path as MPI)."""
    from Life import LifeError, LocalCluster, format_report, run_worker

    try:
        sim = run_worker(
            LocalCluster(1).comm(0), grid, cfg.generations,
            use_numba=cfg.get("use_numba", False), numba_threads=cfg.get("numba_threads", 1),
        )
    except LifeError:
        sys.exit(1)

    print(format_report(sim.report), flush=True)
    log.info(f"Done: {sim.generations} generations, population={sim.metrics.final_population}, "
             f"time={sim.metrics.wall_time:.3f}s")
    _log_results(cfg, sim, n_ranks=1, rank_info=[asdict(sim.grid.get_rank_info())],
                 run_id_file=_run_id_file())


def _spawn_mpi(cfg: DictConfig, input_path: str, n_ranks: int):
    """Spawn MPI subprocess running this script on every rank."""
    from Life.runner import REPORT_LINE

    env = os.environ.copy()
    env["MPI_SUBPROCESS"] = "1"

    cmd = ["mpiexec", "-n", str(n_ranks), sys.executable, os.path.abspath(__file__)]

    # Pass config as args
    for key in _FORWARDED_KEYS:
        val = input_path if key == "input" else cfg.get(key)
        if val is not None:
            cmd.append(f"{key}={val}")
    cmd.append(f"mlflow.mode={cfg.mlflow.mode}")
    cmd.append(f"run_id_file={_run_id_file()}")

    result = subprocess.run(cmd, capture_output=True, text=True, env=env)

    for line in (result.stderr or "").strip().split("\n"):
        if line:
            log.warning(line) if "error" in line.lower() else log.info(line)

    if result.returncode != 0:
        log.error(f"mpiexec exited with code {result.returncode}; no report produced")
        sys.exit(result.returncode)

    for line in (result.stdout or "").strip().split("\n"):
        if REPORT_LINE.match(line):
            print(line)
        elif line:
            log.info(line)


def _run_mpi(cfg: DictConfig, comm):
    """Run one worker (called within mpiexec subprocess)."""
    from Life import LifeError, format_report, read_grid, run_worker

    rank = comm.Get_rank()

    # Only the coordinator reads the grid; a bad file aborts every rank
    grid = None
    if rank == 0:
        try:
            grid = read_grid(cfg.input)
        except LifeError as e:
            log.error(f"{type(e).__name__}: {e}")
            comm.Abort(1)

    sim = run_worker(
        comm, grid, cfg.get("generations", 0),
        use_numba=cfg.get("use_numba", False), numba_threads=cfg.get("numba_threads", 1),
    )
    all_ranks = comm.gather(asdict(sim.grid.get_rank_info()), root=0)

    if rank == 0:
        print(format_report(sim.report), flush=True)
        log.info(f"Done: {sim.generations} generations on {comm.Get_size()} ranks, "
                 f"population={sim.metrics.final_population}, time={sim.metrics.wall_time:.3f}s")
        _log_results(cfg, sim, comm.Get_size(), all_ranks, run_id_file=cfg.get("run_id_file"))


if __name__ == "__main__":
    if os.environ.get("MPI_SUBPROCESS"):
        from mpi4py import MPI

        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

        # Parse key=value args
        cfg_dict = {}
        for arg in sys.argv[1:]:
            if "=" in arg and not arg.startswith("-"):
                key, val = arg.split("=", 1)
                d = cfg_dict
                for k in key.split(".")[:-1]:
                    d = d.setdefault(k, {})
                try:
                    d[key.split(".")[-1]] = {"true": True, "false": False}.get(val.lower()) if val.lower() in ("true", "false") \
                        else int(val)
                except ValueError:
                    d[key.split(".")[-1]] = val

        _run_mpi(OmegaConf.create(cfg_dict), MPI.COMM_WORLD)
    else:
        main()
