"""Hydra callbacks for MLflow integration.

MLflowLogCallback uploads the Hydra job log file to the MLflow run of the
job, so the coordinator's log (grid shape, worker count, mpiexec output) can
be read next to the report in the MLflow UI.
"""

import logging
from pathlib import Path
from typing import Any

from hydra.core.utils import JobReturn
from hydra.experimental.callback import Callback
from omegaconf import DictConfig

log = logging.getLogger(__name__)

# Written into the Hydra output dir by start_mlflow_run_context
RUN_ID_FILE = "mlflow.runid"


class MLflowLogCallback(Callback):
    """Callback to log Hydra job output to MLflow as an artifact.

    The job's run is identified by the ``mlflow.runid`` file in the Hydra
    output directory; jobs that did not track to MLflow are skipped.

    Configuration (in conf/config.yaml):

    .. code-block:: yaml

        hydra:
          callbacks:
            mlflow_log:
              _target_: utils.hydra.callbacks.MLflowLogCallback
              artifact_path: logs
    """

    def __init__(self, artifact_path: str = "logs") -> None:
        self.artifact_path = artifact_path

    def on_job_end(
        self, config: DictConfig, job_return: JobReturn, **kwargs: Any
    ) -> None:
        """Upload job log to MLflow after job completes."""
        try:
            import mlflow
            from hydra.core.hydra_config import HydraConfig

            hc = HydraConfig.get()
            output_dir = Path(hc.runtime.output_dir)
            run_id_file = output_dir / RUN_ID_FILE
            if not run_id_file.exists():
                log.debug("No MLflow run for this job, skipping log upload")
                return

            log_file = output_dir / f"{hc.job.name}.log"
            if not log_file.exists():
                log.debug(f"Job log not found: {log_file}")
                return

            run_id = run_id_file.read_text().strip()
            mlflow.tracking.MlflowClient().log_artifact(
                run_id, str(log_file), artifact_path=self.artifact_path
            )
            log.info(f"Uploaded job log to MLflow: {log_file.name}")

        except Exception as e:
            # Don't fail the job if logging fails
            log.warning(f"Failed to upload job log to MLflow: {e}")
