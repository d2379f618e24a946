"""MLflow utilities for experiment tracking.

Provides:
- Context manager for MLflow run orchestration
- Logging functions for parameters, metrics, time-series, report and rank tables
"""

from .io import (
    setup_mlflow_tracking,
    start_mlflow_run_context,
    log_parameters,
    log_metrics_dict,
    log_timeseries_metrics,
    log_report,
    log_rank_table,
)

__all__ = [
    "setup_mlflow_tracking",
    "start_mlflow_run_context",
    "log_parameters",
    "log_metrics_dict",
    "log_timeseries_metrics",
    "log_report",
    "log_rank_table",
]
