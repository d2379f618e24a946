"""Utility modules for experiment tracking.

Submodules:
- mlflow: MLflow run orchestration and logging
- hydra: Hydra job callbacks

Import examples:
    from utils import mlflow as mlflow_utils
    from utils.hydra.callbacks import MLflowLogCallback
"""

import warnings

# Suppress MLflow FutureWarning about filesystem backend deprecation
warnings.filterwarnings("ignore", category=FutureWarning, module="mlflow")
