"""Life simulations.

Consistent naming: LifeSimulation for sequential, LifeMPISimulation for
distributed.

Sequential (no communication):
- LifeSimulation: Whole grid in one process; the reference result

Distributed:
- LifeMPISimulation: One row band per worker with halo exchange
"""

from .base import BaseSimulation, DriverState
from .life import LifeSimulation
from .life_mpi import LifeMPISimulation

__all__ = [
    "BaseSimulation",
    "DriverState",
    "LifeSimulation",
    "LifeMPISimulation",
]
