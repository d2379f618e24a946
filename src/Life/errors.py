"""Fatal error taxonomy for distributed Life runs.

Every failure here aborts the whole run; none of them is retried.
"""


class LifeError(Exception):
    """Base class for all fatal simulation errors."""


class FatalInputError(LifeError, ValueError):
    """Grid file missing/unreadable, malformed grid, or negative generations."""


class FatalConfigurationError(LifeError, ValueError):
    """Worker count incompatible with the grid (e.g. rows % workers != 0)."""


class CommunicationFault(LifeError, RuntimeError):
    """An expected message (slice, halo row, result) never arrived."""
