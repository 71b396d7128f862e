"""Exception hierarchy for the planner.

Missing task ids are not errors: mutations return the plan unchanged.
Stale solver responses are not errors either; the orchestrator drops them.
"""


class PlannerError(Exception):
    """Base class for planner errors."""


class ValidationError(PlannerError):
    """Input rejected before any state change."""


class ConfigError(PlannerError):
    """Configuration file or environment value is invalid."""


class StorageError(PlannerError):
    """A persisted document could not be read or written."""


class SolverError(PlannerError):
    """The remote scheduling service failed to produce a plan."""


class SolverTimeoutError(SolverError):
    """The solver did not finish within the polling budget."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class SolverResponseError(SolverError):
    """The solver answered with something that is not a usable schedule."""

    def __init__(self, message: str, response=None):
        super().__init__(message)
        self.response = response
