"""Rebalance orchestration: send regeneration requests, apply only the newest answer."""
import logging
from typing import Callable, Optional

from study_planner.errors import PlannerError, SolverError
from study_planner.models import StudyPlan, StudyResource
from study_planner.solver import Solver, SolverResult, build_solver_request
from study_planner.sync import SyncStatusTracker

logger = logging.getLogger(__name__)

IDLE = "idle"
REQUESTING = "requesting"
APPLYING = "applying"
FAILED = "failed"


class RebalanceOrchestrator:
    """Idle -> Requesting -> (Applying | Failed), re-entering Requesting on each new request.

    Every request gets a token from a monotonically increasing counter.
    Superseded requests are not cancelled; when their answer arrives it no
    longer carries the latest token and is dropped without touching the plan
    or the sync status.
    """

    def __init__(self, solver: Optional[Solver], tracker: Optional[SyncStatusTracker] = None):
        self.solver = solver
        self.tracker = tracker or SyncStatusTracker()
        self.state = IDLE
        self.last_error: Optional[str] = None
        self._latest_token = 0
        self._applied_token = 0

    @property
    def latest_token(self) -> int:
        return self._latest_token

    def begin(self) -> int:
        self._latest_token += 1
        self.state = REQUESTING
        self.tracker.begin()
        return self._latest_token

    def is_stale(self, token: int) -> bool:
        return token != self._latest_token or token <= self._applied_token

    def complete(self, token: int, result: SolverResult, apply: Callable[[SolverResult], None]) -> bool:
        """Hand a solver result to `apply` if it answers the newest request."""
        if self.is_stale(token):
            logger.info("Discarding stale solver response %d (latest is %d)", token, self._latest_token)
            return False
        apply(result)
        self._applied_token = token
        self.state = APPLYING
        self.tracker.succeed()
        logger.info("Applied solver response %d (%d days)", token, len(result.schedule))
        return True

    def fail(self, token: int, exc: Exception) -> bool:
        if self.is_stale(token):
            logger.info("Ignoring failure of superseded request %d: %s", token, exc)
            return False
        self.state = FAILED
        self.last_error = str(exc)
        self.tracker.fail(str(exc))
        return True

    async def request(
        self,
        plan: StudyPlan,
        resources: list[StudyResource],
        options,
        apply: Callable[[SolverResult], None],
    ) -> bool:
        """Ask the solver for a new schedule and apply it if still current.

        Returns True only when the result was applied. Solver failures leave
        the current plan untouched and put the tracker into `error`. Any other
        exception from the solver marks the request failed the same way and is
        then re-raised.
        """
        if self.solver is None:
            raise PlannerError("No solver configured")
        payload = build_solver_request(plan, resources, options)
        token = self.begin()
        logger.info("Regeneration request %d (%s)", token, options.type)
        try:
            result = await self.solver.solve(payload)
        except SolverError as e:
            logger.error("Regeneration request %d failed: %s", token, e)
            self.fail(token, e)
            return False
        except Exception as e:
            logger.exception("Regeneration request %d raised unexpectedly", token)
            self.fail(token, e)
            raise
        return self.complete(token, result, apply)
