"""PlanSession: the single owner of the live plan and resource pool.

Every user action goes through here. A change that actually alters the plan
records the previous plan in the undo ledger first; no-ops record nothing.
Actions that invalidate downstream days queue a rebalance in
`pending_rebalance` rather than calling the solver themselves, so callers
decide when to pay for the round trip.

While a regeneration is in flight, local edits are allowed but the solver's
answer replaces the whole plan when it lands (last write wins). Undoing a
applied regeneration goes back to the plan as it was when the request was
sent, so edits made while waiting are not recoverable.
"""
import logging
from dataclasses import replace
from typing import Optional

from study_planner import db, importer, mutations, pool, rules
from study_planner.codec import check_iso_date
from study_planner.config import PlannerConfig
from study_planner.errors import PlannerError, StorageError, ValidationError
from study_planner.models import (
    DailySchedule, DeadlineRebalance, ExceptionDateRule, ExceptionRebalance, FullResetRebalance,
    ScheduledTask, StandardRebalance, StudyPlan, StudyResource, TopicOrderRebalance, TopicTimeRebalance,
)
from study_planner.orchestrator import REQUESTING, RebalanceOrchestrator
from study_planner.report import progress_summary
from study_planner.solver import Solver, SolverResult
from study_planner.sync import SyncStatusTracker
from study_planner.undo import UndoLedger

logger = logging.getLogger(__name__)


class PlanSession:
    def __init__(
        self,
        plan: StudyPlan,
        resources: list[StudyResource],
        solver: Optional[Solver] = None,
        config: Optional[PlannerConfig] = None,
    ):
        self.config = config or PlannerConfig()
        self.plan = plan
        self.resources = list(resources)
        self.ledger = UndoLedger(self.config.undo_depth)
        self.sync = SyncStatusTracker()
        self.orchestrator = RebalanceOrchestrator(solver, self.sync)
        self.pending_rebalance = None
        self.notifications: list[dict] = []

    # -- bookkeeping --------------------------------------------------------

    def _commit(self, new_plan: StudyPlan) -> bool:
        if new_plan is self.plan or new_plan == self.plan:
            return False
        self.ledger.record(self.plan, self.pending_rebalance)
        self.plan = new_plan
        return True

    def schedule_rebalance(self, options) -> None:
        """Queue a follow-up regeneration. A queued full reset is never downgraded."""
        if isinstance(self.pending_rebalance, FullResetRebalance):
            return
        self.pending_rebalance = options

    @property
    def scheduled_resource_ids(self) -> set[str]:
        return pool.scheduled_resource_ids(self.plan.schedule)

    @property
    def progress(self) -> dict:
        return progress_summary(self.plan)

    @property
    def can_undo(self) -> bool:
        return self.ledger.can_undo

    def undo(self) -> bool:
        """Restore the last snapshot together with the rebalance queued when it was taken."""
        entry = self.ledger.restore_entry()
        if entry is None:
            logger.debug("Nothing to undo")
            return False
        self.plan, self.pending_rebalance = entry
        logger.info("Restored previous plan")
        return True

    # -- daily task actions -------------------------------------------------

    def toggle_task(self, date: str, task_id: str) -> bool:
        return self._commit(mutations.toggle_task_status(self.plan, date, task_id))

    def add_optional_task(self, date: str, title: str, duration_minutes: int, topic: str, task_type: str,
                          **metrics) -> bool:
        return self._commit(mutations.add_optional_task(
            self.plan, date, title, duration_minutes, topic, task_type, **metrics,
        ))

    def replace_day_tasks(self, date: str, tasks: list[ScheduledTask]) -> bool:
        changed = self._commit(mutations.replace_day_tasks(self.plan, date, tasks))
        if changed:
            self.schedule_rebalance(StandardRebalance())
        return changed

    def reorder_day_tasks(self, date: str, from_index: int, to_index: int) -> bool:
        return self._commit(mutations.reorder_day_tasks(self.plan, date, from_index, to_index))

    def master_reset(self) -> bool:
        return self._commit(mutations.master_reset(self.plan))

    def log_study_time(self, task_id: str, minutes: int) -> bool:
        return self._commit(mutations.log_study_time(self.plan, task_id, minutes))

    # -- calendar rules -----------------------------------------------------

    def add_exception(self, rule: ExceptionDateRule) -> bool:
        changed = self._commit(rules.add_exception_rule(self.plan, rule, self.config))
        if changed:
            self.schedule_rebalance(ExceptionRebalance(date=rule.date))
        return changed

    def add_exception_kind(self, kind: str, date: str) -> bool:
        return self.add_exception(rules.make_rule(kind, date, self.config))

    def toggle_rest_day(self, date: str) -> bool:
        policy = rules.resolve_day_policy(self.plan.exception_rules, date, self.config)
        return self.add_exception(rules.rest_day_toggle_rule(date, not policy.is_rest_day, self.config))

    def set_day_time(self, date: str, minutes: int) -> bool:
        return self.add_exception(rules.day_time_rule(date, minutes))

    # -- plan settings ------------------------------------------------------

    def update_topic_order(self, order: list[str]) -> bool:
        changed = self._commit(mutations.set_topic_order(self.plan, order))
        if changed:
            self.schedule_rebalance(TopicOrderRebalance())
        return changed

    def update_cram_topic_order(self, order: list[str]) -> bool:
        changed = self._commit(mutations.set_cram_topic_order(self.plan, order))
        if changed:
            self.schedule_rebalance(TopicOrderRebalance(cram=True))
        return changed

    def set_cram_mode(self, active: bool) -> bool:
        changed = self._commit(mutations.set_cram_mode(self.plan, active))
        if changed:
            self.schedule_rebalance(StandardRebalance())
        return changed

    def set_topic_interleaving(self, active: bool) -> bool:
        changed = self._commit(mutations.set_topic_interleaving(self.plan, active))
        if changed:
            self.schedule_rebalance(StandardRebalance())
        return changed

    def update_deadlines(self, deadlines: dict[str, str]) -> bool:
        changed = self._commit(mutations.set_deadlines(self.plan, deadlines))
        if changed:
            self.schedule_rebalance(DeadlineRebalance())
        return changed

    def update_plan_dates(self, start_date: str, end_date: str) -> bool:
        """Move the horizon.

        Out-of-range days, rules and deadlines are dropped. Dates newly inside
        the range get an empty day sized by the rules until the queued full
        reset fills them.
        """
        check_iso_date(start_date, "start date")
        check_iso_date(end_date, "end date")
        if end_date < start_date:
            raise ValidationError(f"End date {end_date} is before start date {start_date}")

        def in_range(d: str) -> bool:
            return start_date <= d <= end_date

        exception_rules = {k: v for k, v in self.plan.exception_rules.items() if in_range(k)}
        existing = {d.date: d for d in self.plan.schedule if in_range(d.date)}
        schedule = []
        for d in rules.iter_dates(start_date, end_date):
            day = existing.get(d)
            if day is None:
                policy = rules.resolve_day_policy(exception_rules, d, self.config)
                day = DailySchedule(
                    date=d, is_rest_day=policy.is_rest_day, total_study_time_minutes=policy.target_minutes,
                )
            schedule.append(day)

        new_plan = replace(
            self.plan,
            start_date=start_date,
            end_date=end_date,
            schedule=schedule,
            exception_rules=exception_rules,
            deadlines={k: v for k, v in self.plan.deadlines.items() if in_range(v)},
        )
        changed = self._commit(new_plan)
        if changed:
            self.pending_rebalance = FullResetRebalance()
        return changed

    # -- resource pool ------------------------------------------------------

    def add_resource(self, resource: StudyResource) -> None:
        self.resources = pool.add_resource(self.resources, resource)

    def update_resource(self, resource: StudyResource) -> bool:
        updated = pool.update_resource(self.resources, resource)
        changed = updated is not self.resources
        self.resources = updated
        return changed

    def archive_resource(self, resource_id: str) -> bool:
        updated = pool.archive_resource(self.resources, resource_id)
        if updated is self.resources:
            return False
        self.resources = updated
        self.schedule_rebalance(StandardRebalance())
        return True

    def restore_resource(self, resource_id: str) -> bool:
        updated = pool.restore_resource(self.resources, resource_id)
        changed = updated is not self.resources
        self.resources = updated
        return changed

    def delete_resource(self, resource_id: str) -> bool:
        updated = pool.delete_resource(self.resources, resource_id)
        if updated is self.resources:
            return False
        self.resources = updated
        self.schedule_rebalance(StandardRebalance())
        return True

    def import_resources(self, file_path: str) -> dict:
        self.resources, result = importer.import_resources(self.resources, file_path)
        if result["added"] or result["updated"]:
            self.schedule_rebalance(StandardRebalance())
        return result

    # -- regeneration -------------------------------------------------------

    async def rebalance(self, options=None) -> bool:
        """Ask the solver to regenerate the plan. Returns True if a result was applied."""
        options = options or StandardRebalance()
        plan_at_request = self.plan
        pending_at_request = self.pending_rebalance

        def apply(result: SolverResult) -> None:
            self.ledger.record(plan_at_request, pending_at_request)
            self.plan = replace(
                plan_at_request,
                schedule=result.schedule,
                first_pass_end_date=result.first_pass_end_date or plan_at_request.first_pass_end_date,
            )
            self.notifications = result.notifications

        return await self.orchestrator.request(plan_at_request, self.resources, options, apply)

    async def rebalance_topic_time(self, date: str, topics: list[str], total_time_minutes: int) -> bool:
        if total_time_minutes <= 0:
            raise ValidationError("total_time_minutes must be positive")
        if not topics:
            raise ValidationError("Pick at least one topic")
        return await self.rebalance(TopicTimeRebalance(date=date, topics=tuple(topics),
                                                       total_time_minutes=total_time_minutes))

    async def run_pending_rebalance(self) -> Optional[bool]:
        """Run the queued rebalance, if any. Returns None when nothing was queued."""
        options = self.pending_rebalance
        if options is None:
            return None
        self.pending_rebalance = None
        return await self.rebalance(options)

    # -- persistence --------------------------------------------------------

    def save(self, db_path: Optional[str] = None, user_id: Optional[str] = None) -> bool:
        db_path = db_path or self.config.db_path
        user_id = user_id or self.config.user_id
        # A regeneration in flight owns the saving state until it settles.
        in_flight = self.orchestrator.state == REQUESTING
        if not in_flight:
            self.sync.begin()
        try:
            db.save_plan(db_path, user_id, self.plan)
            db.save_resources(db_path, user_id, self.resources)
        except StorageError as e:
            self.sync.fail(str(e))
            return False
        if not in_flight:
            self.sync.succeed()
        return True

    @classmethod
    def load(
        cls,
        solver: Optional[Solver] = None,
        config: Optional[PlannerConfig] = None,
        db_path: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> "PlanSession":
        config = config or PlannerConfig()
        db_path = db_path or config.db_path
        user_id = user_id or config.user_id
        plan = db.load_plan(db_path, user_id)
        if plan is None:
            raise PlannerError(f"No saved plan for {user_id}")
        resources = db.load_resources(db_path, user_id) or []
        session = cls(plan, resources, solver=solver, config=config)
        logger.info("Loaded plan %s..%s for %s", plan.start_date, plan.end_date, user_id)
        return session
