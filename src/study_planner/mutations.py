"""Pure plan transformations for discrete user actions.

Every function takes a StudyPlan and returns a new one; the input is never
modified. When the target task or day does not exist the input plan itself
is returned, so callers can detect a no-op with an identity check.
"""
import logging
import uuid
from dataclasses import replace
from typing import Optional

from study_planner.codec import check_iso_date
from study_planner.constants import STATUS_COMPLETED, STATUS_PENDING
from study_planner.errors import ValidationError
from study_planner.models import DailySchedule, ScheduledTask, StudyPlan

logger = logging.getLogger(__name__)

_OPTIONAL_METRICS = ("pages", "case_count", "question_count", "chapter_number")


def _replace_day(plan: StudyPlan, date: str, fn) -> StudyPlan:
    for i, daily in enumerate(plan.schedule):
        if daily.date == date:
            schedule = list(plan.schedule)
            schedule[i] = fn(daily)
            return replace(plan, schedule=schedule)
    logger.debug("No scheduled day %s; nothing changed", date)
    return plan


def _renumber(tasks: list[ScheduledTask]) -> list[ScheduledTask]:
    return [t if t.order == i else replace(t, order=i) for i, t in enumerate(tasks)]


def all_task_ids(plan: StudyPlan) -> set[str]:
    return {t.id for d in plan.schedule for t in d.tasks}


def find_task(plan: StudyPlan, task_id: str) -> Optional[tuple[str, ScheduledTask]]:
    """Locate a task anywhere on the horizon. Returns (date, task) or None."""
    for daily in plan.schedule:
        for task in daily.tasks:
            if task.id == task_id:
                return daily.date, task
    return None


def toggle_task_status(plan: StudyPlan, date: str, task_id: str) -> StudyPlan:
    """Flip pending <-> completed for one task on one day."""
    daily = plan.day(date)
    if daily is None or not any(t.id == task_id for t in daily.tasks):
        logger.debug("Task %s not found on %s", task_id, date)
        return plan

    def flip(day: DailySchedule) -> DailySchedule:
        tasks = [
            replace(t, status=STATUS_PENDING if t.status == STATUS_COMPLETED else STATUS_COMPLETED)
            if t.id == task_id else t
            for t in day.tasks
        ]
        return replace(day, tasks=tasks)

    return _replace_day(plan, date, flip)


def _new_task_id(existing: set[str]) -> str:
    while True:
        candidate = f"optional_{uuid.uuid4().hex[:12]}"
        if candidate not in existing:
            return candidate


def add_optional_task(
    plan: StudyPlan,
    date: str,
    title: str,
    duration_minutes: int,
    topic: str,
    task_type: str,
    **metrics,
) -> StudyPlan:
    """Append a user-added task to the end of a day's list.

    Accepted metrics: pages, case_count, question_count, chapter_number.
    """
    if not title or not title.strip():
        raise ValidationError("Optional task needs a title")
    if not topic:
        raise ValidationError("Optional task needs a topic")
    if not task_type:
        raise ValidationError("Optional task needs a type")
    if not isinstance(duration_minutes, int) or duration_minutes <= 0:
        raise ValidationError(f"durationMinutes must be a positive integer, got {duration_minutes!r}")
    unknown = set(metrics) - set(_OPTIONAL_METRICS)
    if unknown:
        raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

    daily = plan.day(date)
    if daily is None:
        logger.debug("No scheduled day %s; optional task not added", date)
        return plan

    task_id = _new_task_id(all_task_ids(plan))
    task = ScheduledTask(
        id=task_id,
        resource_id=task_id,
        title=title.strip(),
        type=task_type,
        original_topic=topic,
        duration_minutes=duration_minutes,
        order=len(daily.tasks),
        is_optional=True,
        **{k: v for k, v in metrics.items() if v is not None},
    )
    return _replace_day(plan, date, lambda d: replace(d, tasks=[*d.tasks, task]))


def replace_day_tasks(plan: StudyPlan, date: str, new_tasks: list[ScheduledTask]) -> StudyPlan:
    """Swap in a hand-edited task list for one day and flag the day as modified.

    Task order is renumbered to match list position. Downstream days are not
    touched here; the caller is expected to follow up with a standard rebalance.
    """
    seen = set()
    for task in new_tasks:
        if task.duration_minutes <= 0:
            raise ValidationError(f"Task {task.id} has non-positive duration")
        if task.id in seen:
            raise ValidationError(f"Duplicate task id {task.id}")
        seen.add(task.id)

    if plan.day(date) is None:
        logger.debug("No scheduled day %s; tasks not replaced", date)
        return plan
    tasks = _renumber(list(new_tasks))
    return _replace_day(plan, date, lambda d: replace(d, tasks=tasks, is_manually_modified=True))


def master_reset(plan: StudyPlan) -> StudyPlan:
    """Mark every task pending. Logged study time is kept."""
    schedule = [
        replace(d, tasks=[replace(t, status=STATUS_PENDING) for t in d.tasks])
        for d in plan.schedule
    ]
    return replace(plan, schedule=schedule)


def log_study_time(plan: StudyPlan, task_id: str, minutes: int) -> StudyPlan:
    """Add minutes to a task's accumulated study time, looked up by id only."""
    if not isinstance(minutes, int) or minutes <= 0:
        raise ValidationError(f"minutes must be a positive integer, got {minutes!r}")
    found = find_task(plan, task_id)
    if found is None:
        logger.debug("Task %s not found; study time not logged", task_id)
        return plan

    def add(day: DailySchedule) -> DailySchedule:
        tasks = [
            replace(t, actual_study_time_minutes=t.actual_study_time_minutes + minutes) if t.id == task_id else t
            for t in day.tasks
        ]
        return replace(day, tasks=tasks)

    return _replace_day(plan, found[0], add)


def reorder(items: list, from_index: int, to_index: int) -> list:
    """Move one element: remove it, then reinsert at `to_index`."""
    if not 0 <= from_index < len(items):
        raise ValidationError(f"from_index {from_index} out of range")
    if not 0 <= to_index < len(items):
        raise ValidationError(f"to_index {to_index} out of range")
    result = list(items)
    item = result.pop(from_index)
    result.insert(to_index, item)
    return result


def reorder_day_tasks(plan: StudyPlan, date: str, from_index: int, to_index: int) -> StudyPlan:
    daily = plan.day(date)
    if daily is None:
        return plan
    tasks = _renumber(reorder(daily.tasks, from_index, to_index))
    return _replace_day(plan, date, lambda d: replace(d, tasks=tasks))


def _check_topic_order(order: list[str]) -> list[str]:
    if len(set(order)) != len(order):
        raise ValidationError("Topic order must list each topic exactly once")
    return list(order)


def set_topic_order(plan: StudyPlan, order: list[str]) -> StudyPlan:
    return replace(plan, topic_order=_check_topic_order(order))


def set_cram_topic_order(plan: StudyPlan, order: list[str]) -> StudyPlan:
    return replace(plan, cram_topic_order=_check_topic_order(order))


def set_cram_mode(plan: StudyPlan, active: bool) -> StudyPlan:
    return replace(plan, is_cram_mode_active=bool(active))


def set_topic_interleaving(plan: StudyPlan, active: bool) -> StudyPlan:
    return replace(plan, are_special_topics_interleaved=bool(active))


def set_deadlines(plan: StudyPlan, deadlines: dict[str, str]) -> StudyPlan:
    for topic, deadline in deadlines.items():
        check_iso_date(deadline, f"deadline for {topic}")
        if not plan.contains_date(deadline):
            raise ValidationError(f"Deadline {deadline} for {topic} is outside the plan range")
    return replace(plan, deadlines=dict(deadlines))
