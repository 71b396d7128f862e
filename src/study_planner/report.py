"""Read-only progress and schedule reports."""
from dataclasses import dataclass, field

from study_planner.constants import STATUS_COMPLETED
from study_planner.errors import ValidationError
from study_planner.models import DailySchedule, StudyPlan, StudyResource
from study_planner.pool import classify_resources

RESOURCE_FILTERS = ("all", "scheduled", "unscheduled", "archived")
RESOURCE_SORTS = ("sequence", "title", "domain", "duration")


def format_duration(minutes: int) -> str:
    hours, mins = divmod(max(minutes, 0), 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"


def get_progress_color(percent: float) -> str:
    if percent >= 80:
        return "green"
    elif percent >= 50:
        return "yellow"
    elif percent >= 25:
        return "dark_orange"
    return "red"


def _percent(done: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(done / total * 100, 1)


def progress_summary(plan: StudyPlan) -> dict:
    """Completed vs. scheduled minutes, overall and per topic."""
    by_topic: dict[str, dict] = {}
    for day in plan.schedule:
        for task in day.tasks:
            entry = by_topic.setdefault(task.original_topic, {"completed": 0, "total": 0})
            entry["total"] += task.duration_minutes
            if task.status == STATUS_COMPLETED:
                entry["completed"] += task.duration_minutes
    for entry in by_topic.values():
        entry["percent"] = _percent(entry["completed"], entry["total"])

    completed = sum(e["completed"] for e in by_topic.values())
    total = sum(e["total"] for e in by_topic.values())
    return {
        "completed_minutes": completed,
        "total_minutes": total,
        "percent": _percent(completed, total),
        "by_topic": by_topic,
    }


def schedule_slice(plan: StudyPlan, start: str | None = None, end: str | None = None) -> list[DailySchedule]:
    start = start or plan.start_date
    end = end or plan.end_date
    if end < start:
        raise ValidationError(f"Report end {end} is before start {start}")
    return [d for d in plan.schedule if start <= d.date <= end]


def resource_slice(
    pool: list[StudyResource],
    schedule: list[DailySchedule],
    resource_filter: str = "all",
    sort_by: str = "sequence",
) -> list[StudyResource]:
    if resource_filter not in RESOURCE_FILTERS:
        raise ValidationError(f"Unknown resource filter {resource_filter!r}")
    if sort_by not in RESOURCE_SORTS:
        raise ValidationError(f"Unknown sort key {sort_by!r}")

    if resource_filter == "all":
        selected = list(pool)
    else:
        selected = classify_resources(pool, schedule)[resource_filter]

    if sort_by == "title":
        return sorted(selected, key=lambda r: r.title.lower())
    if sort_by == "domain":
        return sorted(selected, key=lambda r: (r.domain, r.title.lower()))
    if sort_by == "duration":
        return sorted(selected, key=lambda r: r.duration_minutes, reverse=True)
    # Resources without a sequence number go last, in pool order.
    return sorted(selected, key=lambda r: (r.sequence_order is None, r.sequence_order or 0))


@dataclass(frozen=True)
class ReportSnapshot:
    start_date: str
    end_date: str
    days: tuple[DailySchedule, ...]
    resources: tuple[StudyResource, ...]
    progress: dict = field(default_factory=dict)

    @property
    def scheduled_minutes(self) -> int:
        return sum(t.duration_minutes for d in self.days for t in d.tasks)

    @property
    def rest_days(self) -> int:
        return sum(1 for d in self.days if d.is_rest_day)


def build_report(
    plan: StudyPlan,
    pool: list[StudyResource],
    start: str | None = None,
    end: str | None = None,
    resource_filter: str = "all",
    sort_by: str = "sequence",
) -> ReportSnapshot:
    days = schedule_slice(plan, start, end)
    return ReportSnapshot(
        start_date=start or plan.start_date,
        end_date=end or plan.end_date,
        days=tuple(days),
        resources=tuple(resource_slice(pool, plan.schedule, resource_filter, sort_by)),
        progress=progress_summary(plan),
    )
