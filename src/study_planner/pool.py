"""Master resource pool: catalog edits and scheduled/unscheduled classification."""
import random
import string
import time
from dataclasses import replace

from study_planner.errors import ValidationError
from study_planner.models import DailySchedule, StudyPlan, StudyResource


def scheduled_resource_ids(schedule: list[DailySchedule]) -> set[str]:
    """Resource ids placed on any date; split parts count as their original resource.

    Recomputed from the schedule on every call.
    """
    return {task.source_resource_id for day in schedule for task in day.tasks}


def dates_for_resource(plan: StudyPlan, resource_id: str) -> list[str]:
    return [
        day.date for day in plan.schedule
        if any(t.source_resource_id == resource_id for t in day.tasks)
    ]


def first_date_for_resource(plan: StudyPlan, resource_id: str) -> str | None:
    dates = dates_for_resource(plan, resource_id)
    return dates[0] if dates else None


def classify_resources(pool: list[StudyResource], schedule: list[DailySchedule]) -> dict[str, list[StudyResource]]:
    scheduled_ids = scheduled_resource_ids(schedule)
    groups = {"scheduled": [], "unscheduled": [], "archived": []}
    for resource in pool:
        if resource.is_archived:
            groups["archived"].append(resource)
        elif resource.id in scheduled_ids:
            groups["scheduled"].append(resource)
        else:
            groups["unscheduled"].append(resource)
    return groups


def unscheduled_warnings(pool: list[StudyResource], schedule: list[DailySchedule]) -> list[str]:
    """One message per active primary resource that the schedule does not cover."""
    return [
        f"{r.title} ({r.domain}) is not scheduled"
        for r in classify_resources(pool, schedule)["unscheduled"]
        if r.is_primary_material
    ]


def _index_of(pool: list[StudyResource], resource_id: str) -> int:
    for i, resource in enumerate(pool):
        if resource.id == resource_id:
            return i
    return -1


def new_custom_resource(
    title: str,
    resource_type: str,
    domain: str,
    duration_minutes: int,
    **extra,
) -> StudyResource:
    """Create a user-authored resource with a fresh custom_ id."""
    if not title or not title.strip():
        raise ValidationError("Resource needs a title")
    if duration_minutes <= 0:
        raise ValidationError("Resource duration must be positive")
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    resource_id = f"custom_{int(time.time() * 1000)}_{suffix}"
    extra.pop("is_archived", None)
    return StudyResource(
        id=resource_id, title=title.strip(), type=resource_type, domain=domain,
        duration_minutes=duration_minutes, **extra,
    )


def add_resource(pool: list[StudyResource], resource: StudyResource) -> list[StudyResource]:
    if _index_of(pool, resource.id) >= 0:
        raise ValidationError(f"Resource {resource.id} already exists")
    return [*pool, resource]


def update_resource(pool: list[StudyResource], resource: StudyResource) -> list[StudyResource]:
    i = _index_of(pool, resource.id)
    if i < 0:
        return pool
    updated = list(pool)
    updated[i] = resource
    return updated


def _set_archived(pool: list[StudyResource], resource_id: str, archived: bool) -> list[StudyResource]:
    i = _index_of(pool, resource_id)
    if i < 0 or pool[i].is_archived == archived:
        return pool
    updated = list(pool)
    updated[i] = replace(pool[i], is_archived=archived)
    return updated


def archive_resource(pool: list[StudyResource], resource_id: str) -> list[StudyResource]:
    """Hide a resource from active pool views. Scheduled tasks are untouched."""
    return _set_archived(pool, resource_id, True)


def restore_resource(pool: list[StudyResource], resource_id: str) -> list[StudyResource]:
    return _set_archived(pool, resource_id, False)


def delete_resource(pool: list[StudyResource], resource_id: str) -> list[StudyResource]:
    if _index_of(pool, resource_id) < 0:
        return pool
    return [r for r in pool if r.id != resource_id]
