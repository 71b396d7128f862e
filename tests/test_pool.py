"""Tests for resource pool classification and edits."""
from dataclasses import replace

import pytest

from study_planner.errors import ValidationError
from study_planner.models import DailySchedule
from study_planner.mutations import toggle_task_status
from study_planner.pool import (
    add_resource, archive_resource, classify_resources, dates_for_resource, delete_resource,
    first_date_for_resource, new_custom_resource, restore_resource, scheduled_resource_ids,
    unscheduled_warnings, update_resource,
)


def test_split_parts_count_once(task_factory):
    day = DailySchedule(date="2024-01-01", tasks=[
        task_factory("a", "phys_002", "Physics", 30),
        task_factory("b", "phys_002_part_2", "Physics", 30, 1, original_resource_id="phys_002"),
    ])
    assert scheduled_resource_ids([day]) == {"phys_002"}


def test_scheduled_ids_follow_schedule(seven_day_plan):
    ids = scheduled_resource_ids(seven_day_plan.schedule)
    assert ids == {"phys_001", "phys_002", "breast_001", "gi_001"}
    seven_day_plan.day("2024-01-03").tasks.clear()
    assert "gi_001" not in scheduled_resource_ids(seven_day_plan.schedule)


def test_classify_resources(seven_day_plan, resources):
    resources = archive_resource(resources, "nis_001")
    groups = classify_resources(resources, seven_day_plan.schedule)
    assert [r.id for r in groups["scheduled"]] == ["phys_001", "phys_002", "breast_001", "gi_001"]
    assert [r.id for r in groups["unscheduled"]] == ["thor_001"]
    assert [r.id for r in groups["archived"]] == ["nis_001"]


def test_archiving_leaves_completed_task_alone(seven_day_plan, resources):
    plan = toggle_task_status(seven_day_plan, "2024-01-03", "t5")
    before = plan.day("2024-01-03")
    pool = archive_resource(resources, "gi_001")
    assert plan.day("2024-01-03") == before
    assert before.tasks[0].status == "completed"
    groups = classify_resources(pool, plan.schedule)
    assert "gi_001" not in [r.id for r in groups["scheduled"] + groups["unscheduled"]]
    assert "gi_001" in [r.id for r in groups["archived"]]


def test_unscheduled_warnings_only_primary(seven_day_plan, resources):
    warnings = unscheduled_warnings(resources, seven_day_plan.schedule)
    assert warnings == ["Lung Patterns (Thoracic Imaging) is not scheduled"]


def test_dates_for_resource(seven_day_plan):
    assert dates_for_resource(seven_day_plan, "phys_002") == ["2024-01-01", "2024-01-02"]
    assert first_date_for_resource(seven_day_plan, "phys_002") == "2024-01-01"
    assert first_date_for_resource(seven_day_plan, "thor_001") is None


def test_new_custom_resource():
    resource = new_custom_resource("My notes", "Personal Notes", "Physics", 20, is_archived=True)
    assert resource.id.startswith("custom_")
    assert resource.is_archived is False
    with pytest.raises(ValidationError):
        new_custom_resource(" ", "Personal Notes", "Physics", 20)


def test_add_update_delete(resources):
    custom = new_custom_resource("My notes", "Personal Notes", "Physics", 20)
    pool = add_resource(resources, custom)
    assert pool[-1] is custom
    with pytest.raises(ValidationError):
        add_resource(pool, custom)

    pool = update_resource(pool, replace(custom, duration_minutes=45))
    assert pool[-1].duration_minutes == 45

    pool = delete_resource(pool, custom.id)
    assert custom.id not in [r.id for r in pool]


def test_noop_edits_return_same_list(resources):
    assert delete_resource(resources, "missing") is resources
    assert restore_resource(resources, "phys_001") is resources
    archived = archive_resource(resources, "phys_001")
    assert archive_resource(archived, "phys_001") is archived
    assert restore_resource(archived, "phys_001")[0].is_archived is False
