import pytest

from study_planner.errors import ValidationError
from study_planner.mutations import toggle_task_status
from study_planner.pool import archive_resource
from study_planner.report import (
    build_report, format_duration, get_progress_color, progress_summary, resource_slice, schedule_slice,
)


def test_format_duration():
    assert format_duration(45) == "45m"
    assert format_duration(120) == "2h"
    assert format_duration(150) == "2h 30m"
    assert format_duration(0) == "0m"


def test_progress_color():
    assert get_progress_color(90) == "green"
    assert get_progress_color(60) == "yellow"
    assert get_progress_color(30) == "dark_orange"
    assert get_progress_color(10) == "red"


def test_progress_summary(seven_day_plan):
    plan = toggle_task_status(seven_day_plan, "2024-01-01", "t1")
    summary = progress_summary(plan)
    assert summary["total_minutes"] == 435
    assert summary["completed_minutes"] == 90
    physics = summary["by_topic"]["Physics"]
    assert physics == {"completed": 90, "total": 210, "percent": 42.9}


def test_progress_summary_no_tasks(seven_day_plan):
    for day in seven_day_plan.schedule:
        day.tasks.clear()
    assert progress_summary(seven_day_plan)["percent"] == 0.0


def test_schedule_slice(seven_day_plan):
    days = schedule_slice(seven_day_plan, "2024-01-02", "2024-01-04")
    assert [d.date for d in days] == ["2024-01-02", "2024-01-03", "2024-01-04"]
    assert len(schedule_slice(seven_day_plan)) == 7
    with pytest.raises(ValidationError):
        schedule_slice(seven_day_plan, "2024-01-04", "2024-01-02")


def test_resource_slice_filters_and_sorts(seven_day_plan, resources):
    pool = archive_resource(resources, "phys_001")
    unscheduled = resource_slice(pool, seven_day_plan.schedule, "unscheduled", "title")
    assert [r.id for r in unscheduled] == ["thor_001", "nis_001"]
    by_duration = resource_slice(pool, seven_day_plan.schedule, "scheduled", "duration")
    assert [r.id for r in by_duration] == ["gi_001", "phys_002", "breast_001"]
    archived = resource_slice(pool, seven_day_plan.schedule, "archived")
    assert [r.id for r in archived] == ["phys_001"]
    everything = resource_slice(pool, seven_day_plan.schedule)
    assert everything[-1].id == "nis_001"


def test_resource_slice_rejects_unknown_options(seven_day_plan, resources):
    with pytest.raises(ValidationError):
        resource_slice(resources, seven_day_plan.schedule, "favourites")
    with pytest.raises(ValidationError):
        resource_slice(resources, seven_day_plan.schedule, sort_by="colour")


def test_build_report(seven_day_plan, resources):
    report = build_report(seven_day_plan, resources, "2024-01-01", "2024-01-02")
    assert report.start_date == "2024-01-01"
    assert len(report.days) == 2
    assert report.scheduled_minutes == 285
    assert report.rest_days == 0
    assert len(report.resources) == len(resources)
    assert report.progress["total_minutes"] == 435
