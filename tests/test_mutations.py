"""Tests for pure plan mutations."""
import pytest

from study_planner.errors import ValidationError
from study_planner.mutations import (
    add_optional_task, find_task, log_study_time, master_reset, reorder, reorder_day_tasks,
    replace_day_tasks, set_cram_mode, set_deadlines, set_topic_order, toggle_task_status,
)


def test_toggle_flips_status(seven_day_plan):
    plan = toggle_task_status(seven_day_plan, "2024-01-01", "t1")
    assert plan.day("2024-01-01").tasks[0].status == "completed"
    assert seven_day_plan.day("2024-01-01").tasks[0].status == "pending"


def test_toggle_twice_is_round_trip(seven_day_plan):
    seven_day_plan = log_study_time(seven_day_plan, "t1", 25)
    plan = toggle_task_status(toggle_task_status(seven_day_plan, "2024-01-01", "t1"), "2024-01-01", "t1")
    assert plan == seven_day_plan
    assert plan.day("2024-01-01").tasks[0].actual_study_time_minutes == 25


def test_toggle_unknown_task_returns_same_plan(seven_day_plan):
    assert toggle_task_status(seven_day_plan, "2024-01-01", "nope") is seven_day_plan
    assert toggle_task_status(seven_day_plan, "2024-01-02", "t1") is seven_day_plan
    assert toggle_task_status(seven_day_plan, "2025-01-01", "t1") is seven_day_plan


def test_add_optional_task_appends(seven_day_plan):
    plan = add_optional_task(seven_day_plan, "2024-01-01", "Extra cases", 30, "Physics", "Case Review",
                             case_count=10)
    tasks = plan.day("2024-01-01").tasks
    assert len(tasks) == 3
    added = tasks[-1]
    assert added.order == 2
    assert added.is_optional is True
    assert added.status == "pending"
    assert added.case_count == 10
    assert added.id.startswith("optional_")


def test_add_optional_task_validates(seven_day_plan):
    with pytest.raises(ValidationError):
        add_optional_task(seven_day_plan, "2024-01-01", "", 30, "Physics", "Case Review")
    with pytest.raises(ValidationError):
        add_optional_task(seven_day_plan, "2024-01-01", "x", 0, "Physics", "Case Review")
    with pytest.raises(ValidationError):
        add_optional_task(seven_day_plan, "2024-01-01", "x", 10, "Physics", "Case Review", colour="red")


def test_add_optional_task_missing_date_is_noop(seven_day_plan):
    plan = add_optional_task(seven_day_plan, "2024-02-01", "x", 10, "Physics", "Case Review")
    assert plan is seven_day_plan


def test_replace_day_flags_only_that_day(seven_day_plan, task_factory):
    new_tasks = [task_factory("n2", "breast_001", "Breast Imaging", 30, 5),
                 task_factory("n1", "phys_001", "Physics", 45, 9)]
    plan = replace_day_tasks(seven_day_plan, "2024-01-02", new_tasks)
    day = plan.day("2024-01-02")
    assert day.is_manually_modified is True
    assert [t.id for t in day.tasks] == ["n2", "n1"]
    assert [t.order for t in day.tasks] == [0, 1]
    for other in plan.schedule:
        if other.date != "2024-01-02":
            assert other.is_manually_modified is False
            assert other == seven_day_plan.day(other.date)


def test_replace_day_rejects_bad_tasks(seven_day_plan, task_factory):
    with pytest.raises(ValidationError):
        replace_day_tasks(seven_day_plan, "2024-01-02", [task_factory("a", "r", "Physics", 0)])
    dup = task_factory("a", "r", "Physics", 10)
    with pytest.raises(ValidationError):
        replace_day_tasks(seven_day_plan, "2024-01-02", [dup, dup])


def test_master_reset_keeps_study_time(seven_day_plan):
    plan = toggle_task_status(seven_day_plan, "2024-01-01", "t1")
    plan = toggle_task_status(plan, "2024-01-03", "t5")
    plan = log_study_time(plan, "t5", 40)
    reset = master_reset(plan)
    tasks = [t for d in reset.schedule for t in d.tasks]
    assert all(t.status == "pending" for t in tasks)
    assert find_task(reset, "t5")[1].actual_study_time_minutes == 40


def test_log_study_time_accumulates(seven_day_plan):
    plan = log_study_time(log_study_time(seven_day_plan, "t4", 10), "t4", 15)
    assert find_task(plan, "t4")[1].actual_study_time_minutes == 25


def test_log_study_time_validates(seven_day_plan):
    with pytest.raises(ValidationError):
        log_study_time(seven_day_plan, "t4", 0)
    assert log_study_time(seven_day_plan, "missing", 10) is seven_day_plan


def test_reorder_remove_then_insert():
    assert reorder(["a", "b", "c", "d"], 0, 2) == ["b", "c", "a", "d"]
    assert reorder(["a", "b", "c", "d"], 3, 0) == ["d", "a", "b", "c"]
    with pytest.raises(ValidationError):
        reorder(["a"], 0, 1)


def test_reorder_day_tasks_renumbers(seven_day_plan):
    plan = reorder_day_tasks(seven_day_plan, "2024-01-01", 1, 0)
    assert [(t.id, t.order) for t in plan.day("2024-01-01").tasks] == [("t2", 0), ("t1", 1)]


def test_topic_order_rejects_duplicates(seven_day_plan):
    with pytest.raises(ValidationError):
        set_topic_order(seven_day_plan, ["Physics", "Physics"])
    plan = set_topic_order(seven_day_plan, ["GI Imaging", "Physics", "Breast Imaging"])
    assert plan.topic_order[0] == "GI Imaging"


def test_set_deadlines_validates_range(seven_day_plan):
    plan = set_deadlines(seven_day_plan, {"Physics": "2024-01-05"})
    assert plan.deadlines == {"Physics": "2024-01-05"}
    with pytest.raises(ValidationError):
        set_deadlines(seven_day_plan, {"Physics": "2024-02-05"})
    with pytest.raises(ValidationError):
        set_deadlines(seven_day_plan, {"Physics": "soon"})


def test_set_cram_mode(seven_day_plan):
    assert set_cram_mode(seven_day_plan, True).is_cram_mode_active is True
