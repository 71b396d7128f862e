import pytest

from study_planner.db import init_db, load_plan, load_resources
from study_planner.errors import ValidationError
from study_planner.models import ExceptionDateRule
from study_planner.seed import build_plan_skeleton, is_seeded, load_seed_resources, seed_all


def test_load_seed_resources():
    resources = load_seed_resources()
    assert len(resources) >= 10
    ids = [r.id for r in resources]
    assert "phys_002" in ids
    assert len(ids) == len(set(ids))
    assert all(r.duration_minutes > 0 for r in resources)


def test_build_plan_skeleton():
    rules = [ExceptionDateRule(date="2024-01-03", day_type="specific-rest", is_rest_day_override=True),
             ExceptionDateRule(date="2024-02-03", day_type="specific-rest", is_rest_day_override=True)]
    plan = build_plan_skeleton("2024-01-01", "2024-01-07", rules)
    assert [d.date for d in plan.schedule][0] == "2024-01-01"
    assert len(plan.schedule) == 7
    assert plan.day("2024-01-03").is_rest_day is True
    assert plan.day("2024-01-03").total_study_time_minutes == 0
    assert plan.day("2024-01-06").total_study_time_minutes == 420
    assert list(plan.exception_rules) == ["2024-01-03"]
    assert plan.topic_order[0] == "Physics"
    assert plan.cram_topic_order == plan.topic_order


def test_build_plan_skeleton_rejects_reversed_range():
    with pytest.raises(ValidationError):
        build_plan_skeleton("2024-01-07", "2024-01-01")


def test_is_seeded(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db, "default")
    seed_all(tmp_db, "default", "2024-01-01", "2024-01-31")
    assert is_seeded(tmp_db, "default")
    assert not is_seeded(tmp_db, "other")


def test_seed_all_is_idempotent(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db, "default", "2024-01-01", "2024-01-31")
    seed_all(tmp_db, "default", "2024-03-01", "2024-03-02")
    plan = load_plan(tmp_db, "default")
    assert plan.start_date == "2024-01-01"
    assert len(plan.schedule) == 31
    assert load_resources(tmp_db, "default") == load_seed_resources()
