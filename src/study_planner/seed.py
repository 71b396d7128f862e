"""Seed the database with the master resource pool and an empty plan skeleton."""
import json
import logging
from pathlib import Path

from study_planner.codec import check_iso_date, resource_from_dict
from study_planner.config import PlannerConfig
from study_planner.constants import DEFAULT_TOPIC_ORDER
from study_planner.db import load_plan, save_plan, save_resources
from study_planner.errors import ValidationError
from study_planner.models import DailySchedule, ExceptionDateRule, StudyPlan, StudyResource
from study_planner.rules import iter_dates, resolve_day_policy

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"


def default_exception_rules() -> list[ExceptionDateRule]:
    """No calendar exceptions until the user adds some."""
    return []


def load_seed_resources() -> list[StudyResource]:
    """Load the master resource pool from resources.json."""
    data = json.loads((CONTENT_DIR / "resources.json").read_text())
    return [resource_from_dict(doc) for doc in data["resources"]]


def build_plan_skeleton(
    start: str,
    end: str,
    rules: list[ExceptionDateRule] | None = None,
    topic_order: list[str] | None = None,
    config: PlannerConfig | None = None,
) -> StudyPlan:
    """One empty day per date in range, with rest/capacity from the rules."""
    check_iso_date(start, "start date")
    check_iso_date(end, "end date")
    if end < start:
        raise ValidationError(f"End date {end} is before start date {start}")
    rule_map = {r.date: r for r in (rules or []) if start <= r.date <= end}
    schedule = []
    for day in iter_dates(start, end):
        policy = resolve_day_policy(rule_map, day, config)
        schedule.append(DailySchedule(
            date=day, is_rest_day=policy.is_rest_day, total_study_time_minutes=policy.target_minutes,
        ))
    order = list(topic_order or DEFAULT_TOPIC_ORDER)
    return StudyPlan(
        start_date=start,
        end_date=end,
        schedule=schedule,
        topic_order=order,
        cram_topic_order=list(order),
        exception_rules=rule_map,
    )


def is_seeded(db_path: str, user_id: str) -> bool:
    """Check whether a plan has already been stored for this user."""
    return load_plan(db_path, user_id) is not None


def seed_all(db_path: str, user_id: str, start: str, end: str, config: PlannerConfig | None = None) -> None:
    """Store the seed resource pool and an empty plan. Does nothing if already seeded."""
    if is_seeded(db_path, user_id):
        return
    resources = load_seed_resources()
    plan = build_plan_skeleton(start, end, default_exception_rules(), config=config)
    save_resources(db_path, user_id, resources)
    save_plan(db_path, user_id, plan)
    logger.info("Seeded %d resources and a %d-day plan for %s", len(resources), len(plan.schedule), user_id)
