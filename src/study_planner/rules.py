"""Calendar exception rules and per-date day policy resolution."""
import logging
from dataclasses import replace
from datetime import date, timedelta

from study_planner.codec import check_iso_date
from study_planner.config import PlannerConfig
from study_planner.constants import (
    DAY_TYPE_EXCEPTION, DAY_TYPE_HIGH_CAPACITY, DAY_TYPE_SPECIFIC_REST, DAY_TYPE_WEEKDAY_MOONLIGHTING,
    DAY_TYPE_WEEKEND_MOONLIGHTING, DAY_TYPE_WORKDAY, DAY_TYPES, EXCEPTION_FREE_DAY, EXCEPTION_KINDS,
)
from study_planner.errors import ValidationError
from study_planner.models import DayPolicy, ExceptionDateRule, StudyPlan

logger = logging.getLogger(__name__)


def default_policy(day: str, config: PlannerConfig | None = None) -> DayPolicy:
    """Capacity for a date with no rule: weekends get the high-capacity budget."""
    config = config or PlannerConfig()
    if date.fromisoformat(day).weekday() >= 5:
        return DayPolicy(is_rest_day=False, target_minutes=config.weekend_minutes, day_type=DAY_TYPE_HIGH_CAPACITY)
    return DayPolicy(is_rest_day=False, target_minutes=config.workday_minutes, day_type=DAY_TYPE_WORKDAY)


def resolve_day_policy(
    rules: dict[str, ExceptionDateRule],
    day: str,
    config: PlannerConfig | None = None,
) -> DayPolicy:
    """Effective policy for `day`.

    A rule for the date fully determines the result; its rest override wins
    over any weekday/weekend default. Unknown dates get the default policy.
    """
    rule = rules.get(day)
    if rule is None:
        return default_policy(day, config)
    target = 0 if rule.is_rest_day_override else rule.target_minutes
    return DayPolicy(is_rest_day=rule.is_rest_day_override, target_minutes=target, day_type=rule.day_type)


def resolve_all(plan: StudyPlan, config: PlannerConfig | None = None) -> dict[str, DayPolicy]:
    return {
        d: resolve_day_policy(plan.exception_rules, d, config)
        for d in iter_dates(plan.start_date, plan.end_date)
    }


def iter_dates(start: str, end: str):
    current = date.fromisoformat(start)
    last = date.fromisoformat(end)
    while current <= last:
        yield current.isoformat()
        current += timedelta(days=1)


def validate_rule(rule: ExceptionDateRule) -> None:
    check_iso_date(rule.date, "rule date")
    if rule.day_type not in DAY_TYPES:
        raise ValidationError(f"dayType must be one of {DAY_TYPES}, got {rule.day_type!r}")
    if rule.target_minutes < 0:
        raise ValidationError("targetMinutes must be non-negative")


def add_exception_rule(
    plan: StudyPlan,
    rule: ExceptionDateRule,
    config: PlannerConfig | None = None,
) -> StudyPlan:
    """Insert or fully replace the rule for `rule.date`.

    The matching day (if scheduled) picks up the new rest flag and capacity;
    every other day is left as is.
    """
    validate_rule(rule)
    if not plan.contains_date(rule.date):
        raise ValidationError(f"{rule.date} is outside the plan range {plan.start_date}..{plan.end_date}")

    rules = dict(plan.exception_rules)
    rules[rule.date] = rule
    policy = resolve_day_policy(rules, rule.date, config)
    schedule = [
        replace(d, is_rest_day=policy.is_rest_day, total_study_time_minutes=policy.target_minutes)
        if d.date == rule.date else d
        for d in plan.schedule
    ]
    logger.debug("Exception rule %s for %s (%s min)", rule.day_type, rule.date, policy.target_minutes)
    return replace(plan, exception_rules=rules, schedule=schedule)


def make_rule(kind: str, day: str, config: PlannerConfig | None = None) -> ExceptionDateRule:
    """Build the rule for one of the user-facing exception kinds."""
    config = config or PlannerConfig()
    if kind == EXCEPTION_FREE_DAY:
        return ExceptionDateRule(date=day, day_type=DAY_TYPE_SPECIFIC_REST, is_rest_day_override=True, target_minutes=0)
    if kind == DAY_TYPE_WEEKDAY_MOONLIGHTING:
        return ExceptionDateRule(
            date=day, day_type=DAY_TYPE_WEEKDAY_MOONLIGHTING,
            target_minutes=config.weekday_moonlighting_minutes,
        )
    if kind == DAY_TYPE_WEEKEND_MOONLIGHTING:
        return ExceptionDateRule(
            date=day, day_type=DAY_TYPE_WEEKEND_MOONLIGHTING,
            target_minutes=config.weekend_moonlighting_minutes,
        )
    raise ValidationError(f"Unknown exception kind {kind!r}; expected one of {EXCEPTION_KINDS}")


def rest_day_toggle_rule(day: str, make_rest: bool, config: PlannerConfig | None = None) -> ExceptionDateRule:
    """Rule that turns `day` into a rest day or back into a default study day."""
    if make_rest:
        return ExceptionDateRule(date=day, day_type=DAY_TYPE_SPECIFIC_REST, is_rest_day_override=True)
    minutes = default_policy(day, config).target_minutes
    return ExceptionDateRule(date=day, day_type=DAY_TYPE_EXCEPTION, target_minutes=minutes)


def day_time_rule(day: str, minutes: int) -> ExceptionDateRule:
    if minutes < 0:
        raise ValidationError("minutes must be non-negative")
    return ExceptionDateRule(
        date=day, day_type=DAY_TYPE_EXCEPTION, is_rest_day_override=minutes == 0, target_minutes=minutes,
    )
