"""Conversion between model objects and persisted/wire documents.

Documents use camelCase keys. Optional metrics that are unset are left out
of the document instead of being written as null, so a plan read back from
storage compares equal to the plan that was written.
"""
from dataclasses import asdict
from datetime import date

from study_planner.constants import TASK_STATUSES
from study_planner.errors import ValidationError
from study_planner.models import (
    DailySchedule, ExceptionDateRule, ScheduledTask, StudyPlan, StudyResource,
)

_OPTIONAL_TASK_FIELDS = (
    ("pages", "pages"),
    ("case_count", "caseCount"),
    ("question_count", "questionCount"),
    ("chapter_number", "chapterNumber"),
    ("book_source", "bookSource"),
    ("video_source", "videoSource"),
    ("original_resource_id", "originalResourceId"),
)

_OPTIONAL_RESOURCE_FIELDS = (
    ("sequence_order", "sequenceOrder"),
    ("pages", "pages"),
    ("case_count", "caseCount"),
    ("question_count", "questionCount"),
    ("chapter_number", "chapterNumber"),
    ("book_source", "bookSource"),
    ("video_source", "videoSource"),
)


def check_iso_date(value, what: str = "date") -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{what} must be an ISO date string, got {value!r}")
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"{what} is not a valid ISO date: {value!r}") from e
    return value


def _require(doc: dict, key: str, where: str):
    if not isinstance(doc, dict):
        raise ValidationError(f"{where} must be an object")
    if key not in doc:
        raise ValidationError(f"{where} is missing required field '{key}'")
    return doc[key]


def _put_optional(out: dict, obj, fields) -> None:
    for attr, key in fields:
        value = getattr(obj, attr)
        if value is not None:
            out[key] = value


def task_to_dict(task: ScheduledTask) -> dict:
    out = {
        "id": task.id,
        "resourceId": task.resource_id,
        "title": task.title,
        "type": task.type,
        "originalTopic": task.original_topic,
        "durationMinutes": task.duration_minutes,
        "status": task.status,
        "order": task.order,
        "isOptional": task.is_optional,
        "isPrimaryMaterial": task.is_primary_material,
        "actualStudyTimeMinutes": task.actual_study_time_minutes,
    }
    _put_optional(out, task, _OPTIONAL_TASK_FIELDS)
    return out


def task_from_dict(doc: dict) -> ScheduledTask:
    status = doc.get("status", "pending")
    if status not in TASK_STATUSES:
        raise ValidationError(f"task status must be one of {TASK_STATUSES}, got {status!r}")
    task = ScheduledTask(
        id=_require(doc, "id", "task"),
        resource_id=_require(doc, "resourceId", "task"),
        title=_require(doc, "title", "task"),
        type=_require(doc, "type", "task"),
        original_topic=_require(doc, "originalTopic", "task"),
        duration_minutes=_require(doc, "durationMinutes", "task"),
        status=status,
        order=doc.get("order", 0),
        is_optional=bool(doc.get("isOptional", False)),
        is_primary_material=bool(doc.get("isPrimaryMaterial", False)),
        actual_study_time_minutes=doc.get("actualStudyTimeMinutes") or 0,
    )
    for attr, key in _OPTIONAL_TASK_FIELDS:
        if doc.get(key) is not None:
            setattr(task, attr, doc[key])
    return task


def day_to_dict(day: DailySchedule) -> dict:
    return {
        "date": day.date,
        "tasks": [task_to_dict(t) for t in day.tasks],
        "totalStudyTimeMinutes": day.total_study_time_minutes,
        "isRestDay": day.is_rest_day,
        "isManuallyModified": day.is_manually_modified,
    }


def day_from_dict(doc: dict) -> DailySchedule:
    return DailySchedule(
        date=check_iso_date(_require(doc, "date", "day"), "day date"),
        tasks=[task_from_dict(t) for t in doc.get("tasks", [])],
        total_study_time_minutes=doc.get("totalStudyTimeMinutes", 0),
        is_rest_day=bool(doc.get("isRestDay", False)),
        is_manually_modified=bool(doc.get("isManuallyModified", False)),
    )


def rule_to_dict(rule: ExceptionDateRule) -> dict:
    return {
        "date": rule.date,
        "dayType": rule.day_type,
        "isRestDayOverride": rule.is_rest_day_override,
        "targetMinutes": rule.target_minutes,
    }


def rule_from_dict(doc: dict) -> ExceptionDateRule:
    return ExceptionDateRule(
        date=check_iso_date(_require(doc, "date", "exception rule"), "rule date"),
        day_type=_require(doc, "dayType", "exception rule"),
        is_rest_day_override=bool(doc.get("isRestDayOverride", False)),
        target_minutes=doc.get("targetMinutes") or 0,
    )


def plan_to_dict(plan: StudyPlan) -> dict:
    return {
        "startDate": plan.start_date,
        "endDate": plan.end_date,
        "schedule": [day_to_dict(d) for d in plan.schedule],
        "topicOrder": list(plan.topic_order),
        "cramTopicOrder": list(plan.cram_topic_order),
        "isCramModeActive": plan.is_cram_mode_active,
        "areSpecialTopicsInterleaved": plan.are_special_topics_interleaved,
        "deadlines": dict(plan.deadlines),
        "exceptionRules": [rule_to_dict(r) for r in plan.exception_rules.values()],
        "firstPassEndDate": plan.first_pass_end_date,
    }


def plan_from_dict(doc: dict) -> StudyPlan:
    rules = [rule_from_dict(r) for r in doc.get("exceptionRules", [])]
    return StudyPlan(
        start_date=check_iso_date(_require(doc, "startDate", "plan"), "startDate"),
        end_date=check_iso_date(_require(doc, "endDate", "plan"), "endDate"),
        schedule=[day_from_dict(d) for d in doc.get("schedule", [])],
        topic_order=list(doc.get("topicOrder", [])),
        cram_topic_order=list(doc.get("cramTopicOrder", [])),
        is_cram_mode_active=bool(doc.get("isCramModeActive", False)),
        are_special_topics_interleaved=bool(doc.get("areSpecialTopicsInterleaved", True)),
        deadlines=dict(doc.get("deadlines", {})),
        exception_rules={r.date: r for r in rules},
        first_pass_end_date=doc.get("firstPassEndDate"),
    )


def resource_to_dict(resource: StudyResource) -> dict:
    out = {
        "id": resource.id,
        "title": resource.title,
        "type": resource.type,
        "domain": resource.domain,
        "durationMinutes": resource.duration_minutes,
        "isPrimaryMaterial": resource.is_primary_material,
        "isSplittable": resource.is_splittable,
        "isArchived": resource.is_archived,
        "isOptional": resource.is_optional,
        "pairedResourceIds": list(resource.paired_resource_ids),
    }
    _put_optional(out, resource, _OPTIONAL_RESOURCE_FIELDS)
    return out


def resource_from_dict(doc: dict) -> StudyResource:
    resource = StudyResource(
        id=_require(doc, "id", "resource"),
        title=_require(doc, "title", "resource"),
        type=_require(doc, "type", "resource"),
        domain=_require(doc, "domain", "resource"),
        duration_minutes=doc.get("durationMinutes") or 0,
        is_primary_material=bool(doc.get("isPrimaryMaterial", True)),
        is_splittable=bool(doc.get("isSplittable", True)),
        is_archived=bool(doc.get("isArchived", False)),
        is_optional=bool(doc.get("isOptional", False)),
        paired_resource_ids=list(doc.get("pairedResourceIds") or []),
    )
    for attr, key in _OPTIONAL_RESOURCE_FIELDS:
        if doc.get(key) is not None:
            setattr(resource, attr, doc[key])
    return resource


def options_to_dict(options) -> dict:
    """Flatten a rebalance option variant into the solver's camelCase shape."""
    raw = asdict(options)
    out = {"type": raw.pop("type")}
    for key, value in raw.items():
        head, *rest = key.split("_")
        camel = head + "".join(part.title() for part in rest)
        out[camel] = list(value) if isinstance(value, tuple) else value
    return out
