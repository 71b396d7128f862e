"""Client side of the remote schedule solver.

The solver is a black box: it receives the resource pool and the plan's
constraints, runs for a while, and hands back a complete schedule. Two
response shapes are accepted: a ready `schedule` (list of day documents) or
raw `slots` (one row per placed resource) that are laid out here.
"""
import asyncio
import http.client
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib import error, request

from study_planner.codec import (
    day_from_dict, options_to_dict, plan_to_dict, resource_from_dict, resource_to_dict, rule_from_dict,
)
from study_planner.constants import (
    SOLVER_HTTP_TIMEOUT_SECONDS, SOLVER_MAX_POLL_ATTEMPTS, SOLVER_POLL_INTERVAL_SECONDS,
)
from study_planner.errors import SolverError, SolverResponseError, SolverTimeoutError, ValidationError
from study_planner.models import (
    DailySchedule, ExceptionDateRule, ScheduledTask, StudyPlan, StudyResource,
)
from study_planner.rules import iter_dates

logger = logging.getLogger(__name__)

SPLIT_MARKER = "_part_"


@dataclass
class SolverResult:
    schedule: list[DailySchedule]
    first_pass_end_date: Optional[str] = None
    notifications: list[dict] = field(default_factory=list)


class Solver(Protocol):
    async def solve(self, payload: dict) -> SolverResult:
        ...


def build_solver_request(plan: StudyPlan, resources: list[StudyResource], options) -> dict:
    """Everything the solver needs to regenerate the horizon, as a JSON-ready dict."""
    doc = plan_to_dict(plan)
    return {
        "startDate": plan.start_date,
        "endDate": plan.end_date,
        "resources": [resource_to_dict(r) for r in resources if not r.is_archived],
        "topicOrder": doc["topicOrder"],
        "cramTopicOrder": doc["cramTopicOrder"],
        "deadlines": doc["deadlines"],
        "isCramModeActive": plan.is_cram_mode_active,
        "areSpecialTopicsInterleaved": plan.are_special_topics_interleaved,
        "exceptionRules": doc["exceptionRules"],
        "completedTaskIds": [t.id for d in plan.schedule for t in d.tasks if t.status == "completed"],
        "options": options_to_dict(options),
    }


def validate_schedule(schedule: list[DailySchedule], start: str, end: str) -> None:
    previous = None
    for day in schedule:
        if not start <= day.date <= end:
            raise SolverResponseError(f"Solver returned {day.date}, outside {start}..{end}")
        if previous is not None and day.date <= previous:
            raise SolverResponseError(f"Solver schedule is not strictly sorted at {day.date}")
        previous = day.date


def slots_to_schedule(
    slots: list[dict],
    start: str,
    end: str,
    resources: list[StudyResource],
    rules: dict[str, ExceptionDateRule],
) -> list[DailySchedule]:
    """Lay solver slots out as one DailySchedule per date in range.

    Tasks are ordered by slot start minute; a day's total is the sum of its
    task durations. Slots for dates outside the range are dropped.
    """
    by_id = {r.id: r for r in resources}
    days = {}
    for d in iter_dates(start, end):
        rule = rules.get(d)
        days[d] = DailySchedule(date=d, is_rest_day=bool(rule and rule.is_rest_day_override))

    placed = []
    for slot in slots:
        day = days.get(slot.get("date"))
        if day is None:
            logger.debug("Dropping slot outside range: %s", slot.get("date"))
            continue
        resource_id = slot["resource_id"]
        original_id = resource_id.split(SPLIT_MARKER)[0] if SPLIT_MARKER in resource_id else None
        resource = by_id.get(resource_id) or by_id.get(original_id or "")
        duration = int(slot["end_minute"]) - int(slot["start_minute"])
        if duration <= 0:
            raise SolverResponseError(f"Slot for {resource_id} on {day.date} has no duration", slot)

        task_id = f"{day.date}-{resource_id}"
        existing = {t.id for t in day.tasks}
        n = 2
        while task_id in existing:
            task_id = f"{day.date}-{resource_id}-{n}"
            n += 1

        task = ScheduledTask(
            id=task_id,
            resource_id=resource_id,
            original_resource_id=original_id,
            title=resource.title if resource else slot.get("title", resource_id),
            type=resource.type if resource else slot.get("type", ""),
            original_topic=resource.domain if resource else slot.get("domain", ""),
            duration_minutes=duration,
            is_optional=resource.is_optional if resource else True,
            is_primary_material=resource.is_primary_material if resource else False,
        )
        if resource:
            task.pages = resource.pages
            task.case_count = resource.case_count
            task.question_count = resource.question_count
            task.chapter_number = resource.chapter_number
            task.book_source = resource.book_source
            task.video_source = resource.video_source
        day.tasks.append(task)
        placed.append((day, int(slot["start_minute"]), task))

    starts = {id(task): minute for _, minute, task in placed}
    for day in days.values():
        day.tasks.sort(key=lambda t: starts[id(t)])
        for i, task in enumerate(day.tasks):
            task.order = i
        day.total_study_time_minutes = sum(t.duration_minutes for t in day.tasks)
    return list(days.values())


def parse_solver_response(data: dict, payload: dict, resources: list[StudyResource],
                          rules: dict[str, ExceptionDateRule]) -> SolverResult:
    start, end = payload["startDate"], payload["endDate"]
    try:
        if "schedule" in data:
            schedule = [day_from_dict(d) for d in data["schedule"]]
        elif "slots" in data:
            schedule = slots_to_schedule(data["slots"] or [], start, end, resources, rules)
        else:
            raise SolverResponseError("Solver response has neither 'schedule' nor 'slots'", data)
    except (ValidationError, AttributeError, KeyError, TypeError, ValueError) as e:
        raise SolverResponseError(f"Malformed solver response: {e}", data) from e
    validate_schedule(schedule, start, end)
    return SolverResult(
        schedule=schedule,
        first_pass_end_date=data.get("firstPassEndDate"),
        notifications=list(data.get("notifications") or []),
    )


class HttpSolver:
    """Talks to the solver's run API: POST /api/solve, then poll /api/runs/<id>."""

    def __init__(
        self,
        base_url: str,
        timeout: float = SOLVER_HTTP_TIMEOUT_SECONDS,
        poll_interval: float = SOLVER_POLL_INTERVAL_SECONDS,
        max_attempts: int = SOLVER_MAX_POLL_ATTEMPTS,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    def _send(self, req: request.Request) -> dict:
        t0 = time.monotonic()
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:
                text = resp.read().decode("utf-8", errors="replace")
        except error.HTTPError as e:
            elapsed_ms = int((time.monotonic() - t0) * 1000)
            try:
                body_txt = e.read().decode("utf-8", errors="replace").strip()
            except OSError:
                body_txt = ""
            suffix = f" body={body_txt[:400]!r}" if body_txt else ""
            raise SolverError(f"Solver HTTP {e.code} after {elapsed_ms}ms.{suffix}") from e
        except error.URLError as e:
            elapsed_ms = int((time.monotonic() - t0) * 1000)
            raise SolverError(f"Solver connection error after {elapsed_ms}ms: {e}") from e
        except TimeoutError as e:
            raise SolverTimeoutError(f"Solver request timed out after {self.timeout}s") from e
        except (OSError, http.client.HTTPException) as e:
            elapsed_ms = int((time.monotonic() - t0) * 1000)
            raise SolverError(f"Solver transport error after {elapsed_ms}ms: {e!r}") from e

        if not text.strip():
            raise SolverResponseError("Solver returned an empty response")
        try:
            obj = json.loads(text)
        except json.JSONDecodeError as e:
            raise SolverResponseError(f"Solver returned invalid JSON: {e}", text) from e
        if not isinstance(obj, dict):
            raise SolverResponseError("Solver response must be a JSON object", obj)
        return obj

    def _post_json(self, path: str, body: dict) -> dict:
        req = request.Request(self.base_url + path, data=json.dumps(body).encode("utf-8"), method="POST")
        req.add_header("Content-Type", "application/json")
        req.add_header("Accept", "application/json")
        return self._send(req)

    def _get_json(self, path: str) -> dict:
        req = request.Request(self.base_url + path, method="GET")
        req.add_header("Accept", "application/json")
        return self._send(req)

    async def start_run(self, payload: dict) -> str:
        started = await asyncio.to_thread(self._post_json, "/api/solve", payload)
        run_id = started.get("run_id")
        if not run_id:
            raise SolverResponseError("Solver did not return a run_id", started)
        logger.info("Solver run %s started", run_id)
        return run_id

    async def wait_for_run(self, run_id: str) -> dict:
        for attempt in range(1, self.max_attempts + 1):
            try:
                data = await asyncio.to_thread(self._get_json, f"/api/runs/{run_id}")
            except SolverResponseError:
                raise
            except SolverError as e:
                logger.debug("Polling run %s failed (attempt %d): %s", run_id, attempt, e)
            else:
                status = data.get("status")
                if status == "COMPLETE":
                    return data
                if status == "FAILED":
                    raise SolverError(f"Solver failed: {data.get('error_text') or 'Unknown error'}")
                logger.debug("Run %s is %s (attempt %d/%d)", run_id, status, attempt, self.max_attempts)
            await asyncio.sleep(self.poll_interval)
        raise SolverTimeoutError(f"Solver run {run_id} timed out", attempts=self.max_attempts)

    async def solve(self, payload: dict) -> SolverResult:
        run_id = await self.start_run(payload)
        data = await self.wait_for_run(run_id)
        resources = [resource_from_dict(r) for r in payload.get("resources", [])]
        rules = {r["date"]: rule_from_dict(r) for r in payload.get("exceptionRules", [])}
        return parse_solver_response(data, payload, resources, rules)
