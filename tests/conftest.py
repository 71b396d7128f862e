import asyncio

import pytest

from study_planner.models import DailySchedule, ScheduledTask, StudyPlan, StudyResource
from study_planner.rules import iter_dates


class FakeSolver:
    """Solver double whose answers are handed out by the test.

    A call blocks until `release(index, outcome)` is called for it, unless the
    outcome was released before the call was made. An Exception outcome is
    raised from `solve`.
    """

    def __init__(self):
        self.payloads = []
        self._gates = {}
        self._outcomes = {}

    async def solve(self, payload):
        index = len(self.payloads)
        self.payloads.append(payload)
        if index not in self._outcomes:
            gate = self._gates.setdefault(index, asyncio.Event())
            await gate.wait()
        outcome = self._outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def release(self, index, outcome):
        self._outcomes[index] = outcome
        if index in self._gates:
            self._gates[index].set()

    async def wait_for_calls(self, count):
        while len(self.payloads) < count:
            await asyncio.sleep(0)


def make_task(task_id, resource_id, topic, minutes, order=0, **kwargs):
    return ScheduledTask(
        id=task_id, resource_id=resource_id, title=f"Task {task_id}", type="Textbook Reading",
        original_topic=topic, duration_minutes=minutes, order=order, **kwargs,
    )


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_planner.db")
    return db_path


@pytest.fixture
def seven_day_plan():
    """Mon 2024-01-01 .. Sun 2024-01-07 with tasks on the first three days."""
    tasks = {
        "2024-01-01": [
            make_task("t1", "phys_001", "Physics", 90, 0, is_primary_material=True),
            make_task("t2", "phys_002_part_1", "Physics", 60, 1, original_resource_id="phys_002"),
        ],
        "2024-01-02": [
            make_task("t3", "phys_002_part_2", "Physics", 60, 0, original_resource_id="phys_002"),
            make_task("t4", "breast_001", "Breast Imaging", 75, 1),
        ],
        "2024-01-03": [
            make_task("t5", "gi_001", "GI Imaging", 150, 0, pages=50),
        ],
    }
    schedule = []
    for d in iter_dates("2024-01-01", "2024-01-07"):
        weekend = d in ("2024-01-06", "2024-01-07")
        schedule.append(DailySchedule(
            date=d, tasks=tasks.get(d, []), total_study_time_minutes=420 if weekend else 240,
        ))
    return StudyPlan(
        start_date="2024-01-01",
        end_date="2024-01-07",
        schedule=schedule,
        topic_order=["Physics", "Breast Imaging", "GI Imaging"],
        cram_topic_order=["Physics", "Breast Imaging", "GI Imaging"],
    )


@pytest.fixture
def resources():
    return [
        StudyResource(id="phys_001", title="X-ray Production", type="Textbook Reading", domain="Physics",
                      duration_minutes=90, sequence_order=1),
        StudyResource(id="phys_002", title="CT Fundamentals", type="Video Lecture", domain="Physics",
                      duration_minutes=120, sequence_order=2),
        StudyResource(id="breast_001", title="Mammography Basics", type="Textbook Reading",
                      domain="Breast Imaging", duration_minutes=75, sequence_order=3),
        StudyResource(id="gi_001", title="Bowel and Liver", type="Textbook Reading", domain="GI Imaging",
                      duration_minutes=150, sequence_order=4, pages=50),
        StudyResource(id="thor_001", title="Lung Patterns", type="Video Lecture", domain="Thoracic Imaging",
                      duration_minutes=110, sequence_order=5),
        StudyResource(id="nis_001", title="NIS Study Guide", type="Study Guide Reading", domain="NIS",
                      duration_minutes=60, is_primary_material=False),
    ]


@pytest.fixture
def fake_solver():
    return FakeSolver()


@pytest.fixture
def task_factory():
    return make_task
