# tests/test_integration.py
"""End-to-end test of the core workflow."""
import asyncio
from unittest.mock import patch

from study_planner.config import PlannerConfig
from study_planner.db import init_db
from study_planner.report import build_report
from study_planner.seed import seed_all
from study_planner.session import PlanSession
from study_planner.solver import HttpSolver
from study_planner.sync import SAVED


def test_full_planning_workflow(tmp_db):
    """Seed, regenerate through the solver client, study, undo, persist and reload."""
    config = PlannerConfig(db_path=tmp_db, poll_interval_seconds=0)
    init_db(tmp_db)
    seed_all(tmp_db, config.user_id, "2024-01-01", "2024-01-07", config)

    solver = HttpSolver("http://solver.test", poll_interval=0)
    session = PlanSession.load(solver=solver, config=config)
    assert len(session.plan.schedule) == 7
    assert session.scheduled_resource_ids == set()

    # Wednesday becomes a moonlighting day, which queues a rebalance
    session.add_exception_kind("weekday-moonlighting", "2024-01-03")
    assert session.plan.day("2024-01-03").total_study_time_minutes == 90

    slots = [
        {"date": "2024-01-01", "resource_id": "phys_001", "start_minute": 0, "end_minute": 90},
        {"date": "2024-01-01", "resource_id": "phys_002_part_1", "start_minute": 90, "end_minute": 150},
        {"date": "2024-01-02", "resource_id": "phys_002_part_2", "start_minute": 0, "end_minute": 60},
        {"date": "2024-01-03", "resource_id": "breast_001", "start_minute": 0, "end_minute": 75},
    ]
    with patch.object(HttpSolver, "_post_json", return_value={"run_id": "run-42"}) as post, \
            patch.object(HttpSolver, "_get_json", side_effect=[
                {"status": "RUNNING"}, {"status": "COMPLETE", "slots": slots, "firstPassEndDate": "2024-01-03"},
            ]):
        assert asyncio.run(session.run_pending_rebalance()) is True

    sent = post.call_args.args[1]
    assert sent["options"] == {"type": "exception-added", "date": "2024-01-03"}
    assert sent["exceptionRules"][0]["targetMinutes"] == 90
    assert session.scheduled_resource_ids == {"phys_001", "phys_002", "breast_001"}
    assert session.plan.first_pass_end_date == "2024-01-03"

    # Study
    first_task = session.plan.day("2024-01-01").tasks[0]
    session.toggle_task("2024-01-01", first_task.id)
    session.log_study_time(first_task.id, 80)
    report = build_report(session.plan, session.resources)
    assert report.progress["by_topic"]["Physics"]["completed"] == 90

    # Undo the time log only
    session.undo()
    assert session.plan.day("2024-01-01").tasks[0].status == "completed"
    assert session.plan.day("2024-01-01").tasks[0].actual_study_time_minutes == 0

    # Persist and reload
    assert session.save() is True
    assert session.sync.status == SAVED
    reloaded = PlanSession.load(config=config)
    assert reloaded.plan == session.plan
    assert reloaded.resources == session.resources
