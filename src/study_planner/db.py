"""Database initialization and plan/resource document storage."""
import json
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path

from study_planner.codec import plan_from_dict, plan_to_dict, resource_from_dict, resource_to_dict
from study_planner.config import DEFAULT_DB_PATH
from study_planner.errors import StorageError, ValidationError
from study_planner.models import StudyPlan, StudyResource

KIND_PLAN = "plan"
KIND_RESOURCES = "resources"

SCHEMA = """
CREATE TABLE IF NOT EXISTS plan_documents (
    user_id TEXT NOT NULL,
    kind TEXT NOT NULL,
    body TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (user_id, kind)
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    with closing(get_connection(db_path)) as conn:
        conn.executescript(SCHEMA)
        conn.commit()


def _write_document(db_path: str, user_id: str, kind: str, body) -> None:
    try:
        with closing(get_connection(db_path)) as conn:
            conn.execute(
                """INSERT INTO plan_documents (user_id, kind, body, updated_at) VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id, kind) DO UPDATE SET body=excluded.body, updated_at=excluded.updated_at""",
                (user_id, kind, json.dumps(body), datetime.now().isoformat()),
            )
            conn.commit()
    except sqlite3.Error as e:
        raise StorageError(f"Could not save {kind} for {user_id}: {e}") from e


def _read_document(db_path: str, user_id: str, kind: str):
    try:
        with closing(get_connection(db_path)) as conn:
            row = conn.execute(
                "SELECT body FROM plan_documents WHERE user_id = ? AND kind = ?", (user_id, kind)
            ).fetchone()
    except sqlite3.Error as e:
        raise StorageError(f"Could not load {kind} for {user_id}: {e}") from e
    if row is None:
        return None
    try:
        return json.loads(row["body"])
    except json.JSONDecodeError as e:
        raise StorageError(f"Stored {kind} for {user_id} is not valid JSON") from e


def save_plan(db_path: str, user_id: str, plan: StudyPlan) -> None:
    _write_document(db_path, user_id, KIND_PLAN, plan_to_dict(plan))


def load_plan(db_path: str, user_id: str) -> StudyPlan | None:
    doc = _read_document(db_path, user_id, KIND_PLAN)
    if doc is None:
        return None
    try:
        return plan_from_dict(doc)
    except ValidationError as e:
        raise StorageError(f"Stored plan for {user_id} is invalid: {e}") from e


def save_resources(db_path: str, user_id: str, resources: list[StudyResource]) -> None:
    _write_document(db_path, user_id, KIND_RESOURCES, [resource_to_dict(r) for r in resources])


def load_resources(db_path: str, user_id: str) -> list[StudyResource] | None:
    doc = _read_document(db_path, user_id, KIND_RESOURCES)
    if doc is None:
        return None
    try:
        return [resource_from_dict(r) for r in doc]
    except ValidationError as e:
        raise StorageError(f"Stored resources for {user_id} are invalid: {e}") from e


def delete_documents(db_path: str, user_id: str) -> None:
    with closing(get_connection(db_path)) as conn:
        conn.execute("DELETE FROM plan_documents WHERE user_id = ?", (user_id,))
        conn.commit()


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    with closing(get_connection(db_path)) as conn:
        row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    with closing(get_connection(db_path)) as conn:
        conn.execute(
            "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
            (key, value, value),
        )
        conn.commit()
