"""Planner configuration: YAML file plus STUDY_PLANNER_* environment overrides."""
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

import yaml

from study_planner import constants
from study_planner.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".study_planner" / "config.yaml"
DEFAULT_DB_PATH = str(Path.home() / ".study_planner" / "planner.db")
ENV_PREFIX = "STUDY_PLANNER_"


@dataclass(frozen=True)
class PlannerConfig:
    db_path: str = DEFAULT_DB_PATH
    user_id: str = "default"
    solver_url: str = "http://localhost:8000"
    solver_timeout_seconds: float = constants.SOLVER_HTTP_TIMEOUT_SECONDS
    poll_interval_seconds: float = constants.SOLVER_POLL_INTERVAL_SECONDS
    max_poll_attempts: int = constants.SOLVER_MAX_POLL_ATTEMPTS
    workday_minutes: int = constants.WORKDAY_TARGET_MINS_MAX
    weekend_minutes: int = constants.HIGH_CAPACITY_TARGET_MINS_MAX
    weekday_moonlighting_minutes: int = constants.MOONLIGHTING_WEEKDAY_TARGET_MINS
    weekend_moonlighting_minutes: int = constants.MOONLIGHTING_WEEKEND_TARGET_MINS
    undo_depth: int = 1
    log_level: str = "INFO"


def _coerce(name: str, raw, target_type):
    try:
        if target_type is int:
            return int(raw)
        if target_type is float:
            return float(raw)
        return str(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from e


def _apply(config: PlannerConfig, values: dict, source: str) -> PlannerConfig:
    types = {f.name: f.type for f in fields(PlannerConfig)}
    unknown = set(values) - set(types)
    if unknown:
        raise ConfigError(f"Unknown config keys in {source}: {', '.join(sorted(unknown))}")
    coerced = {k: _coerce(k, v, types[k]) for k, v in values.items()}
    return replace(config, **coerced)


def load_config(path: str | Path | None = None, environ: dict | None = None) -> PlannerConfig:
    """Build the effective configuration.

    Values are layered: dataclass defaults, then the YAML file (if it
    exists), then environment variables such as STUDY_PLANNER_SOLVER_URL.
    """
    environ = os.environ if environ is None else environ
    config = PlannerConfig()

    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if config_path.exists():
        try:
            data = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        config = _apply(config, data, str(config_path))
        logger.debug("Loaded config from %s", config_path)
    elif path:
        raise ConfigError(f"Config file not found: {config_path}")

    overrides = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in environ.items()
        if key.startswith(ENV_PREFIX)
    }
    if overrides:
        config = _apply(config, overrides, "environment")

    if config.undo_depth < 1:
        raise ConfigError("undo_depth must be at least 1")
    return config
