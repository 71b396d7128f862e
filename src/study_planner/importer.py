"""Import study resources from JSON or YAML files."""
import json
import logging
from pathlib import Path

import yaml

from study_planner.codec import resource_from_dict
from study_planner.errors import ValidationError
from study_planner.models import StudyResource

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".json", ".yaml", ".yml")


def read_resource_file(file_path: str) -> list[StudyResource]:
    """Parse a file holding a list of resources, or a mapping with a `resources` list."""
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ValidationError(f"{path.name} is not valid JSON: {e}") from e
    elif suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ValidationError(f"{path.name} is not valid YAML: {e}") from e
    else:
        raise ValidationError(f"Unsupported file type {suffix or '(none)'}; expected one of {SUPPORTED_SUFFIXES}")

    if isinstance(data, dict):
        data = data.get("resources")
    if not isinstance(data, list):
        raise ValidationError(f"{path.name} must contain a list of resources")
    return [resource_from_dict(doc) for doc in data]


def import_resources(pool: list[StudyResource], file_path: str) -> tuple[list[StudyResource], dict]:
    """Merge resources from a file into the pool by id.

    Existing ids are replaced in place; new ids are appended in file order.
    Returns the new pool and counts of added/updated resources.
    """
    incoming = read_resource_file(file_path)
    merged = list(pool)
    index = {r.id: i for i, r in enumerate(merged)}
    added = updated = 0
    for resource in incoming:
        if resource.id in index:
            merged[index[resource.id]] = resource
            updated += 1
        else:
            index[resource.id] = len(merged)
            merged.append(resource)
            added += 1
    logger.info("Imported %s: %d added, %d updated", Path(file_path).name, added, updated)
    return merged, {"filename": Path(file_path).name, "added": added, "updated": updated}
