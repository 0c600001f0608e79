"""JSON import/export of the task collection.

Export writes the collection verbatim; import validates the whole document
before anything is handed to the store, so a rejected file never mutates it.
"""
import json
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from taskflow.config import EXPORT_FILENAME_PREFIX, TaskStatus
from taskflow.models.entities import Task, TaskValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "title", "category", "dueDate")


class ImportValidationError(ValueError):
    """Raised when an imported document is not a valid task list."""
    pass


def export_tasks(tasks: Sequence[Task]) -> str:
    return json.dumps([t.to_dict() for t in tasks], indent=2)


def export_to_file(
    tasks: Sequence[Task],
    directory: Union[str, Path],
    today: Optional[date] = None,
) -> Path:
    """Write a dated backup file into ``directory`` and return its path."""
    today = today or date.today()
    path = Path(directory) / f"{EXPORT_FILENAME_PREFIX}-{today.isoformat()}.json"
    path.write_text(export_tasks(tasks), encoding="utf-8")
    logger.info(f"Exported {len(tasks)} tasks to {path}")
    return path


def _validate_element(index: int, element: Any) -> None:
    if not isinstance(element, dict):
        raise ImportValidationError(f"Element {index} is not an object")
    missing = [name for name in REQUIRED_FIELDS if not element.get(name)]
    if missing:
        raise ImportValidationError(
            f"Element {index} is missing required field(s): {', '.join(missing)}"
        )


def import_tasks(text: str) -> List[Task]:
    """Parse and validate an exported document.

    Raises:
        ImportValidationError: If the text is not JSON, not a list, or any
            element lacks a non-empty id, title, category or dueDate.
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ImportValidationError(f"Not a valid JSON document: {e}") from e
    if not isinstance(data, list):
        raise ImportValidationError("Expected a list of tasks")

    for index, element in enumerate(data):
        _validate_element(index, element)

    tasks = []
    for index, element in enumerate(data):
        try:
            tasks.append(Task.from_dict(element))
        except TaskValidationError as e:
            raise ImportValidationError(f"Element {index}: {e}") from e
    return tasks


def import_from_file(path: Union[str, Path]) -> List[Task]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ImportValidationError(f"Failed to read file: {e}") from e
    return import_tasks(text)


# (title, description, category, amount, days until due, status)
_SAMPLES = (
    ("Website Redesign", "Complete homepage redesign with new components", "Development", 2500, 7, TaskStatus.PENDING),
    ("Client Meeting", "Quarterly review with ABC Corp", "Meeting", 0, 2, TaskStatus.PENDING),
    ("Invoice Processing", "Process Q3 vendor invoices", "Finance", 15400, -2, TaskStatus.PENDING),
    ("Team Building", "Organize team building activity", "HR", 500, 14, TaskStatus.COMPLETED),
)


def sample_tasks(today: Optional[date] = None) -> List[Task]:
    """Demo tasks for an empty tracker, due dates relative to ``today``."""
    today = today or date.today()
    now = datetime.now(timezone.utc)
    return [
        Task(
            id=str(uuid.uuid4()),
            title=title,
            description=description,
            category=category,
            amount=amount,
            due_date=today + timedelta(days=days),
            status=status,
            created_at=now,
        )
        for title, description, category, amount, days, status in _SAMPLES
    ]
