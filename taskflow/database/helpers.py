import json
import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""
    pass


def _serialize_tasks(task_dicts: List[Dict[str, Any]]) -> str:
    return json.dumps(task_dicts)


def _deserialize_tasks(payload: str) -> List[Dict[str, Any]]:
    """Parse a cached payload, rejecting anything that isn't a list of objects."""
    data = json.loads(payload)
    if not isinstance(data, list) or not all(isinstance(d, dict) for d in data):
        raise ValueError("Cached payload is not a list of task objects")
    return data
