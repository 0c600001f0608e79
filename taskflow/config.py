"""Application configuration - single source of truth for all constants.

Contains enums (TaskStatus, FilterType), storage keys and the deployment
settings read from the environment. Import from here instead of hardcoding
values elsewhere to ensure consistency across the app.
"""
import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent / ".env")


class TaskStatus(Enum):
    """Persisted task states. Overdue is always derived, never stored."""
    PENDING = "pending"
    COMPLETED = "completed"


class FilterType(Enum):
    """Selectors understood by the filter engine."""
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    OVERDUE = "overdue"


# Local cache key, namespaced per identity (see cache_key_for)
STORAGE_KEY = "taskflow-pro-tasks"
EXPORT_FILENAME_PREFIX = "taskflow-pro-backup"

REMOTE_TABLE = "tasks"
REMOTE_ORDER_BY = "created_at.desc"

DEFAULT_CATEGORY = "General"

REMOTE_URL = os.getenv("TASKFLOW_REMOTE_URL", "")
REMOTE_KEY = os.getenv("TASKFLOW_REMOTE_KEY", "")
DB_PATH = Path(os.getenv("TASKFLOW_DB_PATH", "") or "taskflow.db")
REMOTE_TIMEOUT = float(os.getenv("TASKFLOW_REMOTE_TIMEOUT", "") or 10)
POLL_INTERVAL = float(os.getenv("TASKFLOW_POLL_INTERVAL", "") or 30)


def cache_key_for(identity: str) -> str:
    """Local cache key for one identity's fallback copy."""
    return f"{STORAGE_KEY}:{identity}"
