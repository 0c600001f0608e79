from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Union

from taskflow.config import DEFAULT_CATEGORY, TaskStatus


class TaskValidationError(ValueError):
    """Raised when a task violates a creation-time invariant."""
    pass


def parse_due_date(value: Union[str, date, datetime]) -> date:
    """Coerce a due date to a calendar date, dropping any time of day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError as e:
            raise TaskValidationError(f"Invalid due date: {value!r}") from e
    raise TaskValidationError(f"Invalid due date: {value!r}")


def parse_timestamp(value: Union[str, datetime, None]) -> datetime:
    """Coerce a creation timestamp to an aware datetime (naive means UTC)."""
    if value is None or value == "":
        return datetime.now(timezone.utc)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise TaskValidationError(f"Invalid timestamp: {value!r}") from e
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def parse_text(value: Any, name: str) -> str:
    """Free-text field; absent means empty, anything but a string is rejected."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TaskValidationError(f"{name} must be text, got {value!r}")
    return value


def parse_status(value: Union[str, TaskStatus, None]) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    if value is None:
        return TaskStatus.PENDING
    try:
        return TaskStatus(value)
    except ValueError as e:
        raise TaskValidationError(f"Unknown status: {value!r}") from e


def parse_amount(value: Any) -> float:
    if value is None or value == "":
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError) as e:
            raise TaskValidationError(f"Invalid amount: {value!r}") from e
    if value < 0:
        raise TaskValidationError(f"Amount must be non-negative, got {value}")
    return value


@dataclass
class TaskDraft:
    """Fields supplied by the UI when creating a task (no id, no createdAt)."""
    title: str
    due_date: date
    description: str = ""
    category: str = DEFAULT_CATEGORY
    amount: float = 0
    status: TaskStatus = TaskStatus.PENDING

    def validate(self) -> None:
        self.title = parse_text(self.title, "title")
        if not self.title.strip():
            raise TaskValidationError("Title is required")
        self.description = parse_text(self.description, "description")
        self.category = parse_text(self.category, "category")
        self.due_date = parse_due_date(self.due_date)
        self.amount = parse_amount(self.amount)
        self.status = parse_status(self.status)


@dataclass
class Task:
    id: str
    title: str
    due_date: date
    created_at: datetime
    description: str = ""
    category: str = DEFAULT_CATEGORY
    amount: float = 0
    status: TaskStatus = TaskStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Document shape used by the local cache and by export."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "amount": self.amount,
            "dueDate": self.due_date.isoformat(),
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Task":
        return cls(
            id=str(d["id"]),
            title=parse_text(d["title"], "title"),
            description=parse_text(d.get("description"), "description"),
            category=parse_text(d.get("category"), "category"),
            amount=parse_amount(d.get("amount", 0)),
            due_date=parse_due_date(d["dueDate"]),
            status=parse_status(d.get("status")),
            created_at=parse_timestamp(d.get("createdAt")),
        )

    def to_record(self, user_id: str) -> Dict[str, Any]:
        """Row shape of the remote store (snake_case, owned by user_id)."""
        return {
            "id": self.id,
            "user_id": user_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "amount": self.amount,
            "due_date": self.due_date.isoformat(),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, r: Dict[str, Any]) -> "Task":
        return cls(
            id=str(r["id"]),
            title=parse_text(r["title"], "title"),
            description=parse_text(r.get("description"), "description"),
            category=parse_text(r.get("category"), "category"),
            amount=parse_amount(r.get("amount", 0)),
            due_date=parse_due_date(r["due_date"]),
            status=parse_status(r.get("status")),
            created_at=parse_timestamp(r.get("created_at")),
        )


# Optional identity alias used across services
Identity = Optional[str]
