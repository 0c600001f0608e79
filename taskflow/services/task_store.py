import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from taskflow.config import TaskStatus
from taskflow.events import AppEvent, EventBus
from taskflow.models.entities import (
    Task,
    TaskDraft,
    TaskValidationError,
    parse_amount,
    parse_due_date,
    parse_status,
)

logger = logging.getLogger(__name__)

_PARSERS = {
    "title": str,
    "description": str,
    "category": str,
    "amount": parse_amount,
    "due_date": parse_due_date,
    "status": parse_status,
}


class TaskStore:
    """In-memory ordered task collection, newest first.

    Every mutation is synchronous and emits an ``AppEvent`` on the bus; the
    session listens to those events to write the collection through to
    persistence. Operations on an unknown id are silent no-ops.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self.event_bus = event_bus
        self._tasks: List[Task] = []
        self._revision = 0

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    @property
    def revision(self) -> int:
        """Counter bumped by every local mutation (not by hydration)."""
        return self._revision

    def __len__(self) -> int:
        return len(self._tasks)

    def snapshot(self) -> List[Task]:
        """Copies of the tasks, safe to hand to a save that runs later."""
        return [replace(t) for t in self._tasks]

    def get(self, task_id: str) -> Optional[Task]:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def _mutated(self, event: AppEvent, data: Any) -> None:
        self._revision += 1
        self.event_bus.emit(event, data)

    def create(self, draft: TaskDraft) -> Task:
        """Validate ``draft``, assign id and createdAt, and prepend the task."""
        draft.validate()
        task = Task(
            id=str(uuid.uuid4()),
            title=draft.title,
            description=draft.description,
            category=draft.category,
            amount=draft.amount,
            due_date=draft.due_date,
            status=draft.status,
            created_at=datetime.now(timezone.utc),
        )
        self._tasks.insert(0, task)
        self._mutated(AppEvent.TASK_CREATED, task)
        return task

    def update(self, task_id: str, **fields: Any) -> None:
        """Merge ``fields`` into the task in place."""
        task = self.get(task_id)
        if task is None:
            logger.debug(f"update: task {task_id} not found, ignoring")
            return
        unknown = set(fields) - set(_PARSERS)
        if unknown:
            raise TaskValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        parsed = {name: _PARSERS[name](value) for name, value in fields.items()}
        for name, value in parsed.items():
            setattr(task, name, value)
        self._mutated(AppEvent.TASK_UPDATED, task)

    def remove(self, task_id: str) -> None:
        task = self.get(task_id)
        if task is None:
            logger.debug(f"remove: task {task_id} not found, ignoring")
            return
        self._tasks.remove(task)
        self._mutated(AppEvent.TASK_DELETED, task)

    def toggle_status(self, task_id: str) -> None:
        task = self.get(task_id)
        if task is None:
            logger.debug(f"toggle_status: task {task_id} not found, ignoring")
            return
        if task.status == TaskStatus.COMPLETED:
            task.status = TaskStatus.PENDING
            self._mutated(AppEvent.TASK_UNCOMPLETED, task)
        else:
            task.status = TaskStatus.COMPLETED
            self._mutated(AppEvent.TASK_COMPLETED, task)

    def replace_all(self, tasks: Iterable[Task]) -> None:
        """Swap in a whole new collection (import, clear-all)."""
        self._tasks = list(tasks)
        self._mutated(AppEvent.TASKS_REPLACED, self.tasks)

    def hydrate(self, tasks: Iterable[Task]) -> None:
        """Replace the collection with data read from persistence. Not written back."""
        self._tasks = list(tasks)
        self.event_bus.emit(AppEvent.TASKS_LOADED, self.tasks)
