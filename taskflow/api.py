"""Programmatic API facade for TaskFlow.

The single entry point a UI collaborator needs: mutations, derived views,
import/export and identity switching over one ServiceContainer.

Usage:
    from taskflow.core import bootstrap
    from taskflow.api import TaskFlowAPI

    api = TaskFlowAPI(await bootstrap(db_path=Path(":memory:")))
    await api.sign_in("user-123")
    task = api.add_task("Invoice ACME", due_date=date.today(), amount=250)
    overdue = api.visible_tasks(FilterType.OVERDUE)
"""
from datetime import date
from pathlib import Path
from typing import List, Optional, Union

from taskflow.config import DEFAULT_CATEGORY, FilterType, TaskStatus
from taskflow.core import ServiceContainer
from taskflow.models.entities import Identity, Task, TaskDraft
from taskflow.services import transfer
from taskflow.services.filters import filter_tasks
from taskflow.services.stats import CategoryStats, Summary, category_breakdown, summarize


class TaskFlowAPI:
    """High-level facade over TaskFlow services.

    Mutations return as soon as the in-memory store changed; persistence
    runs in the background. Await ``flush()`` to wait for it.
    """

    def __init__(self, services: ServiceContainer) -> None:
        self._svc = services

    @property
    def tasks(self) -> List[Task]:
        return self._svc.store.tasks

    @property
    def identity(self) -> Identity:
        return self._svc.session.identity

    async def sign_in(self, identity: str) -> None:
        await self._svc.session.set_identity(identity)

    async def sign_out(self) -> None:
        await self._svc.session.set_identity(None)

    # ---- mutations ----

    def add_task(
        self,
        title: str,
        due_date: Union[date, str],
        description: str = "",
        category: str = DEFAULT_CATEGORY,
        amount: float = 0,
        status: TaskStatus = TaskStatus.PENDING,
    ) -> Task:
        return self._svc.store.create(TaskDraft(
            title=title,
            due_date=due_date,
            description=description,
            category=category,
            amount=amount,
            status=status,
        ))

    def update_task(self, task_id: str, **fields) -> None:
        self._svc.store.update(task_id, **fields)

    def delete_task(self, task_id: str) -> None:
        self._svc.store.remove(task_id)

    def toggle_task(self, task_id: str) -> None:
        self._svc.store.toggle_status(task_id)

    async def clear_all(self) -> None:
        await self._svc.session.clear_all()

    async def flush(self) -> None:
        await self._svc.session.flush()

    # ---- derived views ----

    def visible_tasks(
        self,
        selector: Union[FilterType, str] = FilterType.ALL,
        search_text: str = "",
        today: Optional[date] = None,
    ) -> List[Task]:
        return filter_tasks(self._svc.store.tasks, selector, search_text, today)

    def summary(self, today: Optional[date] = None) -> Summary:
        return summarize(self._svc.store.tasks, today)

    def categories(self) -> CategoryStats:
        return category_breakdown(self._svc.store.tasks)

    # ---- import / export ----

    def export_json(self) -> str:
        return transfer.export_tasks(self._svc.store.tasks)

    def export_to_file(self, directory: Union[str, Path], today: Optional[date] = None) -> Path:
        return transfer.export_to_file(self._svc.store.tasks, directory, today)

    def import_json(self, text: str) -> List[Task]:
        """Replace every task with the imported ones. Raises ImportValidationError."""
        tasks = transfer.import_tasks(text)
        self._svc.store.replace_all(tasks)
        return tasks

    def import_file(self, path: Union[str, Path]) -> List[Task]:
        tasks = transfer.import_from_file(path)
        self._svc.store.replace_all(tasks)
        return tasks

    def seed_sample_tasks(self, today: Optional[date] = None) -> List[Task]:
        """Fill an empty tracker with demo tasks; a non-empty one is left alone."""
        if self._svc.store.tasks:
            return self._svc.store.tasks
        tasks = transfer.sample_tasks(today)
        self._svc.store.replace_all(tasks)
        return tasks
