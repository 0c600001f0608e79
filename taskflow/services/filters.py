"""Derived task lists: date selectors combined with free-text search.

All functions are pure. ``today`` defaults to the current date at call time
and is never memoized.
"""
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from taskflow.config import FilterType, TaskStatus
from taskflow.models.entities import Task


def week_bounds(today: date) -> Tuple[date, date]:
    """Sunday..Saturday window containing ``today``, inclusive."""
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def is_overdue(task: Task, today: Optional[date] = None) -> bool:
    """Due strictly before today and still pending. Due today is never overdue."""
    today = today or date.today()
    return task.status == TaskStatus.PENDING and task.due_date < today


def matches_selector(task: Task, selector: FilterType, today: date) -> bool:
    if selector == FilterType.ALL:
        return True
    if selector == FilterType.TODAY:
        return task.due_date == today
    if selector == FilterType.WEEK:
        start, end = week_bounds(today)
        return start <= task.due_date <= end
    if selector == FilterType.MONTH:
        return (task.due_date.year, task.due_date.month) == (today.year, today.month)
    if selector == FilterType.OVERDUE:
        return is_overdue(task, today)
    raise ValueError(f"Unknown filter: {selector!r}")


def matches_search(task: Task, search_text: str) -> bool:
    """Case-insensitive substring match on title, description or category."""
    if not search_text:
        return True
    needle = search_text.lower()
    return (
        needle in task.title.lower()
        or needle in task.description.lower()
        or needle in task.category.lower()
    )


def filter_tasks(
    tasks: Iterable[Task],
    selector: Union[FilterType, str] = FilterType.ALL,
    search_text: str = "",
    today: Optional[date] = None,
) -> List[Task]:
    """Tasks passing both the selector and the search, in input order."""
    selector = FilterType(selector)
    today = today or date.today()
    return [
        t for t in tasks
        if matches_selector(t, selector, today) and matches_search(t, search_text)
    ]
