from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Sequence

from taskflow.config import TaskStatus
from taskflow.models.entities import Task
from taskflow.services.filters import is_overdue


@dataclass
class Summary:
    """Dashboard statistics for one snapshot of tasks."""
    total: int
    completed: int
    pending_payment_sum: float
    progress_pct: float  # 0..100
    overdue_count: int

    @property
    def pending(self) -> int:
        return self.total - self.completed


@dataclass
class CategoryStats:
    """Task counts grouped by category."""
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def categories(self) -> int:
        return len(self.counts)


def summarize(tasks: Sequence[Task], today: Optional[date] = None) -> Summary:
    """Compute every statistic from the same snapshot of ``tasks``."""
    snapshot = tuple(tasks)
    today = today or date.today()

    total = len(snapshot)
    completed = sum(1 for t in snapshot if t.status == TaskStatus.COMPLETED)
    pending_payments = sum(
        t.amount for t in snapshot
        if t.status == TaskStatus.PENDING and t.amount > 0
    )
    # No tasks means no progress rather than a division by zero
    progress = (completed / total) * 100 if total else 0.0

    return Summary(
        total=total,
        completed=completed,
        pending_payment_sum=pending_payments,
        progress_pct=progress,
        overdue_count=sum(1 for t in snapshot if is_overdue(t, today)),
    )


def category_breakdown(tasks: Sequence[Task]) -> CategoryStats:
    """Count tasks per category, in order of first appearance."""
    stats = CategoryStats()
    for task in tasks:
        stats.counts[task.category] = stats.counts.get(task.category, 0) + 1
    return stats
