"""Tests for the TaskFlowAPI facade."""
from datetime import date, timedelta

import pytest

from taskflow.api import TaskFlowAPI
from taskflow.config import FilterType, TaskStatus
from taskflow.services.transfer import ImportValidationError, export_tasks

from .fakes import FakeRemoteStore, make_task


class TestMutations:
    async def test_add_task_with_defaults(self, api: TaskFlowAPI):
        task = api.add_task("Buy milk", due_date=date(2025, 6, 1))
        assert task.category == "General"
        assert task.amount == 0
        assert task.status == TaskStatus.PENDING
        assert api.tasks == [task]

    async def test_update_toggle_delete(self, api: TaskFlowAPI):
        task = api.add_task("Draft", due_date=date(2025, 6, 1))
        api.update_task(task.id, title="Final")
        api.toggle_task(task.id)
        assert api.tasks[0].title == "Final"
        assert api.tasks[0].status == TaskStatus.COMPLETED
        api.delete_task(task.id)
        assert api.tasks == []

    async def test_update_missing_is_silent(self, api: TaskFlowAPI):
        api.add_task("Keep", due_date=date(2025, 6, 1))
        before = list(api.tasks)
        api.update_task("missing-id", title="x")
        assert api.tasks == before

    async def test_sign_in_and_persist(self, api: TaskFlowAPI, remote: FakeRemoteStore):
        await api.sign_in("alice")
        task = api.add_task("Synced", due_date=date(2025, 6, 1), amount=30)
        await api.flush()
        assert remote.rows_for("alice")[0]["id"] == task.id
        await api.sign_out()
        assert api.identity is None
        assert api.tasks == []


class TestViews:
    async def test_visible_tasks_and_summary(self, api: TaskFlowAPI):
        today = date(2025, 6, 11)
        late = api.add_task("Late invoice", due_date=today - timedelta(days=2), amount=100)
        done = api.add_task("Shipped", due_date=today + timedelta(days=5), amount=50)
        api.toggle_task(done.id)

        assert api.visible_tasks(FilterType.OVERDUE, today=today) == [late]
        assert api.visible_tasks("all", "INVOICE", today=today) == [late]

        summary = api.summary(today)
        assert (summary.total, summary.completed, summary.overdue_count) == (2, 1, 1)
        assert summary.pending_payment_sum == 100
        assert summary.progress_pct == 50

    async def test_categories(self, api: TaskFlowAPI):
        api.add_task("a", due_date=date(2025, 6, 1), category="Work")
        api.add_task("b", due_date=date(2025, 6, 1), category="Work")
        assert api.categories().counts == {"Work": 2}


class TestImportExport:
    async def test_import_replaces_everything(self, api: TaskFlowAPI, remote: FakeRemoteStore):
        await api.sign_in("alice")
        api.add_task("Old", due_date=date(2025, 6, 1))
        imported = api.import_json(export_tasks([make_task("x"), make_task("y")]))
        await api.flush()
        assert api.tasks == imported
        assert {r["id"] for r in remote.rows_for("alice")} == {"x", "y"}

    async def test_rejected_import_leaves_store_untouched(self, api: TaskFlowAPI):
        api.add_task("Keep me", due_date=date(2025, 6, 1))
        before = list(api.tasks)
        with pytest.raises(ImportValidationError):
            api.import_json('[{"id": "1", "title": "", "category": "Work", "dueDate": "2025-01-01"}]')
        assert api.tasks == before

    async def test_export_then_import_file(self, api: TaskFlowAPI, tmp_path):
        api.add_task("One", due_date=date(2025, 6, 1))
        api.add_task("Two", due_date=date(2025, 6, 2), amount=12)
        original = list(api.tasks)
        path = api.export_to_file(tmp_path)
        await api.clear_all()
        assert api.tasks == []
        api.import_file(path)
        assert api.tasks == original

    async def test_export_json_matches_store(self, api: TaskFlowAPI):
        api.add_task("One", due_date=date(2025, 6, 1))
        assert '"title": "One"' in api.export_json()


class TestSampleData:
    async def test_seed_fills_empty_tracker(self, api: TaskFlowAPI):
        today = date(2025, 6, 10)
        seeded = api.seed_sample_tasks(today)
        assert api.tasks == seeded
        assert len({t.id for t in seeded}) == 4

        summary = api.summary(today)
        assert summary.completed == 1
        assert summary.overdue_count == 1
        assert summary.pending_payment_sum == 17900

    async def test_seed_leaves_existing_tasks_alone(self, api: TaskFlowAPI):
        task = api.add_task("Mine", due_date=date(2025, 6, 1))
        assert api.seed_sample_tasks() == [task]
        assert api.tasks == [task]
