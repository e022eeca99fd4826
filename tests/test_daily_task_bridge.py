"""
Tests: daily tasks and the grid ⇄ task bridge.

Covers:
    1. Assigned task creation and description format
    2. grid → tasks: only today's tasks for the cell follow a done/none edit
    3. tasks → grid: toggling an assigned task writes the cell
    4. Custom tasks, text edits, deletion and the per-worker overview
"""

import pytest

from tracker.core.exceptions import NotFoundError, ValidationError
from tracker.models.daily_task import DailyTask
from tracker.services import cell_state as cs
from tracker.services import daily_task_bridge as bridge
from tracker.services import project_service as ps
from tracker.utils.helpers import today_iso

PAST = "2020-01-06"


@pytest.fixture()
def tasks(project, worker):
    """Three tasks for process 1 / episode 3: two dated today, one in the past."""
    today = bridge.create_assigned_tasks(worker.id, project.id, 1, [3])
    again = bridge.create_assigned_tasks(worker.id, project.id, 1, [3])
    past = bridge.create_assigned_tasks(worker.id, project.id, 1, [3], date=PAST)
    return today + again + past


class TestCreate:
    def test_description(self, project, worker):
        created = bridge.create_assigned_tasks(worker.id, project.id, 2, [5, 4, 5])
        assert [t.task for t in created] == ["감금연휴 - 2_콘티 4화", "감금연휴 - 2_콘티 5화"]
        assert {t.date for t in created} == {today_iso()}
        assert all(t.is_assigned for t in created)

    def test_requires_episodes(self, project, worker):
        with pytest.raises(ValidationError):
            bridge.create_assigned_tasks(worker.id, project.id, 1, [])

    def test_unknown_process_or_worker(self, project, worker):
        with pytest.raises(NotFoundError):
            bridge.create_assigned_tasks(worker.id, project.id, 42, [1])
        with pytest.raises(NotFoundError):
            bridge.create_assigned_tasks("nobody", project.id, 1, [1])

    def test_custom_task(self, worker):
        task = bridge.create_custom_task(worker.id, " 회의 준비 ", date="2026.03.02")
        assert (task.task, task.date, task.is_assigned) == ("회의 준비", "2026-03-02", False)
        with pytest.raises(ValidationError):
            bridge.create_custom_task(worker.id, "  ")


class TestGridToTasks:
    def test_done_completes_todays_tasks_only(self, project, tasks):
        ps.set_cell_status(project.id, 1, 3, cs.DONE)
        by_date = {}
        for task in DailyTask.query.all():
            by_date.setdefault(task.date, set()).add(task.completed)
        assert by_date == {today_iso(): {True}, PAST: {False}}

    def test_none_reopens(self, project, tasks):
        ps.set_cell_status(project.id, 1, 3, cs.DONE)
        ps.set_cell_status(project.id, 1, 3, cs.NONE)
        assert {t.completed for t in bridge.list_tasks()} == {False}

    def test_other_statuses_leave_tasks(self, project, tasks):
        ps.set_cell_status(project.id, 1, 3, cs.IN_PROGRESS)
        ps.set_cell_status(project.id, 1, 3, cs.FINAL)
        assert {t.completed for t in bridge.list_tasks()} == {False}

    def test_episode_checkbox(self, project, tasks):
        ps.set_episode_complete(project.id, 3, True)
        assert {t.completed for t in bridge.list_tasks()} == {True}

    def test_explicit_today(self, project, tasks):
        assert bridge.on_grid_cell_changed(project.id, 1, 3, cs.DONE, today=PAST) == 1
        assert {t.completed for t in bridge.list_tasks()} == {False}


class TestTasksToGrid:
    def test_toggle_writes_cell(self, project, tasks):
        ps.set_cell_text(project.id, 1, 3, "메모")
        bridge.toggle_task(tasks[0].id)
        assert ps.get_cell(project.id, 1, 3) == cs.CellState(status=cs.DONE, text="메모")
        # The sibling task for the same cell is not bounced back
        assert bridge.get_task(tasks[1].id).completed is False

        bridge.toggle_task(tasks[0].id)
        assert ps.get_cell(project.id, 1, 3).status == cs.NONE

    def test_custom_task_toggle(self, worker):
        task = bridge.create_custom_task(worker.id, "자료 정리")
        assert bridge.toggle_task(task.id).completed is True

    def test_removed_process_keeps_task(self, project, tasks):
        ps.remove_process(project.id, 1)
        assert bridge.toggle_task(tasks[0].id).completed is True


class TestCrud:
    def test_update_and_delete(self, worker):
        task = bridge.create_custom_task(worker.id, "초안")
        assert bridge.update_task_text(task.id, "수정본").task == "수정본"
        bridge.delete_task(task.id)
        with pytest.raises(NotFoundError):
            bridge.get_task(task.id)

    def test_list_by_date(self, tasks, worker):
        assert len(bridge.list_tasks()) == 2
        assert len(bridge.list_tasks(PAST, worker.id)) == 1
        assert bridge.list_tasks(worker_id="nobody") == []

    def test_overview(self, tasks, worker):
        from tracker.services import worker_service
        other = worker_service.create_worker("박채색", "1팀")
        bridge.create_custom_task(other.id, "채색")
        bridge.toggle_task(tasks[0].id)
        overview = {o["worker_name"]: o for o in bridge.worker_overview()}
        assert (overview["김작가"]["completed_count"], overview["김작가"]["total_count"]) == (1, 2)
        assert overview["박채색"]["total_count"] == 1
