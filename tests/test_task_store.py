# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from datetime import date
from pathlib import Path

import pytest

from taskboard.core.errors import NotFoundError, StoreError, ValidationError
from taskboard.tasks.task_models import Priority, TaskDraft, TaskStatus
from taskboard.tasks.task_store import TaskStore


def test_create_task_applies_defaults(store: TaskStore) -> None:
    task = store.create_task(TaskDraft(title="Draft release notes"))

    assert task.id
    assert task.title == "Draft release notes"
    assert task.status is TaskStatus.BACKLOG
    assert task.priority is Priority.MEDIUM
    assert task.description is None
    assert task.subtasks == ()
    assert task.created_at > 0
    assert task.updated_at == task.created_at
    assert store.count_tasks() == 1


@pytest.mark.parametrize("title", ["", "   ", None])
def test_create_task_requires_title(store: TaskStore, title) -> None:
    with pytest.raises(ValidationError, match="Title is required"):
        store.create_task(TaskDraft(title=title))
    assert store.count_tasks() == 0


def test_create_task_rejects_bad_enums_and_dates(store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        store.create_task(TaskDraft(title="x", status="Archived"))
    with pytest.raises(ValidationError):
        store.create_task(TaskDraft(title="x", priority="Urgent"))
    with pytest.raises(ValidationError):
        store.create_task(TaskDraft(title="x", due_date="next tuesday"))


def test_status_aliases_are_normalized(store: TaskStore) -> None:
    task = store.create_task(TaskDraft(title="x", status="in-progress", priority="high"))
    assert task.status is TaskStatus.IN_PROGRESS
    assert task.priority is Priority.HIGH


def test_create_task_rejects_unknown_references(store: TaskStore) -> None:
    with pytest.raises(ValidationError, match="projectId"):
        store.create_task(TaskDraft(title="x", project_id="missing"))
    with pytest.raises(ValidationError, match="assigneeId"):
        store.create_task(TaskDraft(title="x", assignee_id="missing"))


def test_list_tasks_newest_first_and_filters(store: TaskStore) -> None:
    proj = store.create_project("Website")
    a = store.create_task(TaskDraft(title="a"))
    b = store.create_task(TaskDraft(title="b", status=TaskStatus.DONE, project_id=proj.id))
    c = store.create_task(TaskDraft(title="c", project_id=proj.id))

    assert [t.id for t in store.list_tasks()] == [c.id, b.id, a.id]
    assert [t.id for t in store.list_tasks(status="Done")] == [b.id]
    assert [t.id for t in store.list_tasks(project_id=proj.id)] == [c.id, b.id]
    assert [t.id for t in store.list_tasks(status=TaskStatus.BACKLOG, project_id=proj.id)] == [c.id]


def test_list_tasks_joins_project_assignee_and_subtasks(store: TaskStore) -> None:
    proj = store.create_project("Website")
    user = store.create_user("Ada", email="ada@example.com")
    task = store.create_task(TaskDraft(title="x", project_id=proj.id, assignee_id=user.id))
    s1 = store.create_subtask(task.id, "one")
    s2 = store.create_subtask(task.id, "two")
    store.add_attachment(task.id, "notes.txt", "https://files.example.com/notes.txt")

    (loaded,) = store.list_tasks()
    assert loaded.project == proj
    assert loaded.assignee == user
    assert [s.id for s in loaded.subtasks] == [s1.id, s2.id]
    assert [a.file_name for a in loaded.attachments] == ["notes.txt"]


def test_update_task_is_partial(store: TaskStore) -> None:
    task = store.create_task(TaskDraft(title="x", description="keep me", priority="Low"))

    updated = store.update_task(task.id, {"status": "Review"})

    assert updated.status is TaskStatus.REVIEW
    assert updated.title == "x"
    assert updated.description == "keep me"
    assert updated.priority is Priority.LOW
    assert updated.updated_at >= task.updated_at


def test_update_task_null_clears_optional_fields(store: TaskStore) -> None:
    proj = store.create_project("Website")
    user = store.create_user("Ada")
    task = store.create_task(
        TaskDraft(
            title="x",
            description="d",
            due_date="2025-11-30",
            project_id=proj.id,
            assignee_id=user.id,
        )
    )
    assert task.due_date == date(2025, 11, 30)

    cleared = store.update_task(
        task.id,
        {"description": None, "due_date": None, "project_id": None, "assignee_id": None},
    )

    assert cleared.description is None
    assert cleared.due_date is None
    assert cleared.project_id is None and cleared.project is None
    assert cleared.assignee_id is None and cleared.assignee is None


def test_update_task_validation(store: TaskStore) -> None:
    task = store.create_task(TaskDraft(title="x"))

    with pytest.raises(ValidationError):
        store.update_task(task.id, {"title": "  "})
    with pytest.raises(ValidationError):
        store.update_task(task.id, {"status": "Nope"})
    with pytest.raises(ValidationError):
        store.update_task(task.id, {"project_id": "missing"})
    with pytest.raises(ValidationError, match="Unknown task fields"):
        store.update_task(task.id, {"color": "red"})

    assert store.get_task(task.id).title == "x"


def test_update_and_delete_missing_task_raise_not_found(store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        store.update_task("missing", {"title": "y"})
    with pytest.raises(NotFoundError):
        store.update_task("missing", {})
    with pytest.raises(NotFoundError):
        store.delete_task("missing")
    with pytest.raises(NotFoundError):
        store.get_task("missing")
    # Existence is checked before references.
    with pytest.raises(NotFoundError):
        store.update_task("missing", {"project_id": "nope"})


def test_titles_are_stored_exactly_as_sent(store: TaskStore) -> None:
    task = store.create_task(TaskDraft(title="  Draft release notes  "))
    assert task.title == "  Draft release notes  "

    renamed = store.update_task(task.id, {"title": " Renamed "})
    assert renamed.title == " Renamed "
    assert store.get_task(task.id).title == " Renamed "

    st = store.create_subtask(task.id, "  write tests ")
    assert st.title == "  write tests "
    assert store.update_subtask(st.id, {"title": " again "}).title == " again "


def test_connection_is_closed_when_configuration_fails(
    store: TaskStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    closed: list[bool] = []

    class TrackingConnection(sqlite3.Connection):
        def close(self) -> None:
            closed.append(True)
            super().close()

    real_connect = sqlite3.connect

    def tracking_connect(*args, **kwargs):
        return real_connect(*args, factory=TrackingConnection, **kwargs)

    def fail_configure(conn: sqlite3.Connection) -> None:
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(sqlite3, "connect", tracking_connect)
    monkeypatch.setattr(TaskStore, "_configure_conn", staticmethod(fail_configure))

    with pytest.raises(StoreError):
        store.count_tasks()

    assert closed == [True]


def test_delete_task_cascades_to_subtasks_and_attachments(store: TaskStore) -> None:
    task = store.create_task(TaskDraft(title="x"))
    other = store.create_task(TaskDraft(title="other"))
    st = store.create_subtask(task.id, "one")
    store.create_subtask(task.id, "two")
    store.add_attachment(task.id, "a.png")
    kept = store.create_subtask(other.id, "stays")

    store.delete_task(task.id)

    assert store.list_subtasks(task.id) == []
    assert store.count_orphans() == 0
    with pytest.raises(NotFoundError):
        store.get_subtask(st.id)
    assert store.get_subtask(kept.id).title == "stays"
    assert [t.id for t in store.list_tasks()] == [other.id]


def test_subtask_lifecycle(store: TaskStore) -> None:
    task = store.create_task(TaskDraft(title="x"))
    st = store.create_subtask(task.id, "write tests")
    assert st.title == "write tests"
    assert st.is_completed is False

    toggled = store.update_subtask(st.id, {"is_completed": True})
    assert toggled.is_completed is True
    assert toggled.title == "write tests"

    renamed = store.update_subtask(st.id, {"title": "write more tests"})
    assert renamed.is_completed is True

    store.delete_subtask(st.id)
    assert store.list_subtasks(task.id) == []
    with pytest.raises(NotFoundError):
        store.delete_subtask(st.id)


def test_subtask_validation(store: TaskStore) -> None:
    task = store.create_task(TaskDraft(title="x"))
    st = store.create_subtask(task.id, "one")

    with pytest.raises(NotFoundError):
        store.create_subtask("missing", "one")
    with pytest.raises(ValidationError):
        store.create_subtask(task.id, "")
    with pytest.raises(ValidationError, match="boolean"):
        store.update_subtask(st.id, {"is_completed": "yes"})
    with pytest.raises(NotFoundError):
        store.update_subtask("missing", {"is_completed": True})


def test_projects_and_users(store: TaskStore) -> None:
    p1 = store.create_project("Website")
    p2 = store.create_project("Mobile")
    u = store.create_user("Ada")

    assert [p.id for p in store.list_projects()] == [p1.id, p2.id]
    assert [x.name for x in store.list_users()] == ["Ada"]
    assert u.email is None
    with pytest.raises(ValidationError, match="Name is required"):
        store.create_project(" ")


def test_old_schema_is_migrated(tmp_path: Path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        """
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'Backlog',
            priority TEXT NOT NULL DEFAULT 'Medium',
            created_at REAL NOT NULL,
            updated_at REAL NOT NULL
        )
        """
    )
    conn.execute("INSERT INTO tasks VALUES ('t1', 'legacy', 'Done', 'High', 1.0, 1.0)")
    conn.commit()
    conn.close()

    store = TaskStore(db)

    legacy = store.get_task("t1")
    assert legacy.status is TaskStatus.DONE
    assert legacy.description is None
    updated = store.update_task("t1", {"description": "now with notes", "due_date": "2026-01-02"})
    assert updated.description == "now with notes"
    assert updated.due_date == date(2026, 1, 2)
