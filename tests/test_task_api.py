# tests/test_task_api.py

from __future__ import annotations

from taskboard.tasks.task_api import TaskApi
from taskboard.tasks.task_store import TaskStore

from .fakes import BrokenStore


def _create(api: TaskApi, **body) -> dict:
    resp = api.create_task(body)
    assert resp.status == 200, resp.body
    return resp.body


def test_create_task_end_to_end(api: TaskApi) -> None:
    resp = api.create_task({"title": "Draft release notes", "status": "Backlog"})

    assert resp.ok
    body = resp.body
    assert body["id"]
    assert body["title"] == "Draft release notes"
    assert body["status"] == "Backlog"
    assert body["priority"] == "Medium"
    assert body["subtasks"] == []
    assert body["project"] is None

    listed = api.list_tasks().body
    assert [t["id"] for t in listed] == [body["id"]]


def test_create_task_validation_errors_are_400(api: TaskApi) -> None:
    resp = api.create_task({"status": "Backlog"})
    assert resp.status == 400
    assert resp.body == {"error": "Title is required"}

    assert api.create_task({"title": "   "}).status == 400
    assert api.create_task(["not", "an", "object"]).status == 400
    assert api.create_task({"title": "x", "priority": "Urgent"}).status == 400
    assert api.create_task({"title": "x", "projectId": "missing"}).status == 400

    assert api.list_tasks().body == []


def test_empty_status_and_priority_fall_back_to_defaults(api: TaskApi) -> None:
    body = _create(api, title="x", status="", priority=None, dueDate="")
    assert body["status"] == "Backlog"
    assert body["priority"] == "Medium"
    assert body["dueDate"] is None


def test_list_tasks_filters(api: TaskApi) -> None:
    project = api.create_project({"name": "Website"}).body
    a = _create(api, title="a", status="Done")
    b = _create(api, title="b", projectId=project["id"])

    assert [t["id"] for t in api.list_tasks({"status": "Done"}).body] == [a["id"]]
    assert [t["id"] for t in api.list_tasks({"projectId": project["id"]}).body] == [b["id"]]
    # Empty filter values mean "no filter".
    assert len(api.list_tasks({"status": "", "projectId": ""}).body) == 2
    assert api.list_tasks({"status": "Archived"}).status == 400


def test_update_task_patches_only_present_fields(api: TaskApi) -> None:
    task = _create(api, title="x", description="keep", priority="High", dueDate="2025-11-30")

    resp = api.update_task(task["id"], {"status": "InProgress", "dueDate": ""})

    assert resp.ok
    assert resp.body["status"] == "InProgress"
    assert resp.body["description"] == "keep"
    assert resp.body["priority"] == "High"
    assert resp.body["dueDate"] is None


def test_update_rejects_unknown_fields(api: TaskApi) -> None:
    task = _create(api, title="x")
    sub = api.create_subtask(task["id"], {"title": "one"}).body

    resp = api.update_task(task["id"], {"state": "Done", "due_date": None})
    assert resp.status == 400
    assert resp.body == {"error": "Unknown fields: due_date, state"}
    assert api.get_task(task["id"]).body["status"] == "Backlog"

    assert api.update_subtask(sub["id"], {"done": True}).status == 400
    assert api.get_task(task["id"]).body["subtasks"][0]["isCompleted"] is False


def test_update_keeps_title_exactly_as_sent(api: TaskApi) -> None:
    task = _create(api, title="  Draft release notes  ")
    assert task["title"] == "  Draft release notes  "

    resp = api.update_task(task["id"], {"title": " Renamed "})

    assert resp.body["title"] == " Renamed "
    assert api.get_task(task["id"]).body["title"] == " Renamed "


def test_missing_task_is_404(api: TaskApi) -> None:
    assert api.get_task("missing").status == 404
    assert api.update_task("missing", {"title": "y"}).status == 404
    assert api.update_task("missing", {"projectId": "nope"}).status == 404
    assert api.delete_task("missing").status == 404
    assert api.create_subtask("missing", {"title": "y"}).status == 404


def test_delete_task_removes_its_subtasks(api: TaskApi, store: TaskStore) -> None:
    task = _create(api, title="x")
    sub = api.create_subtask(task["id"], {"title": "one"}).body

    resp = api.delete_task(task["id"])

    assert resp.status == 200
    assert resp.body == {"success": True}
    assert api.get_task(task["id"]).status == 404
    assert api.update_subtask(sub["id"], {"isCompleted": True}).status == 404
    assert store.list_subtasks(task["id"]) == []


def test_subtask_patch_flips_only_completion(api: TaskApi) -> None:
    task = _create(api, title="x")
    sub = api.create_subtask(task["id"], {"title": "one"}).body
    assert sub["isCompleted"] is False
    assert sub["taskId"] == task["id"]

    resp = api.update_subtask(sub["id"], {"isCompleted": True})

    assert resp.ok
    assert resp.body["isCompleted"] is True
    assert resp.body["title"] == "one"
    assert resp.body["id"] == sub["id"]

    detail = api.get_task(task["id"]).body
    assert [s["isCompleted"] for s in detail["subtasks"]] == [True]


def test_subtask_errors(api: TaskApi) -> None:
    task = _create(api, title="x")
    sub = api.create_subtask(task["id"], {"title": "one"}).body

    assert api.create_subtask(task["id"], {}).body == {"error": "Title is required"}
    assert api.update_subtask(sub["id"], {"isCompleted": "yes"}).status == 400
    assert api.delete_subtask(sub["id"]).body == {"success": True}
    assert api.delete_subtask(sub["id"]).status == 404


def test_projects_and_users(api: TaskApi) -> None:
    project = api.create_project({"name": "Website"})
    user = api.create_user({"name": "Ada", "email": "ada@example.com"})

    assert project.ok and user.ok
    assert api.list_projects().body == [project.body]
    assert api.list_users().body == [
        {"id": user.body["id"], "name": "Ada", "email": "ada@example.com", "image": None}
    ]
    assert api.create_project({"name": ""}).body == {"error": "Name is required"}
    assert api.create_user({}).status == 400

    task = _create(api, title="x", projectId=project.body["id"], assigneeId=user.body["id"])
    assert task["project"] == {"id": project.body["id"], "name": "Website"}
    assert task["assignee"]["name"] == "Ada"


def test_store_failures_are_500_with_generic_message() -> None:
    api = TaskApi(BrokenStore())

    resp = api.list_tasks()
    assert resp.status == 500
    assert resp.body == {"error": "Failed to fetch tasks"}

    assert api.create_task({"title": "x"}).body == {"error": "Failed to create task"}
    assert api.update_task("t", {"title": "x"}).body == {"error": "Failed to update task"}
    assert api.delete_task("t").body == {"error": "Failed to delete task"}
    assert api.list_users().body == {"error": "Failed to fetch users"}
