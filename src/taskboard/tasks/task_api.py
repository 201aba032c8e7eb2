# src/taskboard/tasks/task_api.py

"""
Task API: the request/response contract over the entity store.

Transport-neutral: each operation takes already-decoded JSON values and returns
an ApiResponse(status, body). Bodies use camelCase wire names. Every failure is
caught here and mapped to a status code with a flat {"error": "..."} body.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from ..core.errors import NotFoundError, StoreError, ValidationError
from ..core.ports import EntityStore
from .task_models import TaskDraft

logger = logging.getLogger(__name__)

# Wire name -> store field name.
TASK_BODY_FIELDS: dict[str, str] = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "dueDate": "due_date",
    "projectId": "project_id",
    "assigneeId": "assignee_id",
}

SUBTASK_BODY_FIELDS: dict[str, str] = {
    "title": "title",
    "isCompleted": "is_completed",
}

# Form inputs send "" for a cleared optional field.
_EMPTY_MEANS_NULL = frozenset({"dueDate", "projectId", "assigneeId"})


@dataclass(frozen=True, slots=True)
class ApiResponse:
    status: int
    body: Any

    @property
    def ok(self) -> bool:
        return self.status == HTTPStatus.OK


def _error(status: HTTPStatus, message: str) -> ApiResponse:
    return ApiResponse(status=int(status), body={"error": message})


def _require_object(body: Any) -> Mapping[str, Any]:
    if not isinstance(body, Mapping):
        raise ValidationError("Request body must be a JSON object")
    return body


def _patch_from_body(
    body: Mapping[str, Any], fields: Mapping[str, str], *, strict: bool = False
) -> dict[str, Any]:
    """
    Map present wire keys to store fields; presence (even with null) is what matters.

    With strict=True any other key raises ValidationError.
    """
    if strict:
        unknown = sorted(str(k) for k in body if k not in fields)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(unknown)}")

    patch: dict[str, Any] = {}
    for wire_name, field_name in fields.items():
        if wire_name not in body:
            continue
        value = body[wire_name]
        if wire_name in _EMPTY_MEANS_NULL and value == "":
            value = None
        patch[field_name] = value
    return patch


class TaskApi:
    """
    Request handlers for tasks, subtasks, projects and users.

    Status mapping:
    - 200 success
    - 400 ValidationError (missing title, bad enum, bad date, unknown reference)
    - 404 NotFoundError (including update/delete of a missing task)
    - 500 StoreError or anything unexpected (generic message, logged)
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def _respond(self, failure: str, fn: Callable[[], Any]) -> ApiResponse:
        try:
            return ApiResponse(status=int(HTTPStatus.OK), body=fn())
        except ValidationError as exc:
            logger.debug("%s: %s", failure, exc)
            return _error(HTTPStatus.BAD_REQUEST, str(exc))
        except NotFoundError as exc:
            logger.debug("%s: %s", failure, exc)
            return _error(HTTPStatus.NOT_FOUND, str(exc))
        except StoreError:
            logger.exception("%s: store error", failure)
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, failure)
        except Exception:
            logger.exception("%s: unexpected error", failure)
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, failure)

    # ---- tasks ----

    def list_tasks(self, query: Mapping[str, Any] | None = None) -> ApiResponse:
        """GET /tasks?status=&projectId= (empty values are ignored)."""
        query = query or {}

        def run() -> list[dict[str, Any]]:
            status = query.get("status") or None
            project_id = query.get("projectId") or None
            tasks = self._store.list_tasks(status=status, project_id=project_id)
            return [t.to_dict() for t in tasks]

        return self._respond("Failed to fetch tasks", run)

    def get_task(self, task_id: str) -> ApiResponse:
        return self._respond("Failed to fetch task", lambda: self._store.get_task(task_id).to_dict())

    def create_task(self, body: Any) -> ApiResponse:
        def run() -> dict[str, Any]:
            data = _require_object(body)
            title = data.get("title")
            if not isinstance(title, str) or not title.strip():
                raise ValidationError("Title is required")

            fields = _patch_from_body(data, TASK_BODY_FIELDS)
            draft = TaskDraft(
                title=title,
                description=fields.get("description"),
                # Falsy status/priority fall back to the defaults.
                status=fields.get("status") or None,
                priority=fields.get("priority") or None,
                due_date=fields.get("due_date"),
                project_id=fields.get("project_id"),
                assignee_id=fields.get("assignee_id"),
            )
            task = self._store.create_task(draft)
            logger.info("Task created id=%s status=%s", task.id, task.status.value)
            return task.to_dict()

        return self._respond("Failed to create task", run)

    def update_task(self, task_id: str, body: Any) -> ApiResponse:
        def run() -> dict[str, Any]:
            patch = _patch_from_body(_require_object(body), TASK_BODY_FIELDS, strict=True)
            task = self._store.update_task(task_id, patch)
            logger.info("Task updated id=%s fields=%s", task_id, sorted(patch))
            return task.to_dict()

        return self._respond("Failed to update task", run)

    def delete_task(self, task_id: str) -> ApiResponse:
        def run() -> dict[str, Any]:
            self._store.delete_task(task_id)
            logger.info("Task deleted id=%s", task_id)
            return {"success": True}

        return self._respond("Failed to delete task", run)

    # ---- subtasks ----

    def create_subtask(self, task_id: str, body: Any) -> ApiResponse:
        def run() -> dict[str, Any]:
            title = _require_object(body).get("title")
            if not isinstance(title, str) or not title.strip():
                raise ValidationError("Title is required")
            return self._store.create_subtask(task_id, title).to_dict()

        return self._respond("Failed to create subtask", run)

    def update_subtask(self, subtask_id: str, body: Any) -> ApiResponse:
        def run() -> dict[str, Any]:
            patch = _patch_from_body(_require_object(body), SUBTASK_BODY_FIELDS, strict=True)
            return self._store.update_subtask(subtask_id, patch).to_dict()

        return self._respond("Failed to update subtask", run)

    def delete_subtask(self, subtask_id: str) -> ApiResponse:
        def run() -> dict[str, Any]:
            self._store.delete_subtask(subtask_id)
            return {"success": True}

        return self._respond("Failed to delete subtask", run)

    # ---- projects / users ----

    def list_projects(self) -> ApiResponse:
        return self._respond(
            "Failed to fetch projects", lambda: [p.to_dict() for p in self._store.list_projects()]
        )

    def create_project(self, body: Any) -> ApiResponse:
        def run() -> dict[str, Any]:
            name = _require_object(body).get("name")
            if not isinstance(name, str) or not name.strip():
                raise ValidationError("Name is required")
            return self._store.create_project(name).to_dict()

        return self._respond("Failed to create project", run)

    def list_users(self) -> ApiResponse:
        return self._respond(
            "Failed to fetch users", lambda: [u.to_dict() for u in self._store.list_users()]
        )

    def create_user(self, body: Any) -> ApiResponse:
        def run() -> dict[str, Any]:
            data = _require_object(body)
            name = data.get("name")
            if not isinstance(name, str) or not name.strip():
                raise ValidationError("Name is required")
            return self._store.create_user(name, email=data.get("email"), image=data.get("image")).to_dict()

        return self._respond("Failed to create user", run)
