# src/taskboard/board/api_client.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..core.errors import ApiError
from ..tasks.task_api import ApiResponse, TaskApi
from ..tasks.task_models import Project, Subtask, Task, User

logger = logging.getLogger(__name__)


def _error_message(body: Any) -> str:
    if isinstance(body, Mapping):
        for key in ("error", "message"):
            msg = body.get(key)
            if msg:
                return str(msg)
    return "Request failed"


class LocalApiClient:
    """
    TaskBoardClient backed by an in-process TaskApi.

    Store calls are blocking SQLite work, so each request runs in a worker thread.
    Every response status is checked: anything but 200 raises ApiError instead of
    letting the caller reload a board that was never changed.
    """

    def __init__(self, api: TaskApi) -> None:
        self._api = api

    async def _call(self, fn: Callable[..., ApiResponse], *args: Any) -> Any:
        resp = await asyncio.to_thread(fn, *args)
        if not resp.ok:
            message = _error_message(resp.body)
            logger.warning("%s -> %s %s", fn.__name__, resp.status, message)
            raise ApiError(resp.status, message)
        return resp.body

    async def list_tasks(self, *, status: str | None = None, project_id: str | None = None) -> list[Task]:
        query: dict[str, str] = {}
        if status:
            query["status"] = status
        if project_id:
            query["projectId"] = project_id
        body = await self._call(self._api.list_tasks, query)
        return [Task.from_dict(item) for item in body]

    async def list_projects(self) -> list[Project]:
        body = await self._call(self._api.list_projects)
        return [Project.from_dict(item) for item in body]

    async def list_users(self) -> list[User]:
        body = await self._call(self._api.list_users)
        return [User.from_dict(item) for item in body]

    async def create_task(self, body: Mapping[str, Any]) -> Task:
        return Task.from_dict(await self._call(self._api.create_task, dict(body)))

    async def update_task(self, task_id: str, body: Mapping[str, Any]) -> Task:
        return Task.from_dict(await self._call(self._api.update_task, task_id, dict(body)))

    async def delete_task(self, task_id: str) -> None:
        await self._call(self._api.delete_task, task_id)

    async def create_subtask(self, task_id: str, title: str) -> Subtask:
        return Subtask.from_dict(await self._call(self._api.create_subtask, task_id, {"title": title}))

    async def update_subtask(self, subtask_id: str, body: Mapping[str, Any]) -> Subtask:
        return Subtask.from_dict(await self._call(self._api.update_subtask, subtask_id, dict(body)))

    async def delete_subtask(self, subtask_id: str) -> None:
        await self._call(self._api.delete_subtask, subtask_id)

    async def create_project(self, name: str) -> Project:
        return Project.from_dict(await self._call(self._api.create_project, {"name": name}))

    async def create_user(self, name: str) -> User:
        return User.from_dict(await self._call(self._api.create_user, {"name": name}))
