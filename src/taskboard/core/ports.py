# src/taskboard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the board.

The API layer and the board controller depend on Protocols instead of concrete
implementations. This keeps storage, transport and the session provider
swappable and makes testing easier.
"""

from typing import Any, Awaitable, Mapping, Protocol

from ..tasks.task_models import Attachment, Project, Subtask, Task, TaskDraft, TaskStatus, User


class EntityStore(Protocol):
    """Persistence boundary behind the Task API (TaskStore implements it)."""

    def create_task(self, draft: TaskDraft) -> Task: ...
    def get_task(self, task_id: str) -> Task: ...
    def list_tasks(
            self,
            *,
            status: TaskStatus | str | None = None,
            project_id: str | None = None,
    ) -> list[Task]: ...
    def update_task(self, task_id: str, patch: Mapping[str, Any]) -> Task: ...
    def delete_task(self, task_id: str) -> None: ...

    def create_subtask(self, task_id: str, title: Any) -> Subtask: ...
    def get_subtask(self, subtask_id: str) -> Subtask: ...
    def update_subtask(self, subtask_id: str, patch: Mapping[str, Any]) -> Subtask: ...
    def delete_subtask(self, subtask_id: str) -> None: ...

    def add_attachment(
            self, task_id: str, file_name: str, file_url: str | None = None
    ) -> Attachment: ...

    def list_projects(self) -> list[Project]: ...
    def create_project(self, name: Any) -> Project: ...
    def list_users(self) -> list[User]: ...
    def create_user(self, name: Any, email: str | None = None, image: str | None = None) -> User: ...


class TaskBoardClient(Protocol):
    """
    Client-side port: how the board controller talks to the Task API.

    Implementations raise ApiError for any non-success response.
    Request bodies use the wire (camelCase) field names.
    """

    def list_tasks(
            self, *, status: str | None = None, project_id: str | None = None
    ) -> Awaitable[list[Task]]: ...
    def list_projects(self) -> Awaitable[list[Project]]: ...
    def list_users(self) -> Awaitable[list[User]]: ...

    def create_task(self, body: Mapping[str, Any]) -> Awaitable[Task]: ...
    def update_task(self, task_id: str, body: Mapping[str, Any]) -> Awaitable[Task]: ...
    def delete_task(self, task_id: str) -> Awaitable[None]: ...

    def create_subtask(self, task_id: str, title: str) -> Awaitable[Subtask]: ...
    def update_subtask(self, subtask_id: str, body: Mapping[str, Any]) -> Awaitable[Subtask]: ...
    def delete_subtask(self, subtask_id: str) -> Awaitable[None]: ...

    def create_project(self, name: str) -> Awaitable[Project]: ...
    def create_user(self, name: str) -> Awaitable[User]: ...


class SessionService(Protocol):
    """
    Session provider. Credential checks and session issuance live outside the board;
    the board only asks whether someone is signed in.
    """

    def get_session(self) -> Awaitable[User | None]: ...
    def sign_in(self, name: str) -> Awaitable[User]: ...
    def sign_out(self) -> Awaitable[None]: ...
