# src/taskboard/board/board_controller.py

"""
Board controller.

Client-side orchestrator over a TaskBoardClient:
- holds the current BoardState (tasks, projects, users, open editor),
- issues one mutation per user action,
- then reloads the whole board instead of patching local state.

The displayed board is therefore always the last successful store read. There
is no optimistic update and no cancellation: each action awaits its mutation
and its reload before returning. Failures are surfaced (BoardActionError /
BoardLoadError) and recorded on the state; a failed mutation triggers no reload.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from ..core.errors import BoardActionError, BoardLoadError, NotSignedInError
from ..core.ports import SessionService, TaskBoardClient
from ..tasks.task_models import Project, Subtask, Task, TaskStatus, User
from .board_state import BoardState, close_editor, open_editor, with_error, with_snapshot
from .drag_engine import DragEngine, DropTarget, Rect, StatusTransition

logger = logging.getLogger(__name__)

T = TypeVar("T")
StateListener = Callable[[BoardState], None]


class BoardController:
    def __init__(
            self,
            client: TaskBoardClient,
            session: SessionService,
            *,
            drag: DragEngine | None = None,
    ) -> None:
        self._client = client
        self._session = session
        self.drag = drag or DragEngine()
        self._state = BoardState()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> BoardState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call listener after every state replacement. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, new_state: BoardState) -> None:
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("Board state listener failed")

    async def _require_session(self) -> User:
        user = await self._session.get_session()
        if user is None:
            raise NotSignedInError("Sign in to use the board.")
        return user

    async def _mutate(self, action: str, op: Callable[[], Awaitable[T]]) -> T:
        await self._require_session()
        try:
            return await op()
        except Exception as exc:
            logger.warning("%s failed: %s", action, exc)
            self._set_state(with_error(self._state, f"{action} failed: {exc}"))
            raise BoardActionError(action, exc) from exc

    # ---- loading ----

    async def load_board(self) -> BoardState:
        """
        Fetch tasks, projects and users concurrently and swap the snapshot in one step.

        If any of the three fails, the previous snapshot stays in place.
        """
        await self._require_session()
        try:
            tasks, projects, users = await asyncio.gather(
                self._client.list_tasks(),
                self._client.list_projects(),
                self._client.list_users(),
            )
        except Exception as exc:
            logger.warning("Board reload failed: %s", exc)
            self._set_state(with_error(self._state, f"Failed to load board: {exc}"))
            raise BoardLoadError(f"Failed to load board: {exc}") from exc

        self._set_state(with_snapshot(self._state, tasks, projects, users))
        logger.debug(
            "Board loaded tasks=%d projects=%d users=%d", len(tasks), len(projects), len(users)
        )
        return self._state

    # ---- editor ----

    def open_task(self, task_id: str) -> Task | None:
        self._set_state(open_editor(self._state, task_id))
        return self._state.editing_task

    def close_task(self) -> None:
        self._set_state(close_editor(self._state))

    # ---- task mutations ----

    async def create_task(self, column: TaskStatus | str, title: str) -> Task | None:
        """Create a task in `column`. Blank titles are ignored (no request is sent)."""
        if not title or not title.strip():
            return None
        body = {"title": title.strip(), "status": str(column)}
        task = await self._mutate("Create task", lambda: self._client.create_task(body))
        await self.load_board()
        return task

    async def update_task(self, task_id: str, patch: Mapping[str, Any]) -> Task:
        """Partial update using wire field names; closes the editor on success."""
        task = await self._mutate("Update task", lambda: self._client.update_task(task_id, patch))
        self._set_state(close_editor(self._state))
        await self.load_board()
        return task

    async def delete_task(self, task_id: str) -> None:
        await self._mutate("Delete task", lambda: self._client.delete_task(task_id))
        self._set_state(close_editor(self._state))
        await self.load_board()

    async def move_task(self, task_id: str, new_status: TaskStatus | str) -> Task:
        """Status-only update, as emitted by the drag engine."""
        body = {"status": str(new_status)}
        task = await self._mutate("Move task", lambda: self._client.update_task(task_id, body))
        logger.info("Task %s moved to %s", task_id, task.status.value)
        await self.load_board()
        return task

    # ---- drag and drop ----

    async def drop(
            self, over: DropTarget | None, *, task_id: str | None = None
    ) -> StatusTransition | None:
        """Finish a drag over `over`; sends one status update only when the column changes."""
        transition = self.drag.drop(self._state, over, task_id=task_id)
        if transition is None:
            return None
        await self.move_task(transition.task_id, transition.to_status)
        return transition

    async def drop_at(self, dragged: Rect, *, task_id: str | None = None) -> StatusTransition | None:
        return await self.drop(self.drag.resolve(dragged), task_id=task_id)

    # ---- subtasks ----

    async def create_subtask(self, task_id: str, title: str) -> Subtask | None:
        if not title or not title.strip():
            return None
        clean = title.strip()
        subtask = await self._mutate(
            "Create subtask", lambda: self._client.create_subtask(task_id, clean)
        )
        await self.load_board()
        return subtask

    async def toggle_subtask(self, subtask_id: str, current_completed: bool) -> Subtask:
        body = {"isCompleted": not current_completed}
        subtask = await self._mutate(
            "Toggle subtask", lambda: self._client.update_subtask(subtask_id, body)
        )
        await self.load_board()
        return subtask

    async def delete_subtask(self, subtask_id: str) -> None:
        await self._mutate("Delete subtask", lambda: self._client.delete_subtask(subtask_id))
        await self.load_board()

    # ---- projects / users ----

    async def resolve_or_create_project(self, name: str) -> Project | None:
        """Reuse the project whose name matches exactly, otherwise create it."""
        clean = (name or "").strip()
        if not clean:
            return None
        if not self._state.loaded:
            await self.load_board()

        existing = self._state.find_project_by_name(clean)
        if existing is not None:
            return existing

        project = await self._mutate("Create project", lambda: self._client.create_project(clean))
        await self.load_board()
        return project

    async def resolve_or_create_user(self, name: str) -> User | None:
        """Reuse the user whose name matches exactly, otherwise create it."""
        clean = (name or "").strip()
        if not clean:
            return None
        if not self._state.loaded:
            await self.load_board()

        existing = self._state.find_user_by_name(clean)
        if existing is not None:
            return existing

        user = await self._mutate("Create user", lambda: self._client.create_user(clean))
        await self.load_board()
        return user
