# src/taskboard/board/board_state.py

"""
Immutable snapshot of the board as last read from the store.

The controller never edits a snapshot in place: every change produces a new
BoardState through one of the transition functions below.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from ..tasks.subtask_progress import SubtaskProgress, subtask_progress
from ..tasks.task_models import COLUMNS, Project, Task, TaskStatus, User


@dataclass(frozen=True, slots=True)
class BoardState:
    tasks: tuple[Task, ...] = ()
    projects: tuple[Project, ...] = ()
    users: tuple[User, ...] = ()
    editing_task_id: str | None = None
    last_error: str | None = None
    loaded: bool = False

    # ---- queries ----

    def tasks_in(self, status: TaskStatus) -> list[Task]:
        return [t for t in self.tasks if t.status == status]

    def columns(self) -> dict[TaskStatus, list[Task]]:
        return {col: self.tasks_in(col) for col in COLUMNS}

    def find_task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def resolve_task_ref(self, ref: str) -> Task | None:
        """Exact id, or an unambiguous id prefix (handy for short ids in the console)."""
        ref = (ref or "").strip()
        if not ref:
            return None
        exact = self.find_task(ref)
        if exact is not None:
            return exact
        matches = [t for t in self.tasks if t.id.startswith(ref)]
        return matches[0] if len(matches) == 1 else None

    def find_subtask_owner(self, subtask_ref: str) -> tuple[Task, str, bool] | None:
        """(owning task, subtask id, is_completed) for an exact id or unique prefix."""
        hits = [
            (t, st.id, st.is_completed)
            for t in self.tasks
            for st in t.subtasks
            if st.id == subtask_ref or st.id.startswith(subtask_ref)
        ]
        exact = [h for h in hits if h[1] == subtask_ref]
        if exact:
            return exact[0]
        return hits[0] if len(hits) == 1 else None

    def find_project_by_name(self, name: str) -> Project | None:
        for p in self.projects:
            if p.name == name:
                return p
        return None

    def find_user_by_name(self, name: str) -> User | None:
        for u in self.users:
            if u.name == name:
                return u
        return None

    def progress(self, task: Task) -> SubtaskProgress:
        return subtask_progress(task.subtasks)

    @property
    def editing_task(self) -> Task | None:
        if self.editing_task_id is None:
            return None
        return self.find_task(self.editing_task_id)


# ---- transitions ----

def with_snapshot(
        state: BoardState,
        tasks: Iterable[Task],
        projects: Iterable[Project],
        users: Iterable[User],
) -> BoardState:
    """Replace the whole snapshot at once. An editor pointing at a vanished task is closed."""
    task_tuple = tuple(tasks)
    editing = state.editing_task_id
    if editing is not None and not any(t.id == editing for t in task_tuple):
        editing = None
    return replace(
        state,
        tasks=task_tuple,
        projects=tuple(projects),
        users=tuple(users),
        editing_task_id=editing,
        last_error=None,
        loaded=True,
    )


def open_editor(state: BoardState, task_id: str) -> BoardState:
    if state.find_task(task_id) is None:
        return state
    return replace(state, editing_task_id=task_id)


def close_editor(state: BoardState) -> BoardState:
    if state.editing_task_id is None:
        return state
    return replace(state, editing_task_id=None)


def with_error(state: BoardState, message: str) -> BoardState:
    return replace(state, last_error=message)
