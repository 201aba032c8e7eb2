# src/taskboard/tasks/subtask_progress.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .task_models import Subtask


@dataclass(frozen=True, slots=True)
class SubtaskProgress:
    completed: int
    total: int

    @property
    def ratio(self) -> float:
        return self.completed / self.total if self.total else 0.0

    @property
    def label(self) -> str:
        return f"{self.completed}/{self.total}"


def subtask_progress(subtasks: Iterable[Subtask]) -> SubtaskProgress:
    """
    Completion counts derived from the subtask collection itself.

    Always recomputed, never stored, so the numbers cannot drift from the
    subtasks they describe.
    """
    completed = 0
    total = 0
    for st in subtasks:
        total += 1
        if st.is_completed:
            completed += 1
    return SubtaskProgress(completed=completed, total=total)
