# src/taskboard/board/drag_engine.py

"""
Drag engine.

Turns a drop gesture into at most one status transition:
- resolve the drop target (a column, or a card whose column is then used),
- no target          -> no-op,
- same column        -> no-op (repeated same-column drags never hit the store),
- different column   -> exactly one StatusTransition.

The workflow is unrestricted: any column may move to any other column.
Position inside a column is not tracked.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from ..tasks.task_models import TaskStatus
from .board_state import BoardState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Column:
    status: TaskStatus


@dataclass(frozen=True, slots=True)
class Card:
    task_id: str


DropTarget = Column | Card


@dataclass(frozen=True, slots=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def corners(self) -> tuple[tuple[float, float], ...]:
        return (
            (self.left, self.top),
            (self.right, self.top),
            (self.left, self.bottom),
            (self.right, self.bottom),
        )


@dataclass(frozen=True, slots=True)
class DropZone:
    target: DropTarget
    rect: Rect


@dataclass(frozen=True, slots=True)
class StatusTransition:
    task_id: str
    from_status: TaskStatus
    to_status: TaskStatus


def corner_distance(a: Rect, b: Rect) -> float:
    """Mean distance between matching corners of two rects."""
    total = 0.0
    for (ax, ay), (bx, by) in zip(a.corners(), b.corners()):
        total += math.hypot(ax - bx, ay - by)
    return total / 4.0


def closest_corners(
        dragged: Rect,
        zones: Sequence[DropZone],
        *,
        max_distance: float | None = None,
) -> DropTarget | None:
    """
    Pick the zone whose corners are nearest to the dragged rect.

    Ties go to the zone registered first. With max_distance set, a drop farther
    than that from every zone counts as "outside the board".
    """
    best: DropZone | None = None
    best_d = math.inf
    for zone in zones:
        d = corner_distance(dragged, zone.rect)
        if d < best_d:
            best, best_d = zone, d
    if best is None:
        return None
    if max_distance is not None and best_d > max_distance:
        return None
    return best.target


def resolve_target_status(target: DropTarget | None, state: BoardState) -> TaskStatus | None:
    if isinstance(target, Column):
        return target.status
    if isinstance(target, Card):
        over_task = state.find_task(target.task_id)
        return over_task.status if over_task is not None else None
    return None


def plan_drop(state: BoardState, task_id: str, target: DropTarget | None) -> StatusTransition | None:
    """Pure: what (if anything) a drop of task_id onto target should change."""
    new_status = resolve_target_status(target, state)
    if new_status is None:
        return None

    task = state.find_task(task_id)
    if task is None or task.status == new_status:
        return None

    return StatusTransition(task_id=task.id, from_status=task.status, to_status=new_status)


class DragEngine:
    """Tracks the active drag and the registered drop zones."""

    def __init__(self, *, max_distance: float | None = None) -> None:
        self.max_distance = max_distance
        self._zones: list[DropZone] = []
        self._active_task_id: str | None = None

    @property
    def zones(self) -> tuple[DropZone, ...]:
        return tuple(self._zones)

    @property
    def active_task_id(self) -> str | None:
        return self._active_task_id

    def register_column(self, status: TaskStatus, rect: Rect) -> None:
        self._zones.append(DropZone(target=Column(status), rect=rect))

    def register_card(self, task_id: str, rect: Rect) -> None:
        self._zones.append(DropZone(target=Card(task_id), rect=rect))

    def clear_zones(self) -> None:
        self._zones.clear()

    def start(self, task_id: str) -> None:
        self._active_task_id = task_id

    def cancel(self) -> None:
        self._active_task_id = None

    def resolve(self, dragged: Rect) -> DropTarget | None:
        return closest_corners(dragged, self._zones, max_distance=self.max_distance)

    def drop(
            self,
            state: BoardState,
            over: DropTarget | None,
            *,
            task_id: str | None = None,
    ) -> StatusTransition | None:
        """Finish the drag over `over`. The active drag is cleared either way."""
        dragged_id = task_id or self._active_task_id
        self._active_task_id = None
        if not dragged_id:
            return None

        transition = plan_drop(state, dragged_id, over)
        if transition is None:
            logger.debug("Drop of task %s over %s is a no-op", dragged_id, over)
        return transition

    def drop_at(
            self,
            state: BoardState,
            dragged: Rect,
            *,
            task_id: str | None = None,
    ) -> StatusTransition | None:
        return self.drop(state, self.resolve(dragged), task_id=task_id)
