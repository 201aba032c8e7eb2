# src/taskboard/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..board.board_controller import BoardController
from ..connectors.local_session import LocalSession
from ..tasks.task_api import TaskApi
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules.
    settings: Any

    store: TaskStore
    api: TaskApi
    session: LocalSession
    controller: BoardController
