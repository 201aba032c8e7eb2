# src/taskboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires store -> API -> client -> controller into AppState,
- signs in the configured default user, if any.
"""

from __future__ import annotations

import logging

from ..board.api_client import LocalApiClient
from ..board.board_controller import BoardController
from ..board.drag_engine import DragEngine
from ..config import get_settings
from ..connectors.local_session import LocalSession
from ..core.state import AppState
from ..tasks.task_api import TaskApi
from ..tasks.task_models import User
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = TaskStore(settings.db_path)
    api = TaskApi(store)

    session_user = None
    default_user = (getattr(settings, "default_user", "") or "").strip()
    if default_user:
        session_user = User(id=f"local:{default_user}", name=default_user)
        logger.info("Signed in as %s (from settings)", default_user)
    session = LocalSession(session_user)

    controller = BoardController(
        LocalApiClient(api),
        session,
        drag=DragEngine(max_distance=getattr(settings, "drop_max_distance", None)),
    )

    return AppState(
        settings=settings,
        store=store,
        api=api,
        session=session,
        controller=controller,
    )
