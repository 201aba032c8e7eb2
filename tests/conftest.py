# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskboard.board.api_client import LocalApiClient
from taskboard.board.board_controller import BoardController
from taskboard.cli.bootstrap import create_initial_state
from taskboard.connectors.local_session import LocalSession
from taskboard.core.state import AppState
from taskboard.tasks.task_api import TaskApi
from taskboard.tasks.task_models import User
from taskboard.tasks.task_store import TaskStore

from .fakes import RecordingClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and AppState.

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskboard-test",
        log_level="DEBUG",
        log_to_file=False,
        default_user="alice",
        drop_max_distance=None,
        data_dir=tmp_path / "data",
        db_path=tmp_path / "data" / "taskboard.sqlite3",
    )


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    # Real SQLite store: its correctness is part of what we test.
    return TaskStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def api(store: TaskStore) -> TaskApi:
    return TaskApi(store)


@pytest.fixture()
def session() -> LocalSession:
    return LocalSession(User(id="local:alice", name="alice"))


@pytest.fixture()
def client(api: TaskApi) -> RecordingClient:
    return RecordingClient(LocalApiClient(api))


@pytest.fixture()
def controller(client: RecordingClient, session: LocalSession) -> BoardController:
    return BoardController(client, session)


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """AppState wired exactly like the CLI does it."""
    return create_initial_state(settings=settings)
