# tests/test_commands.py

from __future__ import annotations

import pytest

from taskboard.cli.commands import CommandRegistry, registry
from taskboard.core.errors import NotSignedInError, ValidationError
from taskboard.core.state import AppState
from taskboard.tasks.task_models import TaskStatus


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state: AppState) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    async def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert await reg.handle(state, '/a x "y z"') == "h2:x,y z"
    assert await reg.handle(state, "/AA") == "h2:"
    assert await reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")
    assert "Unbalanced" in (await reg.handle(state, '/a "open') or "")


@pytest.mark.asyncio
async def test_add_move_and_board(state: AppState) -> None:
    reply = await registry.handle(state, "/add todo Draft release notes")
    assert "Created" in reply and "Backlog" in reply

    (task,) = state.controller.state.tasks
    short = task.id[:8]

    reply = await registry.handle(state, f"/move {short} review")
    assert "Review" in reply
    assert "already in Review" in await registry.handle(state, f"/move {short} Review")

    board = await registry.handle(state, "/board")
    assert "== Review (1)" in board
    assert "Draft release notes" in board
    assert "== Backlog (0)" in board


@pytest.mark.asyncio
async def test_drop_same_column_reports_no_change(state: AppState) -> None:
    await registry.handle(state, "/add backlog a")
    await registry.handle(state, "/add done b")
    board = state.controller.state
    a = next(t for t in board.tasks if t.title == "a")
    b = next(t for t in board.tasks if t.title == "b")

    assert await registry.handle(state, f"/drop {a.id} backlog") == "No change."
    reply = await registry.handle(state, f"/drop {a.id} {b.id}")
    assert "Backlog -> Done" in reply
    assert state.controller.state.find_task(a.id).status is TaskStatus.DONE


@pytest.mark.asyncio
async def test_edit_creates_project_and_clears_fields(state: AppState) -> None:
    await registry.handle(state, "/add backlog x")
    (task,) = state.controller.state.tasks
    notes: list[str] = []

    reply = await registry.handle(
        state,
        f'/edit {task.id} priority=high due=2025-11-30 project=Website "desc=hello world"',
        emit=notes.append,
    )
    assert "Updated" in reply
    assert notes == ["Using project 'Website'."]

    edited = state.controller.state.find_task(task.id)
    assert edited.priority.value == "High"
    assert edited.project is not None and edited.project.name == "Website"
    assert edited.description == "hello world"

    await registry.handle(state, f"/edit {task.id} project=none due=none")
    cleared = state.controller.state.find_task(task.id)
    assert cleared.project is None
    assert cleared.due_date is None
    assert cleared.description == "hello world"


@pytest.mark.asyncio
async def test_subtasks_and_delete(state: AppState) -> None:
    await registry.handle(state, "/add backlog x")
    (task,) = state.controller.state.tasks

    await registry.handle(state, f"/sub {task.id} first step")
    await registry.handle(state, f"/sub {task.id} second step")
    sub = state.controller.state.find_task(task.id).subtasks[0]

    reply = await registry.handle(state, f"/toggle {sub.id}")
    assert "done" in reply and "1/2" in reply

    shown = await registry.handle(state, f"/show {task.id}")
    assert "Subtasks: 1/2" in shown
    assert "[x] first step" in shown

    assert "Deleted" in await registry.handle(state, f"/rm {task.id}")
    assert state.controller.state.tasks == ()
    assert state.store.count_orphans() == 0


@pytest.mark.asyncio
async def test_logout_then_board_requires_login(state: AppState) -> None:
    assert "alice" in await registry.handle(state, "/whoami")
    await registry.handle(state, "/logout")

    with pytest.raises(NotSignedInError):
        await registry.handle(state, "/board")

    assert "bob" in await registry.handle(state, "/login bob")


@pytest.mark.asyncio
async def test_login_with_blank_name_is_rejected(state: AppState) -> None:
    assert await registry.handle(state, '/login " "') == "Usage: /login <name>"
    assert await registry.handle(state, "/login") == "Usage: /login <name>"

    with pytest.raises(ValidationError, match="Name is required"):
        await state.session.sign_in("   ")

    user = await state.session.get_session()
    assert user is not None and user.name == "alice"
