# src/taskboard/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from typing import Any, cast

from ..board.board_state import BoardState
from ..board.drag_engine import Card, Column, DropTarget
from ..core.state import AppState
from ..tasks.task_models import COLUMNS, Task, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID = 8


class CommandRegistry:
    """Slash-command registry used by the console (/help, /board, /move, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            return "Unbalanced quotes in command."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----

def _short(entity_id: str) -> str:
    return entity_id[:SHORT_ID]


def _parse_column(raw: str) -> TaskStatus | None:
    try:
        return TaskStatus.parse(raw)
    except ValueError:
        return None


async def _board(state: AppState) -> BoardState:
    controller = state.controller
    if not controller.state.loaded:
        await controller.load_board()
    return controller.state


async def _task_ref(state: AppState, ref: str) -> Task | None:
    return (await _board(state)).resolve_task_ref(ref)


def _format_task_line(board: BoardState, task: Task) -> str:
    bits = [f"[{_short(task.id)}] {task.title}", f"({task.priority.value})"]
    progress = board.progress(task)
    if progress.total:
        bits.append(progress.label)
    if task.assignee is not None:
        bits.append(f"@{task.assignee.name}")
    if task.project is not None:
        bits.append(f"#{task.project.name}")
    if task.due_date is not None:
        bits.append(f"due {task.due_date.isoformat()}")
    return " ".join(bits)


def render_board(board: BoardState, only: TaskStatus | None = None) -> str:
    lines: list[str] = []
    for column, tasks in board.columns().items():
        if only is not None and column != only:
            continue
        lines.append(f"== {column.value} ({len(tasks)})")
        if not tasks:
            lines.append("   (empty)")
        for task in tasks:
            lines.append("   " + _format_task_line(board, task))
    return "\n".join(lines)


def render_task(board: BoardState, task: Task) -> str:
    lines = [
        f"{task.title}  [{task.id}]",
        f"  Status:   {task.status.value}",
        f"  Priority: {task.priority.value}",
        f"  Project:  {task.project.name if task.project else '-'}",
        f"  Assignee: {task.assignee.name if task.assignee else '-'}",
        f"  Due:      {task.due_date.isoformat() if task.due_date else '-'}",
    ]
    if task.description:
        lines.append(f"  {task.description}")
    progress = board.progress(task)
    lines.append(f"  Subtasks: {progress.label}")
    for st in task.subtasks:
        mark = "x" if st.is_completed else " "
        lines.append(f"    [{mark}] {st.title}  ({_short(st.id)})")
    if task.attachments:
        lines.append("  Attachments: " + ", ".join(a.file_name for a in task.attachments))
    return "\n".join(lines)


# ---- session ----

async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_login(state: AppState, args: list[str]) -> str:
    name = " ".join(args).strip()
    if not name:
        return "Usage: /login <name>"
    user = await state.session.sign_in(name)
    await state.controller.load_board()
    return f"Signed in as {user.name}."


async def cmd_logout(state: AppState, args: list[str]) -> str:
    await state.session.sign_out()
    return "Signed out."


async def cmd_whoami(state: AppState, args: list[str]) -> str:
    user = await state.session.get_session()
    return f"Signed in as {user.name}." if user else "Not signed in. Use /login <name>."


# ---- board ----

async def cmd_board(state: AppState, args: list[str]) -> str:
    """
    /board            -> reload and show all columns
    /board <column>   -> reload and show one column
    """
    only = None
    if args:
        only = _parse_column(args[0])
        if only is None:
            return f"Unknown column: {args[0]}. Columns: {', '.join(c.value for c in COLUMNS)}"
    board = await state.controller.load_board()
    return render_board(board, only)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <column> <title...>"""
    if len(args) < 2:
        return "Usage: /add <column> <title>"
    column = _parse_column(args[0])
    if column is None:
        return f"Unknown column: {args[0]}"
    task = await state.controller.create_task(column, " ".join(args[1:]))
    if task is None:
        return "Title is empty; nothing created."
    return f"Created [{_short(task.id)}] {task.title} in {task.status.value}."


async def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <task>"
    task = await _task_ref(state, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."
    return render_task(state.controller.state, task)


async def cmd_open(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /open <task>"
    task = await _task_ref(state, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."
    state.controller.open_task(task.id)
    return render_task(state.controller.state, task)


async def cmd_close(state: AppState, args: list[str]) -> str:
    state.controller.close_task()
    return "Editor closed."


_EDIT_KEYS = {
    "title": "title",
    "description": "description",
    "desc": "description",
    "status": "status",
    "priority": "priority",
    "due": "dueDate",
    "project": "projectId",
    "assignee": "assigneeId",
}


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /edit <task> key=value ...

    Keys: title, description, status, priority, due, project, assignee.
    Use "none" to clear description/due/project/assignee. Project and assignee
    take names; unknown names are created.
    """
    target = None
    if args and "=" not in args[0]:
        target = await _task_ref(state, args[0])
        if target is None:
            return f"No task matches '{args[0]}'."
        args = args[1:]
    else:
        target = state.controller.state.editing_task
        if target is None:
            return "Usage: /edit <task> key=value ... (or /open a task first)"

    if not args:
        return "Nothing to change."

    body: dict[str, Any] = {}
    for pair in args:
        key, sep, value = pair.partition("=")
        wire = _EDIT_KEYS.get(key.lower())
        if not sep or wire is None:
            return f"Bad field '{pair}'. Keys: {', '.join(sorted(set(_EDIT_KEYS)))}"
        cleared = value.strip().lower() in ("", "none", "null")

        if wire == "projectId" and not cleared:
            project = await state.controller.resolve_or_create_project(value)
            if emit and project is not None:
                emit(f"Using project '{project.name}'.")
            body[wire] = project.id if project else None
        elif wire == "assigneeId" and not cleared:
            user = await state.controller.resolve_or_create_user(value)
            if emit and user is not None:
                emit(f"Using assignee '{user.name}'.")
            body[wire] = user.id if user else None
        elif cleared and wire in ("description", "dueDate", "projectId", "assigneeId"):
            body[wire] = None
        else:
            body[wire] = value

    task = await state.controller.update_task(target.id, body)
    return f"Updated [{_short(task.id)}] {task.title}."


async def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <task> <column>"""
    if len(args) != 2:
        return "Usage: /move <task> <column>"
    task = await _task_ref(state, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."
    column = _parse_column(args[1])
    if column is None:
        return f"Unknown column: {args[1]}"
    if task.status == column:
        return f"[{_short(task.id)}] already in {column.value}."
    moved = await state.controller.move_task(task.id, column)
    return f"Moved [{_short(moved.id)}] to {moved.status.value}."


async def cmd_drop(state: AppState, args: list[str]) -> str:
    """
    /drop <task> <column|task>

    Same rules as dragging a card: dropping on another card means that card's column.
    """
    if len(args) != 2:
        return "Usage: /drop <task> <column|task>"
    task = await _task_ref(state, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."

    over: DropTarget | None
    column = _parse_column(args[1])
    if column is not None:
        over = Column(column)
    else:
        over_task = state.controller.state.resolve_task_ref(args[1])
        over = Card(over_task.id) if over_task is not None else None

    transition = await state.controller.drop(over, task_id=task.id)
    if transition is None:
        return "No change."
    return (
        f"Moved [{_short(transition.task_id)}] "
        f"{transition.from_status.value} -> {transition.to_status.value}."
    )


async def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <task>"
    task = await _task_ref(state, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."
    await state.controller.delete_task(task.id)
    return f"Deleted [{_short(task.id)}] {task.title}."


# ---- subtasks ----

async def cmd_sub(state: AppState, args: list[str]) -> str:
    """/sub <task> <title...>"""
    if len(args) < 2:
        return "Usage: /sub <task> <title>"
    task = await _task_ref(state, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."
    subtask = await state.controller.create_subtask(task.id, " ".join(args[1:]))
    if subtask is None:
        return "Title is empty; nothing created."
    return f"Added subtask ({_short(subtask.id)}) to [{_short(task.id)}]."


async def cmd_toggle(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /toggle <subtask>"
    board = await _board(state)
    hit = board.find_subtask_owner(args[0])
    if hit is None:
        return f"No subtask matches '{args[0]}'."
    owner, subtask_id, done = hit
    subtask = await state.controller.toggle_subtask(subtask_id, done)
    mark = "done" if subtask.is_completed else "open"
    refreshed = state.controller.state.find_task(owner.id)
    if refreshed is None:
        return f"Subtask {_short(subtask.id)} is {mark}."
    return f"Subtask {_short(subtask.id)} is {mark} ({state.controller.state.progress(refreshed).label})."


# ---- projects / users ----

async def cmd_project(state: AppState, args: list[str]) -> str:
    if not args:
        board = await _board(state)
        return "Projects: " + (", ".join(p.name for p in board.projects) or "-")
    project = await state.controller.resolve_or_create_project(" ".join(args))
    return f"Project '{project.name}' ({_short(project.id)})." if project else "Name is empty."


async def cmd_user(state: AppState, args: list[str]) -> str:
    if not args:
        board = await _board(state)
        return "Users: " + (", ".join(u.name for u in board.users) or "-")
    user = await state.controller.resolve_or_create_user(" ".join(args))
    return f"User '{user.name}' ({_short(user.id)})." if user else "Name is empty."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("login", cmd_login, help_text="Sign in: /login <name>.")
registry.register("logout", cmd_logout, help_text="Sign out.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user.")
registry.register("board", cmd_board, help_text="Reload and show the board: /board [column].", aliases=["b"])
registry.register("add", cmd_add, help_text="Create a task: /add <column> <title>.")
registry.register("show", cmd_show, help_text="Show task details: /show <task>.")
registry.register("open", cmd_open, help_text="Open a task for editing: /open <task>.")
registry.register("close", cmd_close, help_text="Close the open task.")
registry.register(
    "edit", cmd_edit, help_text="Edit fields: /edit [task] title=... status=... due=none ..."
)
registry.register("move", cmd_move, help_text="Move a task: /move <task> <column>.", aliases=["mv"])
registry.register("drop", cmd_drop, help_text="Drop a task on a column or card: /drop <task> <target>.")
registry.register("rm", cmd_rm, help_text="Delete a task and its subtasks: /rm <task>.")
registry.register("sub", cmd_sub, help_text="Add a subtask: /sub <task> <title>.")
registry.register("toggle", cmd_toggle, help_text="Toggle a subtask: /toggle <subtask>.")
registry.register("project", cmd_project, help_text="List projects or ensure one: /project [name].")
registry.register("user", cmd_user, help_text="List users or ensure one: /user [name].")
