# src/taskboard/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import render_board
from ..core.errors import NotSignedInError, TaskBoardError
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def run_console_loop(state: AppState) -> None:
    """
    Line-oriented board console.

    Every line is a slash command; input is read in a worker thread so the
    event loop stays free while waiting for the user.
    """
    logger.info("Console connector started.")
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "taskboard"))
    _print_ts(f"[{app_name}] Use /help for commands. Use /exit to quit.\n")

    if await state.session.get_session() is not None:
        try:
            board = await state.controller.load_board()
            print(render_board(board), flush=True)
        except TaskBoardError as e:
            _print_ts(str(e))
    else:
        _print_ts("Not signed in. Use /login <name>.")

    while True:
        try:
            line = (await asyncio.to_thread(input, f"{app_name}> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not line.startswith("/"):
            _print_ts("Commands start with '/'. Use /help.")
            continue

        try:
            reply = await command_registry.handle(state, line, emit=_print_ts)
        except NotSignedInError:
            reply = "Not signed in. Use /login <name>."
        except TaskBoardError as e:
            reply = str(e)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            print(reply, flush=True)

    logger.info("Console connector finished.")
