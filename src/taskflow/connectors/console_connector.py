# src/taskflow/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.bootstrap import persist_tasks
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..dates.date_parser import format_due_date
from ..tasks.task_api import add_task_from_input

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def handle_line(state: AppState, line: str) -> str | None:
    """
    One REPL step: slash commands go to the registry, anything else adds a task.
    Autosaves after a mutation when enabled.
    """
    line = line.strip()
    if not line:
        return None

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (e.g., import)
        print(f"[{_ts_local()}] {text}", flush=True)

    try:
        reply = command_registry.handle(state, line, emit=emit)
        if reply is None:
            task = add_task_from_input(state, line)
            if task is None:
                reply = "Task text cannot be empty."
            elif task.due_date is not None:
                reply = f"Task added #{task.id} (Due: {format_due_date(task.due_date)})"
            else:
                reply = f"Task added #{task.id}"
    except Exception:
        logger.exception("Command handler crashed.")
        return "Internal error while handling a command."

    if state.dirty and state.autosave and not persist_tasks(state):
        reply += "\n(autosave failed, see log)"
    return reply


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (autosave=%s).", state.autosave)
    _print_ts("[CONSOLE] Type a task to add it. Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            user_input = input("> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        reply = handle_line(state, user_input)
        if reply is not None:
            print(reply)

    logger.info("Console connector finished.")
