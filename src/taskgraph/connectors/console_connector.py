# src/taskgraph/connectors/console_connector.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def run_console_loop(
    state: AppState,
    *,
    read_line: InputFn = input,
    write: OutputFn = print,
) -> None:
    """Read slash commands until EOF, Ctrl+C or /exit."""
    logger.info("Console started db=%s", state.db.path)
    write(f"[{_ts_local()}] [CONSOLE] Type /help for commands. Use /exit to quit.")

    def emit(text: str) -> None:
        # Immediate user-visible feedback before a slow operation.
        write(f"[{_ts_local()}] {text}")

    while True:
        try:
            line = read_line("taskgraph> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            write("")
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            with state.lock:
                reply = command_registry.handle(state, line, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is None:
            reply = "Commands start with '/'. Use /help to list available commands."
        write(f"[{_ts_local()}] {reply}")
