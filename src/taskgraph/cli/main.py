# src/taskgraph/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the admin console.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from .bootstrap import create_initial_state

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown; errors are logged, not raised."""
    try:
        state.close()
    except Exception:
        logger.debug("State close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    console_level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    if not isinstance(console_level, int):
        console_level = logging.INFO
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info(
                "Console disabled; database initialized at %s. Nothing else to run.", settings.db_path
            )
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
