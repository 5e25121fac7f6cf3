"""
Vet booking assistant entry point.

Runs the chat booking flow in the terminal against in-memory stores.

Usage:
    Interactive:  python main.py
    Scenario:     python main.py scenario booking
"""

import logging
import sys

from vetbook.config import settings

logger = logging.getLogger(__name__)


def _run_console_mode() -> None:
    """Start the interactive console chat."""
    from console_demo import ConsoleSession

    logger.info("Starting %s for %s", settings.assistant_name, settings.clinic.name)
    ConsoleSession().run()


def _run_scenario(name: str) -> None:
    from console_demo import ConsoleSession

    ConsoleSession().run_scenario(name)


if __name__ == "__main__":
    if len(sys.argv) > 2 and sys.argv[1] == "scenario":
        _run_scenario(sys.argv[2])
    else:
        _run_console_mode()
