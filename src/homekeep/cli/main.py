# src/homekeep/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds HomeData, waits for startup (migrations + first-run
seed), then either runs the slash command given on the command line or starts
the interactive console.

    homekeep                  # interactive
    homekeep /tasks upcoming  # one-shot
"""

from __future__ import annotations

import asyncio
import logging
import sys

from ..cli.bootstrap import create_home_data
from ..cli.commands import registry as command_registry
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(argv: list[str]) -> int:
    settings = get_settings()
    data = create_home_data(settings=settings)

    await data.ensure_ready()
    if data.initializer.exhausted:
        logger.warning("Startup did not complete; continuing with whatever data exists.")

    await data.refresh_all()

    if argv:
        line = " ".join(argv)
        if not line.startswith("/"):
            line = "/" + line
        response = await command_registry.handle(data, line)
        print(response)
        return 0

    await run_console_loop(data)
    return 0


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)
    logger.info("Starting %s...", settings.app_name)

    try:
        code = asyncio.run(_run(sys.argv[1:]))
    except KeyboardInterrupt:
        code = 130
    logger.info("Bye.")
    sys.exit(code)


if __name__ == "__main__":
    main()
