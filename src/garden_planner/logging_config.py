"""Console logging setup for the CLI.

Library modules only create ``logging.getLogger(__name__)`` loggers; the
entry point decides where records go.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers kept at WARNING unless debugging
QUIET_LOGGERS = ("urllib3", "httpx", "prefect")

# Handler installed by the last configure_logging() call
_console_handler: logging.Handler | None = None


def configure_logging(debug: bool = False) -> logging.Handler:
    """Send garden_planner logs to stderr; DEBUG level when ``debug`` is set.

    Calling it again replaces the previously installed console handler.
    """
    global _console_handler
    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    if _console_handler is not None:
        root.removeHandler(_console_handler)
    root.addHandler(handler)
    root.setLevel(level)
    _console_handler = handler

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)
    return handler
