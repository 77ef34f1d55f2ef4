"""Console logging setup. Call setup_logging() once at startup."""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s.%(funcName)s  %(message)s"
_HANDLER_NAME = "roomcheck-console"


def setup_logging(level: str | int = logging.INFO) -> None:
    """Configure the root logger with a console handler.

    Idempotent: a second call only adjusts the level.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    console.set_name(_HANDLER_NAME)
    root.addHandler(console)

    # Suppress noisy third-party loggers
    for name in ("httpx", "httpcore", "PIL", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)
