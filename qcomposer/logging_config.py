# qcomposer/logging_config.py
from __future__ import annotations

import logging

from rich.logging import RichHandler

from qcomposer.settings import get_settings

_CONFIGURED = False


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure root logging once (Rich console handler) and return the package logger.

    Level: explicit argument, else settings.LOG_LEVEL ($QCOMPOSER_LOG_LEVEL).
    """
    global _CONFIGURED
    lvl = (level or get_settings().LOG_LEVEL).upper()

    if not _CONFIGURED:
        logging.basicConfig(
            level=lvl,
            format="[%(name)s] %(message)s",
            datefmt="%H:%M:%S",
            handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        )
        # httpx logs every oracle request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
        _CONFIGURED = True
    else:
        logging.getLogger().setLevel(lvl)

    return logging.getLogger("qcomposer")
