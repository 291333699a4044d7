"""Logging setup for repolens.

Library modules log through ``logging.getLogger(__name__)`` and never install
handlers themselves; the CLI calls :func:`configure_logging` once.
Output goes to stderr so command output on stdout stays clean.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "repolens"
SECURITY_LOGGER = "repolens.security"

_HANDLER_NAME = "repolens-rich"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Attach a Rich stderr handler to the ``repolens`` logger (idempotent).

    Args:
        verbose: Log at DEBUG (per-batch progress) instead of INFO.

    Returns:
        The configured ``repolens`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    handler = next((h for h in logger.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
    handler.setLevel(level)
    return logger
