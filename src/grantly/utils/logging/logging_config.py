"""
Centralized logging configuration for the engine's logger hierarchy.
"""

import logging
import re
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from ...config.timing_config import get_timing_config

ROOT_LOGGER = "grantly"

_TOKEN = re.compile(r"[^\s,'\"\[\]()]+")


class CapabilityRedactionFilter(logging.Filter):
    """
    Truncate over-long tokens in log messages.

    Capability identifiers come from callers and may be arbitrarily long;
    anything above the gate's identifier limit is cut with an ellipsis.
    """

    def __init__(self, max_length: Optional[int] = None):
        super().__init__()
        self.max_length = max_length or get_timing_config().max_capability_length

    def filter(self, record):
        message = record.getMessage()
        if len(message) <= self.max_length:
            return True
        shortened = _TOKEN.sub(self._shorten, message)
        if shortened != message:
            record.msg = shortened
            record.args = ()
        return True

    def _shorten(self, match) -> str:
        token = match.group(0)
        if len(token) <= self.max_length:
            return token
        return token[: self.max_length] + "…"


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """
    Configure the engine's logger hierarchy.

    Only the ``grantly`` logger is touched; loggers owned by the host
    application keep their configuration.

    Args:
        verbose: If True, emit DEBUG records through a rich handler. If False,
            only warnings and errors are shown.
        console: Console to render to; defaults to stderr

    Returns:
        The configured ``grantly`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if verbose:
        handler: logging.Handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.setLevel(logging.DEBUG)
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.setLevel(logging.WARNING)

    handler.addFilter(CapabilityRedactionFilter())
    logger.addHandler(handler)
    logger.propagate = False

    return logger
