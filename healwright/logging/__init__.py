"""Logging setup shared by the CLI and the behave environment."""

import logging
import sys

from healwright.logging.filters import ScenarioContextFilter
from healwright.logging.formatters import ScenarioFormatter

__all__ = ["ScenarioContextFilter", "ScenarioFormatter", "configure_logging"]

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(threadName)s %(name)s - %(message)s"


def configure_logging(level: int | str = logging.INFO) -> logging.Handler:
    """Install a scenario-aware stdout handler on the root logger.

    Calling it again replaces the handler instead of stacking a second one.

    Parameters
    ----------
    level : int | str
        Root log level

    Returns
    -------
    logging.Handler
        The installed handler
    """
    root = logging.getLogger()

    for handler in list(root.handlers):
        if isinstance(handler.formatter, ScenarioFormatter):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ScenarioFormatter(LOG_FORMAT))
    handler.addFilter(ScenarioContextFilter())

    root.addHandler(handler)
    root.setLevel(level)
    return handler
