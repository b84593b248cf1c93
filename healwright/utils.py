"""Utility functions for healwright."""

import logging
import re
import sys
from datetime import datetime
from pathlib import Path

from healwright.constants import FAILED_LOCATOR_TIMESTAMP_FORMAT

_NON_WORD = re.compile(r"\W+")


def sanitize_scenario_name(name: str) -> str:
    """Turn a scenario name into a filesystem-safe file stem.

    Every run of non-word characters collapses into a single underscore, so
    ``"Login: bad password / locked"`` becomes ``"Login_bad_password_locked"``.

    Parameters
    ----------
    name : str
        Scenario name as reported by the BDD engine

    Returns
    -------
    str
        Sanitized name, or ``"scenario"`` if nothing usable remains
    """
    sanitized = _NON_WORD.sub("_", name).strip("_")
    return sanitized or "scenario"


def report_timestamp(now: datetime | None = None) -> str:
    """Format a timestamp for report filenames."""
    return (now or datetime.now()).strftime(FAILED_LOCATOR_TIMESTAMP_FORMAT)


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if missing and return it as a Path."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def parse_bool(value: str | bool | int | None) -> bool:
    """Parse a boolean-ish value from config, CLI or environment.

    Parameters
    ----------
    value : str | bool | int | None
        Value to parse; strings are matched case-insensitively

    Returns
    -------
    bool
        Parsed value

    Raises
    ------
    ValueError
        If a string value is not a recognised boolean spelling
    """
    if isinstance(value, bool):
        return value

    if value is None:
        return False

    if isinstance(value, int):
        return value != 0

    lowered = value.strip().lower()

    if lowered in ("true", "yes", "1", "on"):
        return True

    if lowered in ("false", "no", "0", "off", ""):
        return False

    raise ValueError(f"Invalid boolean value: '{value}'")


def log_and_print_error(message: str, *args: object) -> None:
    """Log error message and print it to stderr.

    Parameters
    ----------
    message : str
        Error message with optional %-style placeholders
    *args : object
        Values substituted into the message
    """
    logging.error(message, *args)
    print(message % args if args else message, file=sys.stderr)
