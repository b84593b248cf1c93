"""Logging filters."""

import logging

from healwright.core.context import current_scenario


class ScenarioContextFilter(logging.Filter):
    """Attach the calling worker's scenario name to every record.

    Records logged outside a scenario get ``scenario = None``. A value
    already passed through ``extra`` is left alone.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "scenario"):
            record.scenario = current_scenario()

        return True
