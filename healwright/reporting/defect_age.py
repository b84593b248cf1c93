"""Defect age: how many consecutive runs a failing test has been failing.

Current-run results are the ``*-result.json`` files written by
allure-behave. History is Allure's ``history.json``, which maps a test's
stable ``historyId`` to its earlier outcomes::

    {"<historyId>": {"items": [{"status": "failed", "time": {"start": 1700000000000}}]}}
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from healwright.constants import DEFECT_AGE_REPORT_NAME, MILLISECONDS_PER_DAY

logger = logging.getLogger(__name__)

DEFECT_STATUSES = frozenset({"failed", "broken"})
CSV_HEADER = (
    "Test Name",
    "Identity",
    "Runs Failed",
    "Age(Days)",
    "First Failed",
    "Last Failed",
    "Error",
)
CSV_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class DefectAge:
    """Failure streak of one currently failing test.

    Attributes
    ----------
    identity : str
        Allure ``historyId``; stable across runs
    name : str
        Display name of the test
    consecutive_failures : int
        Current failure plus the unbroken run of failures before it
    first_failure : int
        Start of the earliest failure in the streak, epoch milliseconds
    last_failure : int
        Start of the current failure, epoch milliseconds
    error_message : str
        Failure message of the current run
    """

    identity: str
    name: str
    consecutive_failures: int
    first_failure: int
    last_failure: int
    error_message: str = ""

    @property
    def age_days(self) -> int:
        """Calendar span of the streak in days, counting a same-day streak as 1."""
        return (self.last_failure - self.first_failure) // MILLISECONDS_PER_DAY + 1

    def to_row(self) -> tuple[Any, ...]:
        return (
            self.name,
            self.identity,
            self.consecutive_failures,
            self.age_days,
            _format_ms(self.first_failure),
            _format_ms(self.last_failure),
            self.error_message,
        )


def _format_ms(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime(CSV_TIME_FORMAT)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Skipping unreadable result file %s: %s", path, e)
        return None


def load_current_failures(results_dir: str | Path) -> list[dict[str, Any]]:
    """Return the latest failed or broken result per ``historyId``.

    A test retried within the run leaves several result files; only its last
    attempt counts, and a test whose last attempt passed is not a defect.
    """
    latest: dict[str, dict[str, Any]] = {}

    for path in sorted(Path(results_dir).glob("*-result.json")):
        result = _read_json(path)

        if not isinstance(result, dict) or not result.get("historyId"):
            continue

        identity = result["historyId"]
        previous = latest.get(identity)

        if previous is None or result.get("start", 0) >= previous.get("start", 0):
            latest[identity] = result

    return [
        result
        for result in latest.values()
        if str(result.get("status", "")).lower() in DEFECT_STATUSES
    ]


def load_history(history_path: str | Path) -> dict[str, list[dict[str, Any]]]:
    """Load ``history.json`` as historyId -> items. A missing file is empty history."""
    path = Path(history_path)

    if not path.is_file():
        logger.warning("History file not found: %s", path)
        return {}

    data = _read_json(path)

    if not isinstance(data, dict):
        return {}

    history: dict[str, list[dict[str, Any]]] = {}

    for identity, entry in data.items():
        items = entry.get("items") if isinstance(entry, dict) else None
        if isinstance(items, list):
            history[identity] = [item for item in items if isinstance(item, dict)]

    return history


def _item_start(item: dict[str, Any]) -> int:
    time_info = item.get("time") or {}
    return int(time_info.get("start") or 0)


def compute_defect_age(
    result: dict[str, Any], history_items: Iterable[dict[str, Any]]
) -> DefectAge:
    """Compute the streak of one failing result against its history.

    History entries are walked from most recent to oldest; the walk stops at
    the first entry that is neither failed nor broken.
    """
    last_failure = int(result.get("start") or 0)
    first_failure = last_failure
    streak = 1

    for item in sorted(history_items, key=_item_start, reverse=True):
        if last_failure and _item_start(item) >= last_failure:
            continue

        if str(item.get("status", "")).lower() not in DEFECT_STATUSES:
            break

        streak += 1
        first_failure = _item_start(item)

    message = ((result.get("statusDetails") or {}).get("message") or "").strip()

    return DefectAge(
        identity=result["historyId"],
        name=result.get("fullName") or result.get("name") or result["historyId"],
        consecutive_failures=streak,
        first_failure=first_failure,
        last_failure=last_failure,
        error_message=message.splitlines()[0] if message else "",
    )


def aggregate(results_dir: str | Path, history_path: str | Path | None = None) -> list[DefectAge]:
    """Compute defect ages for every failing test of the run, oldest defect first.

    Parameters
    ----------
    results_dir : str | Path
        Allure results directory of the current run
    history_path : str | Path | None
        Allure ``history.json``; defaults to ``<results_dir>/history/history.json``

    Returns
    -------
    list[DefectAge]
        Sorted by age in days, then by streak length, both descending
    """
    results_dir = Path(results_dir)
    history = load_history(history_path or results_dir / "history" / "history.json")
    failures = load_current_failures(results_dir)

    ages = [compute_defect_age(result, history.get(result["historyId"], [])) for result in failures]
    ages.sort(key=lambda age: (age.age_days, age.consecutive_failures), reverse=True)

    logger.info("Found %d failing test(s) in %s", len(ages), results_dir)
    return ages


def write_report(ages: Iterable[DefectAge], output_path: str | Path) -> Path:
    """Write defect ages as CSV and return the report path."""
    path = Path(output_path)

    if path.is_dir() or not path.suffix:
        path = path / DEFECT_AGE_REPORT_NAME

    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(CSV_HEADER)
        writer.writerows(age.to_row() for age in ages)

    logger.info("Defect age report written to: %s", path)
    return path
