"""Process-wide ledger of locators that failed to resolve."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from healwright.constants import FAILED_LOCATOR_REPORT_PREFIX, UNBOUND_SCENARIO
from healwright.core.context import current_scenario
from healwright.utils import ensure_dir, report_timestamp

logger = logging.getLogger(__name__)


@dataclass
class FailureRecord:
    """One failing locator and every scenario it broke.

    Attributes
    ----------
    locator : str
        Selector that failed to resolve
    action : str
        Action label of the first recorded failure
    impacted_scenarios : list[str]
        Distinct scenario names, in the order they first failed on this locator
    """

    locator: str
    action: str
    impacted_scenarios: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "locator": self.locator,
            "action": self.action,
            "impacted_scenarios": list(self.impacted_scenarios),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FailureRecord:
        return cls(
            locator=str(data["locator"]),
            action=str(data["action"]),
            impacted_scenarios=[str(s) for s in data.get("impacted_scenarios", [])],
        )


class FailureLedger:
    """Thread-safe aggregation of locator failures, keyed by locator string.

    All workers share one ledger. A single lock covers the lookup and the
    insert or append, so two workers failing on the same locator at the same
    time still produce one merged record.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, FailureRecord] = {}

    def record_failure(self, action: str, locator: str, scenario: str | None = None) -> None:
        """Record that ``locator`` failed while performing ``action``.

        Parameters
        ----------
        action : str
            Action label (``clickElement``, ``enterText``, ...)
        locator : str
            Selector that failed
        scenario : str | None
            Scenario to attribute the failure to. Defaults to the calling
            worker's bound scenario.
        """
        if scenario is None:
            scenario = current_scenario() or UNBOUND_SCENARIO

        with self._lock:
            record = self._records.get(locator)

            if record is None:
                self._records[locator] = FailureRecord(
                    locator=locator, action=action, impacted_scenarios=[scenario]
                )
                logger.debug("Locator added to failed locator ledger: %s", locator)
                return

            if scenario not in record.impacted_scenarios:
                record.impacted_scenarios.append(scenario)

    def merge(self, records: Iterable[FailureRecord]) -> None:
        """Fold already-aggregated records into this ledger.

        Used to consolidate reports written by separate worker processes.
        """
        for incoming in records:
            for scenario in incoming.impacted_scenarios:
                self.record_failure(incoming.action, incoming.locator, scenario=scenario)

    def records(self) -> list[FailureRecord]:
        """Return a snapshot of all records in first-insertion order."""
        with self._lock:
            return [
                FailureRecord(r.locator, r.action, list(r.impacted_scenarios))
                for r in self._records.values()
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, locator: object) -> bool:
        with self._lock:
            return locator in self._records

    def flush(self, output_dir: str | Path, now: datetime | None = None) -> Path | None:
        """Write the ledger to a timestamped JSON report.

        Nothing is written when the ledger is empty. The in-memory records are
        kept; a ledger is flushed once per run.

        Parameters
        ----------
        output_dir : str | Path
            Directory for the report (created if missing)
        now : datetime | None
            Timestamp for the filename; defaults to the current time

        Returns
        -------
        Path | None
            Path of the written report, or None if the ledger was empty
        """
        records = self.records()

        if not records:
            logger.debug("No failed locators recorded; skipping report")
            return None

        report_path = ensure_dir(output_dir) / (
            f"{FAILED_LOCATOR_REPORT_PREFIX}{report_timestamp(now)}.json"
        )

        try:
            report_path.write_text(
                json.dumps([r.to_dict() for r in records], indent=2) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            logger.error("Failed to write the failed locator report: %s", e)
            return None

        logger.info("Failed locator report generated: %s", report_path)
        return report_path

    @staticmethod
    def load_report(path: str | Path) -> list[FailureRecord]:
        """Load records back from a report written by :meth:`flush`.

        Raises
        ------
        ValueError
            If the file is not a JSON array of records
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))

        if not isinstance(data, list):
            raise ValueError(f"Failed locator report {path} must contain a JSON array")

        return [FailureRecord.from_dict(entry) for entry in data]
