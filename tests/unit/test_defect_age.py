"""Unit tests for the defect age aggregator."""

import csv
import json
from pathlib import Path

import pytest

from healwright.reporting.defect_age import (
    DefectAge,
    aggregate,
    compute_defect_age,
    load_current_failures,
    load_history,
    write_report,
)

DAY = 86_400_000
NOW = 1_700_000_000_000


def write_result(results_dir: Path, name: str, history_id: str, status: str, start: int, message: str = "") -> None:
    result = {
        "name": name,
        "fullName": f"Login: {name}",
        "historyId": history_id,
        "status": status,
        "start": start,
        "stop": start + 1000,
    }
    if message:
        result["statusDetails"] = {"message": message}
    (results_dir / f"{history_id}-{start}-result.json").write_text(json.dumps(result))


def history_items(*entries: tuple[str, int]) -> dict:
    return {"items": [{"status": status, "time": {"start": start}} for status, start in entries]}


@pytest.fixture
def results_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "allure-results"
    (directory / "history").mkdir(parents=True)
    return directory


def write_history(results_dir: Path, history: dict) -> None:
    (results_dir / "history" / "history.json").write_text(json.dumps(history))


class TestComputeDefectAge:
    def test_new_failure_has_streak_of_one(self) -> None:
        result = {"historyId": "h1", "name": "Valid login", "status": "failed", "start": NOW}

        age = compute_defect_age(result, [{"status": "passed", "time": {"start": NOW - DAY}}])

        assert age.consecutive_failures == 1
        assert age.first_failure == NOW
        assert age.age_days == 1

    def test_streak_stops_at_first_pass(self) -> None:
        result = {"historyId": "h1", "name": "Valid login", "status": "failed", "start": NOW}
        items = history_items(
            ("broken", NOW - 1 * DAY),
            ("failed", NOW - 2 * DAY),
            ("passed", NOW - 3 * DAY),
            ("failed", NOW - 4 * DAY),
        )["items"]

        age = compute_defect_age(result, items)

        assert age.consecutive_failures == 3
        assert age.first_failure == NOW - 2 * DAY
        assert age.last_failure == NOW
        assert age.age_days == 3

    def test_history_order_does_not_matter(self) -> None:
        result = {"historyId": "h1", "status": "failed", "start": NOW}
        items = history_items(("failed", NOW - 3 * DAY), ("passed", NOW - 5 * DAY), ("failed", NOW - DAY))["items"]

        assert compute_defect_age(result, items).consecutive_failures == 3

    def test_error_message_first_line(self) -> None:
        result = {
            "historyId": "h1",
            "status": "failed",
            "start": NOW,
            "statusDetails": {"message": "Action Failed: None of the provided locators\nstack"},
        }

        age = compute_defect_age(result, [])

        assert age.error_message == "Action Failed: None of the provided locators"
        assert age.name == "h1"


class TestLoading:
    def test_latest_attempt_wins(self, results_dir: Path) -> None:
        write_result(results_dir, "Flaky", "h1", "failed", NOW)
        write_result(results_dir, "Flaky", "h1", "passed", NOW + 1000)
        write_result(results_dir, "Broken", "h2", "broken", NOW)

        failures = load_current_failures(results_dir)

        assert [f["historyId"] for f in failures] == ["h2"]

    def test_unreadable_result_skipped(self, results_dir: Path) -> None:
        (results_dir / "bad-result.json").write_text("{not json")
        write_result(results_dir, "Valid login", "h1", "failed", NOW)

        assert len(load_current_failures(results_dir)) == 1

    def test_missing_history_is_empty(self, tmp_path: Path) -> None:
        assert load_history(tmp_path / "history.json") == {}


class TestAggregate:
    def test_sorted_by_age_descending(self, results_dir: Path) -> None:
        write_result(results_dir, "Young", "young", "failed", NOW)
        write_result(results_dir, "Old", "old", "failed", NOW, message="Header title mismatch")
        write_result(results_dir, "Passing", "ok", "passed", NOW)
        write_history(
            results_dir,
            {
                "young": history_items(("passed", NOW - DAY)),
                "old": history_items(("failed", NOW - 10 * DAY), ("failed", NOW - 20 * DAY)),
                "ok": history_items(("failed", NOW - DAY)),
            },
        )

        ages = aggregate(results_dir)

        assert [a.identity for a in ages] == ["old", "young"]
        assert ages[0].consecutive_failures == 3
        assert ages[0].age_days == 21
        assert ages[0].name == "Login: Old"
        assert ages[0].error_message == "Header title mismatch"

    def test_no_failures(self, results_dir: Path) -> None:
        write_result(results_dir, "Valid login", "h1", "passed", NOW)

        assert aggregate(results_dir) == []


class TestWriteReport:
    def test_csv_layout(self, tmp_path: Path) -> None:
        age = DefectAge("h1", "Login: Valid login", 2, NOW - DAY, NOW, "boom")

        report = write_report([age], tmp_path / "reports")

        assert report == tmp_path / "reports" / "defect-age-report.csv"
        rows = list(csv.reader(report.read_text().splitlines()))
        assert rows[0] == [
            "Test Name",
            "Identity",
            "Runs Failed",
            "Age(Days)",
            "First Failed",
            "Last Failed",
            "Error",
        ]
        assert rows[1][:4] == ["Login: Valid login", "h1", "2", "2"]
        assert rows[1][6] == "boom"

    def test_explicit_csv_path(self, tmp_path: Path) -> None:
        report = write_report([], tmp_path / "age.csv")

        assert report == tmp_path / "age.csv"
        assert report.read_text().startswith("Test Name,")
