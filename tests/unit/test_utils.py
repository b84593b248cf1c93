from datetime import datetime
from pathlib import Path

import pytest

from healwright.utils import ensure_dir, parse_bool, report_timestamp, sanitize_scenario_name


class TestSanitizeScenarioName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Valid login", "Valid_login"),
            ("Login: bad password / locked", "Login_bad_password_locked"),
            ("  -- ", "scenario"),
            ("already_safe", "already_safe"),
        ],
    )
    def test_sanitize(self, name: str, expected: str) -> None:
        assert sanitize_scenario_name(name) == expected


class TestParseBool:
    @pytest.mark.parametrize("value", ["true", "YES", " 1 ", "on", True, 1])
    def test_truthy(self, value) -> None:
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "No", "0", "", None, False, 0])
    def test_falsy(self, value) -> None:
        assert parse_bool(value) is False

    def test_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="Invalid boolean value: 'maybe'"):
            parse_bool("maybe")


def test_report_timestamp() -> None:
    assert report_timestamp(datetime(2024, 3, 7, 9, 5, 1)) == "07032024_090501"


def test_ensure_dir_creates_parents(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b"

    assert ensure_dir(target) == target
    assert target.is_dir()
    assert ensure_dir(str(target)) == target
