"""Pytest configuration and fixtures for healwright tests."""

import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from healwright.core.config import ConfigLoader, Settings
from healwright.core.context import unbind_scenario
from healwright.core.ledger import FailureLedger

unit_root = Path(__file__).parent
project_root = unit_root.parent.parent
for path in (unit_root, project_root):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from fakes.fake_playwright import FakePlaywrightFactory  # noqa: E402


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep HEALWRIGHT_* variables and scenario bindings from leaking between tests.

    Yields
    ------
    None
        Control back to the test
    """
    for var in (
        "HEALWRIGHT_BROWSER",
        "HEALWRIGHT_HEADLESS",
        "HEALWRIGHT_URL",
        "HEALWRIGHT_THREADS",
        "HEALWRIGHT_RETRY",
        "HEALWRIGHT_CONFIG",
        "HEALWRIGHT_ENV",
        "HEALWRIGHT_DEBUG",
    ):
        monkeypatch.delenv(var, raising=False)

    unbind_scenario()
    yield
    unbind_scenario()


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Build Settings from the built-in defaults plus overrides.

    Returns
    -------
    Callable[..., Settings]
        Factory taking a nested override dict and an optional environment
    """

    def factory(overrides: dict[str, Any] | None = None, environment: str = "dev") -> Settings:
        values = {
            "output_dir": str(tmp_path / "out"),
            "browser": "chromium",
            "url": "https://example.test/login",
        }

        return ConfigLoader().load_config(
            config_path=str(tmp_path / "missing.yaml"),
            env=environment,
            overrides={**values, **(overrides or {})},
        )

    return factory


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture
def ledger() -> FailureLedger:
    return FailureLedger()


@pytest.fixture
def playwright_factory(tmp_path: Path) -> FakePlaywrightFactory:
    """Fake ``sync_playwright`` whose pages record a video under tmp_path."""
    video = tmp_path / "videos" / "recording.webm"
    video.parent.mkdir(parents=True, exist_ok=True)
    video.write_bytes(b"webm")
    return FakePlaywrightFactory(video_path=video)


@pytest.fixture(autouse=True)
def patched_expect() -> Generator[MagicMock, None, None]:
    """Keep session launches from changing Playwright's global assertion timeout."""
    with patch("healwright.browser.session.expect") as mock_expect:
        yield mock_expect
