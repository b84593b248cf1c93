"""Unit tests for per-worker browser sessions."""

import threading
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from playwright.sync_api import Error as PlaywrightError

from fakes.fake_playwright import FakePlaywrightFactory
from healwright.browser.session import Session, SessionManager, SessionState
from healwright.core.config import Settings
from healwright.exceptions import ConfigurationError


@pytest.fixture
def manager(settings: Settings, playwright_factory: FakePlaywrightFactory, tmp_path: Path) -> SessionManager:
    return SessionManager(settings, video_dir=tmp_path / "videos", playwright_factory=playwright_factory)


class TestAcquire:
    def test_first_acquire_launches_everything(
        self, manager: SessionManager, playwright_factory: FakePlaywrightFactory
    ) -> None:
        session = manager.acquire()

        assert session.state is SessionState.PAGE_READY
        assert session.page is not None
        assert playwright_factory.events == [
            "engine.start",
            "launch:chromium",
            "new_context",
            "new_page",
        ]

    def test_acquire_is_idempotent(
        self, manager: SessionManager, playwright_factory: FakePlaywrightFactory
    ) -> None:
        first = manager.page()
        second = manager.page()

        assert first is second
        assert playwright_factory.events.count("launch:chromium") == 1
        assert len(playwright_factory.engines) == 1

    def test_context_configuration(
        self,
        manager: SessionManager,
        playwright_factory: FakePlaywrightFactory,
        patched_expect: MagicMock,
        tmp_path: Path,
    ) -> None:
        session = manager.acquire()
        context = session.context

        assert context.options["no_viewport"] is True
        assert context.options["record_video_dir"] == str(tmp_path / "videos")
        assert context.options["record_video_size"] == {"width": 1280, "height": 720}
        assert context.default_timeout == 30000
        assert context.navigation_timeout == 60000
        patched_expect.set_options.assert_called_once_with(timeout=10000)

    def test_chromium_gets_launch_args(
        self, manager: SessionManager, playwright_factory: FakePlaywrightFactory
    ) -> None:
        manager.acquire()

        launch = playwright_factory.engines[0].chromium.launches[0]
        assert launch["headless"] is True
        assert "--start-maximized" in launch["args"]

    @pytest.mark.parametrize("variant", ["firefox", "webkit", "FireFox "])
    def test_other_variants(
        self,
        variant: str,
        make_settings: Callable[..., Settings],
        playwright_factory: FakePlaywrightFactory,
        tmp_path: Path,
    ) -> None:
        manager = SessionManager(
            make_settings({"browser": variant, "headless": False}),
            video_dir=tmp_path / "videos",
            playwright_factory=playwright_factory,
        )

        manager.acquire()

        browser_type = getattr(playwright_factory.engines[0], variant.strip().lower())
        assert browser_type.launches == [{"headless": False}]

    def test_unknown_browser_is_fatal(
        self,
        make_settings: Callable[..., Settings],
        playwright_factory: FakePlaywrightFactory,
    ) -> None:
        manager = SessionManager(
            make_settings({"browser": "netscape"}), playwright_factory=playwright_factory
        )

        with pytest.raises(ConfigurationError, match="netscape"):
            manager.acquire()

        assert playwright_factory.engines == []
        assert manager.current() is None

    def test_missing_browser_is_fatal(
        self,
        make_settings: Callable[..., Settings],
        playwright_factory: FakePlaywrightFactory,
    ) -> None:
        manager = SessionManager(make_settings({"browser": None}), playwright_factory=playwright_factory)

        with pytest.raises(ConfigurationError, match="Missing browser"):
            manager.acquire()

    def test_launch_failure_stops_engine(
        self, settings: Settings, tmp_path: Path
    ) -> None:
        factory = FakePlaywrightFactory(launch_error=PlaywrightError("Executable doesn't exist"))
        manager = SessionManager(settings, video_dir=tmp_path / "videos", playwright_factory=factory)

        with pytest.raises(ConfigurationError, match="Failed to launch browser"):
            manager.acquire()

        assert factory.engines[0].stopped is True
        assert manager.current() is None

    def test_acquire_while_finalizing_is_rejected(self, manager: SessionManager) -> None:
        manager.acquire()
        manager.close_page_and_context()

        with pytest.raises(RuntimeError, match="finalizing"):
            manager.acquire()

    def test_page_requires_an_open_page(self, manager: SessionManager) -> None:
        with patch.object(manager, "acquire", return_value=Session()):
            with pytest.raises(RuntimeError, match="no open page"):
                manager.page()


class TestWorkerIsolation:
    def test_each_worker_gets_its_own_session(
        self, manager: SessionManager, playwright_factory: FakePlaywrightFactory
    ) -> None:
        pages = {}
        barrier = threading.Barrier(3)

        def worker(name: str) -> None:
            barrier.wait()
            pages[name] = manager.page()
            manager.release()

        threads = [threading.Thread(target=worker, args=(f"w{i}",)) for i in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len({id(page) for page in pages.values()}) == 3
        assert len(playwright_factory.engines) == 3
        assert all(engine.stopped for engine in playwright_factory.engines)

    def test_other_worker_sees_no_session(self, manager: SessionManager) -> None:
        manager.acquire()
        seen = []

        thread = threading.Thread(target=lambda: seen.append(manager.current()))
        thread.start()
        thread.join()

        assert seen == [None]
        assert manager.current() is not None


class TestTeardown:
    def test_release_order(
        self, manager: SessionManager, playwright_factory: FakePlaywrightFactory
    ) -> None:
        manager.acquire()
        playwright_factory.events.clear()

        manager.release()

        assert playwright_factory.events == [
            "page.close",
            "context.close",
            "browser.close",
            "engine.stop",
        ]
        assert manager.current() is None

    def test_video_path_read_before_page_close(
        self, manager: SessionManager, playwright_factory: FakePlaywrightFactory
    ) -> None:
        manager.acquire()
        playwright_factory.events.clear()

        video_path = manager.close_page_and_context()

        assert video_path == playwright_factory.video_path
        assert playwright_factory.events == ["video.path", "page.close", "context.close"]
        assert manager.current().state is SessionState.FINALIZING

    def test_release_after_partial_close_skips_closed_handles(
        self, manager: SessionManager, playwright_factory: FakePlaywrightFactory
    ) -> None:
        manager.acquire()
        manager.close_page_and_context()
        playwright_factory.events.clear()

        manager.release()

        assert playwright_factory.events == ["browser.close", "engine.stop"]

    def test_release_continues_after_close_error(
        self, manager: SessionManager, playwright_factory: FakePlaywrightFactory
    ) -> None:
        session = manager.acquire()
        session.context.close = MagicMock(side_effect=PlaywrightError("already gone"))

        manager.release()

        assert playwright_factory.events[-2:] == ["browser.close", "engine.stop"]
        assert manager.current() is None

    def test_release_without_session_is_noop(self, manager: SessionManager) -> None:
        manager.release()

        assert manager.current() is None

    def test_new_session_after_release(
        self, manager: SessionManager, playwright_factory: FakePlaywrightFactory
    ) -> None:
        first = manager.page()
        manager.release()

        second = manager.page()

        assert first is not second
        assert len(playwright_factory.engines) == 2
