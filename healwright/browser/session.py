"""Per-worker browser sessions: lazy launch and ordered teardown."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, expect, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from healwright.constants import CHROMIUM_ARGS, VIDEO_HEIGHT, VIDEO_WIDTH, BrowserVariant
from healwright.core.config import Settings
from healwright.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a worker's session."""

    UNALLOCATED = "unallocated"
    ALLOCATED = "allocated"
    LAUNCHED = "launched"
    CONTEXTUALIZED = "contextualized"
    PAGE_READY = "page_ready"
    FINALIZING = "finalizing"
    CLOSED = "closed"


@dataclass
class Session:
    """One worker's Playwright engine, browser, context and page.

    Handles are set to None as they are closed, so teardown steps can
    null-check instead of tracking which sub-resources are still open.
    """

    engine: Playwright | None = None
    browser: Browser | None = None
    context: BrowserContext | None = None
    page: Page | None = None
    state: SessionState = SessionState.UNALLOCATED
    video_path: Path | None = None


class SessionManager:
    """Owns one browser session per worker thread.

    Parameters
    ----------
    settings : Settings
        Browser variant, headless flag and timeout classes
    video_dir : Path | None
        Directory the recording context writes videos to. Defaults to
        ``<output_dir>/videos``
    playwright_factory : Callable[[], Any]
        Returns an object whose ``start()`` yields a Playwright engine
    """

    def __init__(
        self,
        settings: Settings,
        video_dir: Path | None = None,
        playwright_factory: Callable[[], Any] = sync_playwright,
    ) -> None:
        self.settings = settings
        self.video_dir = video_dir or Path(settings.get("output_dir")) / "videos"
        self.playwright_factory = playwright_factory
        self._local = threading.local()

    def current(self) -> Session | None:
        """Return the calling worker's session, or None if unallocated."""
        return getattr(self._local, "session", None)

    def acquire(self) -> Session:
        """Return the worker's ready session, launching it on first call.

        Repeated calls return the same session without relaunching.

        Raises
        ------
        ConfigurationError
            If no valid browser variant is configured or the launch fails
        RuntimeError
            If the session is being finalized and has not been released yet
        """
        session = self.current()

        if session is not None:
            if session.state is SessionState.PAGE_READY:
                return session
            raise RuntimeError(
                f"Session is {session.state.value}; release it before acquiring a new one"
            )

        variant = self._browser_variant()
        session = Session()
        self._local.session = session

        try:
            self._launch(session, variant)
        except Exception:
            self.release()
            raise

        return session

    def page(self) -> Page:
        """Return the worker's page, launching the session if needed."""
        page = self.acquire().page

        if page is None:
            raise RuntimeError("Session has no open page")

        return page

    def _browser_variant(self) -> BrowserVariant:
        name = self.settings.get("browser")

        if not name or not str(name).strip():
            logger.error("Browser name not specified in overrides or config files.")
            raise ConfigurationError(
                "Missing browser configuration: define 'browser' in the config files "
                "or pass it via HEALWRIGHT_BROWSER / --browser."
            )

        try:
            return BrowserVariant(str(name).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Provided browser '{name}' is not valid. "
                f"Available browsers: {[v.value for v in BrowserVariant]}"
            ) from None

    def _launch(self, session: Session, variant: BrowserVariant) -> None:
        headless = self.settings.get_bool("headless", True)
        logger.debug("Launching %s (headless=%s)", variant.value, headless)

        session.engine = self.playwright_factory().start()
        session.state = SessionState.ALLOCATED

        launch_kwargs: dict[str, Any] = {"headless": headless}
        if variant is BrowserVariant.CHROMIUM:
            launch_kwargs["args"] = list(CHROMIUM_ARGS)

        try:
            session.browser = getattr(session.engine, variant.value).launch(**launch_kwargs)
        except PlaywrightError as e:
            logger.error("Failed to launch %s: %s", variant.value, e)
            raise ConfigurationError(f"Failed to launch browser '{variant.value}': {e}") from e
        session.state = SessionState.LAUNCHED

        self.video_dir.mkdir(parents=True, exist_ok=True)
        session.context = session.browser.new_context(
            no_viewport=True,
            record_video_dir=str(self.video_dir),
            record_video_size={"width": VIDEO_WIDTH, "height": VIDEO_HEIGHT},
        )
        session.context.set_default_timeout(self.settings.get_int("timeouts.global_wait"))
        session.context.set_default_navigation_timeout(self.settings.get_int("timeouts.page_load"))
        expect.set_options(timeout=self.settings.get_int("timeouts.assertion"))
        logger.debug("Default assertion, global and navigation timeouts set")
        session.state = SessionState.CONTEXTUALIZED

        session.page = session.context.new_page()
        session.state = SessionState.PAGE_READY
        logger.debug('Browser "%s" launched successfully', variant.value)

    def close_page_and_context(self) -> Path | None:
        """Close the page and the recording context, keeping the browser.

        The video path is read while the page is still open; the recorder
        only finishes writing the file once the context closes.

        Returns
        -------
        Path | None
            Location of the recorded video, or None if nothing was recorded
        """
        session = self.current()

        if session is None:
            return None

        if session.page is not None:
            video = session.page.video
            if video is not None:
                try:
                    session.video_path = Path(video.path())
                except PlaywrightError as e:
                    logger.warning("Could not resolve video path: %s", e)

            self._dispose("page", session.page, lambda page: page.close())
            session.page = None

        if session.context is not None:
            self._dispose("context", session.context, lambda context: context.close())
            session.context = None

        session.state = SessionState.FINALIZING
        return session.video_path

    def release(self) -> None:
        """Tear down the worker's session: page, context, browser, engine.

        Missing or already-closed handles are skipped. A failing step is
        logged and teardown continues. The worker returns to unallocated.
        """
        session = self.current()

        if session is None:
            return

        self._dispose("page", session.page, lambda page: page.close())
        session.page = None
        self._dispose("context", session.context, lambda context: context.close())
        session.context = None
        self._dispose("browser", session.browser, lambda browser: browser.close())
        session.browser = None
        self._dispose("engine", session.engine, lambda engine: engine.stop())
        session.engine = None

        session.state = SessionState.CLOSED
        del self._local.session
        logger.debug("Session released")

    def _dispose(self, kind: str, handle: Any, dispose_fn: Callable[[Any], None]) -> None:
        if handle is None:
            logger.debug("Skipping %s close - not open", kind)
            return

        try:
            dispose_fn(handle)
            logger.debug("Browser %s closed successfully", kind)
        except Exception as e:
            logger.warning("Failed to close %s: %s", kind, e)
