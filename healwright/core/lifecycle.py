"""Scenario lifecycle: set up, capture evidence, tear down in a fixed order."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from healwright.browser.session import SessionManager
from healwright.constants import SCREENSHOT_SETTLE_MS, SCREENSHOT_TIMEOUT_MS, ScenarioStatus
from healwright.core.config import Settings
from healwright.core.context import bind_scenario, unbind_scenario
from healwright.reporting.attachments import AttachmentSink
from healwright.utils import ensure_dir, sanitize_scenario_name

logger = logging.getLogger(__name__)

__all__ = ["ScenarioLifecycle", "ScenarioRun", "ScenarioStatus", "status_from_behave"]


def status_from_behave(status: Any) -> ScenarioStatus:
    """Map a behave ``Status`` (or its name) onto a ScenarioStatus.

    behave reports ``failed``, ``error`` and ``hook_error`` for broken
    scenarios and ``untested`` for ones that never ran.
    """
    name = getattr(status, "name", str(status)).lower()

    if name in ("failed", "error", "hook_error", "cleanup_error"):
        return ScenarioStatus.FAILED

    if name == "passed":
        return ScenarioStatus.PASSED

    return ScenarioStatus.SKIPPED


@dataclass
class ScenarioRun:
    """State of one scenario execution, read by every lifecycle hook."""

    name: str
    status: ScenarioStatus = ScenarioStatus.PASSED
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.status is ScenarioStatus.FAILED


class ScenarioLifecycle:
    """Sequence the hooks around a scenario.

    Order per scenario: bind name, start tracing, run steps, final
    screenshot, trace, video (closes page and context), release browser and
    engine. Evidence capture never raises; a broken screenshot must not
    change the scenario outcome.

    Parameters
    ----------
    settings : Settings
        Capture flags and timeouts
    sessions : SessionManager
        Per-worker browser sessions
    sink : AttachmentSink
        Receives screenshots, traces and videos
    output_dir : Path | None
        Root for traces; defaults to ``output_dir`` from settings
    """

    def __init__(
        self,
        settings: Settings,
        sessions: SessionManager,
        sink: AttachmentSink,
        output_dir: Path | None = None,
    ) -> None:
        self.settings = settings
        self.sessions = sessions
        self.sink = sink
        self.output_dir = Path(output_dir or settings.get("output_dir"))

    @property
    def trace_dir(self) -> Path:
        return self.output_dir / "traces"

    def begin(self, name: str) -> ScenarioRun:
        """Bind the scenario to the calling worker before any step runs."""
        bind_scenario(name)
        logger.info("SCENARIO STARTED: %s", name)
        return ScenarioRun(name=name)

    def start_tracing(self) -> None:
        """Start recording actions, screenshots, DOM snapshots and sources.

        Acquires the worker's session, so the browser is launched here
        rather than lazily inside the first step.
        """
        context = self.sessions.acquire().context

        if context is None:
            raise RuntimeError("Session has no browser context")

        context.tracing.start(screenshots=True, snapshots=True, sources=True)
        logger.debug("Tracing started")

    def run(self, name: str, body: Callable[[ScenarioRun], None]) -> ScenarioRun:
        """Execute ``body`` inside the full lifecycle and return its outcome.

        An exception from ``body`` marks the run failed; it is kept on the
        run rather than raised so teardown always completes. This is the
        in-process entry point used by ``executor.lifecycle_job``; under
        behave the hooks call ``begin`` and ``finish`` directly.
        """
        scenario = self.begin(name)

        try:
            self.start_tracing()
            body(scenario)
        except Exception as e:
            scenario.status = ScenarioStatus.FAILED
            scenario.error = e
            logger.error("Scenario '%s' failed: %s", name, e)
        finally:
            self.finish(scenario)

        return scenario

    def finish(self, scenario: ScenarioRun) -> None:
        """Capture evidence and tear down, in order, whatever the outcome."""
        try:
            self.capture_final_screenshot(scenario)
            self.finalize_trace(scenario)
            self.finalize_video(scenario)
        finally:
            self.release(scenario)

    def capture_step_evidence(self, passed: bool) -> None:
        """Attach a step screenshot when the step outcome's flag is set."""
        flag = "passed" if passed else "failed"

        if not self.settings.get_bool(f"capture.screenshot.step.{flag}"):
            return

        try:
            session = self.sessions.current()
            page = session.page if session is not None else None

            if page is None or page.is_closed():
                return

            self.sink.attach(page.screenshot(), "Step Screenshot", "image/png", "png")
            logger.debug("Screenshot attached to %s step", flag)
        except Exception as e:
            logger.debug("Failed to attach step artifacts: %s", e)

    def capture_final_screenshot(self, scenario: ScenarioRun) -> None:
        """Take the end-of-scenario screenshot while the page is still open."""
        if not self.settings.get_bool(f"capture.screenshot.scenario.{scenario.status.value}"):
            return

        session = self.sessions.current()
        page = session.page if session is not None else None

        if page is None:
            logger.debug("No open page; skipping final screenshot")
            return

        label = f"Final Scenario Result - {scenario.status.value}"

        try:
            page.wait_for_load_state("load", timeout=self.settings.get_int("timeouts.page_load"))
            page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
            page.evaluate("() => window.scrollTo(0, 0)")
            page.wait_for_timeout(SCREENSHOT_SETTLE_MS)
            image = page.screenshot(full_page=True, timeout=SCREENSHOT_TIMEOUT_MS)
            self.sink.attach(image, label, "image/png", "png")
            logger.debug("Final screenshot attached")
        except Exception as e:
            logger.warning("Full-page capture failed: %s", e)
            try:
                self.sink.attach(
                    page.screenshot(full_page=False),
                    "Final Scenario Result (Visible Area Only)",
                    "image/png",
                    "png",
                )
            except Exception as fallback_error:
                logger.warning("Visible-area capture failed: %s", fallback_error)

    def finalize_trace(self, scenario: ScenarioRun) -> None:
        """Stop tracing; keep and attach the archive only for failures."""
        session = self.sessions.current()
        context = session.context if session is not None else None

        if context is None:
            logger.debug("No open context; skipping trace")
            return

        try:
            if not scenario.failed:
                context.tracing.stop()
                return

            trace_path = ensure_dir(self.trace_dir) / f"{sanitize_scenario_name(scenario.name)}.zip"
            context.tracing.stop(path=str(trace_path))
            self.sink.attach_file(trace_path, "Playwright Trace", "application/zip", "zip")
            logger.debug("Trace captured at %s", trace_path)
        except Exception as e:
            logger.error("Failed to capture trace: %s", e)

    def finalize_video(self, scenario: ScenarioRun) -> None:
        """Close page and context so the video lands on disk, then keep or drop it."""
        try:
            video_path = self.sessions.close_page_and_context()
        except Exception as e:
            logger.error("Failed to close page and context: %s", e)
            return

        if video_path is None:
            return

        try:
            if scenario.failed:
                self.sink.attach_file(video_path, "Execution Video", "video/webm", "webm")
                logger.debug("Video attached from %s", video_path)
            else:
                video_path.unlink(missing_ok=True)
        except Exception as e:
            logger.warning("Could not handle video %s: %s", video_path, e)

    def release(self, scenario: ScenarioRun) -> None:
        """Close browser and engine and drop the worker's scenario binding."""
        logger.info("SCENARIO FINISHED: %s | Status: %s", scenario.name, scenario.status.value)

        try:
            self.sessions.release()
        finally:
            unbind_scenario()
