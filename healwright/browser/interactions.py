"""Self-healing element interactions over ordered fallback locators."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page

from healwright.constants import REPAINT_BUFFER_MS, URL_POLL_INTERVAL_MS
from healwright.core.config import Settings
from healwright.core.ledger import FailureLedger
from healwright.exceptions import LocatorResolutionFailure, WaitTimeoutError

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Interactions the engine performs; values are the ledger labels."""

    CLICK = "clickElement"
    FILL_TEXT = "enterText"
    READ_TEXT = "getElementText"
    CHECK_VISIBLE = "visibilityCheck"


@dataclass(frozen=True)
class LocatorSet:
    """Ordered, non-empty selectors for one logical element.

    The first selector is the primary; the rest are fallbacks tried in order.
    """

    selectors: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.selectors:
            raise ValueError("LocatorSet needs at least one selector")

        for selector in self.selectors:
            if not isinstance(selector, str) or not selector.strip():
                raise ValueError(f"Invalid selector in LocatorSet: {selector!r}")

    @classmethod
    def of(cls, *selectors: str) -> LocatorSet:
        return cls(tuple(selectors))

    @property
    def primary(self) -> str:
        return self.selectors[0]

    def __iter__(self) -> Iterator[str]:
        return iter(self.selectors)

    def __len__(self) -> int:
        return len(self.selectors)


class ElementInteractor:
    """Resolve elements through fallback locators and act on them.

    Parameters
    ----------
    page_provider : Callable[[], Page]
        Returns the calling worker's page, acquiring a session on first use
    ledger : FailureLedger
        Shared ledger receiving one entry per failed attempt
    settings : Settings
        Source of the global-wait and page-load timeouts

    Notes
    -----
    Click, fill and read split the global wait evenly across the locators of
    a set, so a whole fallback chain never waits longer than one global
    wait. The visibility probe gives every locator the full global wait.
    """

    def __init__(
        self,
        page_provider: Callable[[], Page],
        ledger: FailureLedger,
        settings: Settings,
    ) -> None:
        self.page_provider = page_provider
        self.ledger = ledger
        self.settings = settings

    @property
    def page(self) -> Page:
        return self.page_provider()

    @property
    def global_wait_ms(self) -> int:
        return self.settings.get_int("timeouts.global_wait")

    @property
    def page_load_ms(self) -> int:
        return self.settings.get_int("timeouts.page_load")

    def attempt_timeout(self, action: Action, locators: LocatorSet) -> float:
        """Timeout in milliseconds granted to each locator of ``locators``."""
        if action is Action.CHECK_VISIBLE:
            return float(self.global_wait_ms)

        return self.global_wait_ms / len(locators)

    def interact(
        self,
        action: Action,
        locators: LocatorSet,
        value: str | None = None,
    ) -> Any:
        """Perform ``action`` on the first locator of the set that resolves.

        Parameters
        ----------
        action : Action
            What to do with the element
        locators : LocatorSet
            Selectors to try, in priority order
        value : str | None
            Text to enter; required for FILL_TEXT

        Returns
        -------
        Any
            None for click and fill, the trimmed text for read, and a bool
            for the visibility probe

        Raises
        ------
        LocatorResolutionFailure
            If every locator failed for click, fill or read
        ValueError
            If FILL_TEXT is requested without a value
        """
        if action is Action.FILL_TEXT and value is None:
            raise ValueError("FILL_TEXT requires a value")

        page = self.page
        per_attempt = self.attempt_timeout(action, locators)

        if action in (Action.READ_TEXT, Action.CHECK_VISIBLE):
            try:
                self.wait_for_page_load(state="domcontentloaded")
            except PlaywrightError as e:
                logger.debug("DOM not ready before %s, trying locators anyway: %s", action.value, e)

        for selector in locators:
            try:
                result = self._attempt(page, action, selector, per_attempt, value)
            except PlaywrightError as e:
                logger.debug(
                    "Failed %s with selector %s within %.0fms: %s",
                    action.value,
                    selector,
                    per_attempt,
                    str(e).splitlines()[0] if str(e) else type(e).__name__,
                )
                self.ledger.record_failure(action.value, selector)
                continue

            logger.debug("%s succeeded with selector: %s", action.value, selector)

            if action is Action.CLICK:
                self.wait_for_page_load()

            return result

        if action is Action.CHECK_VISIBLE:
            logger.debug("None of %d selectors became visible", len(locators))
            return False

        raise LocatorResolutionFailure(action.value, locators.selectors)

    def _attempt(
        self,
        page: Page,
        action: Action,
        selector: str,
        timeout_ms: float,
        value: str | None,
    ) -> Any:
        deadline = time.monotonic() + timeout_ms / 1000

        def remaining() -> float:
            return max(1.0, (deadline - time.monotonic()) * 1000)

        locator: Locator = page.locator(selector).first
        locator.wait_for(state="visible", timeout=timeout_ms)

        if action is Action.CHECK_VISIBLE:
            return True

        if action is Action.CLICK:
            locator.click(timeout=remaining())
            return None

        if action is Action.FILL_TEXT:
            locator.fill(value or "", timeout=remaining())
            return None

        text = locator.text_content(timeout=remaining())
        return (text or "").strip()

    def click(self, locators: LocatorSet) -> None:
        self.interact(Action.CLICK, locators)

    def fill(self, locators: LocatorSet, value: str) -> None:
        self.interact(Action.FILL_TEXT, locators, value=value)

    def read_text(self, locators: LocatorSet) -> str:
        return self.interact(Action.READ_TEXT, locators)

    def is_visible(self, locators: LocatorSet) -> bool:
        return self.interact(Action.CHECK_VISIBLE, locators)

    def navigate(self, url: str) -> None:
        """Open ``url`` and wait until its DOM is ready."""
        self.page.goto(url, timeout=self.page_load_ms)
        self.wait_for_page_load(state="domcontentloaded")
        logger.debug("Navigated to %s", url)

    def wait_for_page_load(self, state: str = "load") -> None:
        """Block until the page reaches ``state``, bounded by the page-load timeout."""
        self.page.wait_for_load_state(state, timeout=self.page_load_ms)

    def wait_for_page_stable(self) -> None:
        """Wait for a visible body and, best effort, for network idle.

        Network idle is allowed to time out; pages with long polling never
        reach it.
        """
        page = self.page

        try:
            page.wait_for_selector("body", state="visible", timeout=self.global_wait_ms)
            page.wait_for_load_state("networkidle", timeout=self.page_load_ms)
        except PlaywrightError as e:
            logger.debug("Network idle not reached, continuing: %s", e)

        page.wait_for_timeout(REPAINT_BUFFER_MS)

    def wait_for_url(self, fragment: str) -> None:
        """Poll the page URL until it contains ``fragment`` (case-insensitive).

        Raises
        ------
        WaitTimeoutError
            If the global wait elapses first
        """
        page = self.page
        deadline = time.monotonic() + self.global_wait_ms / 1000

        while time.monotonic() < deadline:
            if fragment.lower() in page.url.lower():
                logger.debug('Found "%s" in current URL', fragment)
                return
            page.wait_for_timeout(URL_POLL_INTERVAL_MS)

        raise WaitTimeoutError(
            f"Timed out waiting for URL to contain: {fragment}. Current URL is: {page.url}"
        )

    def page_title(self) -> str:
        title = self.page.title()
        logger.debug("Current page title: %s", title)
        return title
