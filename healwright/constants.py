"""Global constants for healwright.

Values here are defaults and fixed tuning knobs shared by the interaction
engine, the session manager and the scenario lifecycle. Anything a project is
expected to change lives in configuration instead (see core/config.py).
"""

from enum import Enum

DEFAULT_GLOBAL_WAIT_MS = 30000
"""Default global element-wait budget in milliseconds.

Split across the locators of a set for click, fill and read actions, so the
worst case for a whole fallback chain stays at one global wait.
"""

DEFAULT_PAGE_LOAD_MS = 60000
"""Default navigation and load-state timeout in milliseconds."""

DEFAULT_ASSERTION_MS = 10000
"""Default timeout in milliseconds for Playwright ``expect`` assertions."""

URL_POLL_INTERVAL_MS = 500
"""Delay in milliseconds between URL checks while waiting for a navigation."""

REPAINT_BUFFER_MS = 200
"""Fixed pause in milliseconds after a page settles.

Gives the browser a frame or two to repaint before the next interaction or
screenshot.
"""

SCREENSHOT_SETTLE_MS = 500
"""Pause in milliseconds after scrolling, before a full-page screenshot."""

SCREENSHOT_TIMEOUT_MS = 15000
"""Timeout in milliseconds for a single full-page screenshot."""

VIDEO_WIDTH = 1280
"""Recorded video width in pixels."""

VIDEO_HEIGHT = 720
"""Recorded video height in pixels."""

CHROMIUM_ARGS = (
    "--start-maximized",
    "--disable-extensions",
    "--allow-insecure-localhost",
)
"""Extra command-line switches passed to Chromium at launch."""

DEFAULT_OUTPUT_DIR = "test-output"
"""Root directory for ledger reports, traces and videos."""

FAILED_LOCATOR_REPORT_PREFIX = "failed_locators_"
"""Filename prefix of the Failure Ledger JSON report."""

FAILED_LOCATOR_TIMESTAMP_FORMAT = "%d%m%Y_%H%M%S"
"""strftime pattern used to timestamp the Failure Ledger report."""

UNBOUND_SCENARIO = "<unbound>"
"""Scenario label recorded when a failure happens outside any scenario."""

DATA_KEY_COLUMN = "ScenarioName"
"""Column of a test-data sheet holding the unique scenario key."""

DEFECT_AGE_REPORT_NAME = "defect-age-report.csv"
"""Filename of the CSV written by the defect age aggregator."""

MILLISECONDS_PER_DAY = 86_400_000
"""Number of milliseconds in one day."""

EXIT_SUCCESS = 0
"""Exit code indicating successful program completion."""

EXIT_ERROR = 1
"""Exit code indicating failed scenarios or a general error."""

EXIT_CONFIG_ERROR = 2
"""Exit code indicating a configuration error."""


class BrowserVariant(str, Enum):
    """Browser engines a session can launch."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class ScenarioStatus(str, Enum):
    """Outcome of one scenario run."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
