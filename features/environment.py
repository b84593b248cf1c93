"""Behave environment wiring the healwright lifecycle into scenario hooks."""

import logging

from behave.contrib.scenario_autoretry import patch_scenario_with_autoretry
from behave.model import Feature, Scenario, Step
from behave.runner import Context

from features.pages import DashboardPage, LoginPage
from healwright.browser import ElementInteractor, SessionManager
from healwright.constants import ScenarioStatus
from healwright.core.config import ConfigLoader
from healwright.core.ledger import FailureLedger
from healwright.core.lifecycle import ScenarioLifecycle, status_from_behave
from healwright.data import ExcelDataProvider
from healwright.exceptions import ConfigurationError
from healwright.logging import configure_logging
from healwright.reporting.attachments import AllureAttachmentSink, write_environment_info

logger = logging.getLogger(__name__)


def before_all(context: Context) -> None:
    """Build the shared run components once per behave process.

    ``-D key=value`` userdata entries are applied as configuration overrides,
    e.g. ``behave -D browser=firefox -D timeouts.global_wait=5000``.
    """
    configure_logging()

    loader = ConfigLoader()
    overrides = [f"{key}={value}" for key, value in context.config.userdata.items()]
    settings = loader.load_config(overrides=overrides)
    loader.validate_config(settings)
    settings.require("browser")

    context.settings = settings
    # Kept on the root layer; attributes set in scenario hooks are dropped with the scenario.
    context.fatal_errors = []
    context.ledger = FailureLedger()
    context.sessions = SessionManager(settings)
    context.lifecycle = ScenarioLifecycle(settings, context.sessions, AllureAttachmentSink())
    context.interactor = ElementInteractor(context.sessions.page, context.ledger, settings)
    context.test_data = ExcelDataProvider.for_environment(settings)

    try:
        write_environment_info(settings)
    except OSError as e:
        logger.warning("Failed to write Allure environment info: %s", e)


def before_feature(context: Context, feature: Feature) -> None:
    """Re-run failing scenarios from scratch when ``retry`` is set."""
    retries = context.settings.get_int("retry", 0)

    if retries <= 0:
        return

    for scenario in feature.scenarios:
        patch_scenario_with_autoretry(scenario, max_attempts=retries + 1)


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Bind the scenario to this worker and start recording.

    A ``ConfigurationError`` while launching the browser aborts the run.
    Later attempts of the same scenario (autoretry) fail on the stored error
    without launching again.
    """
    if context.fatal_errors:
        raise context.fatal_errors[0]

    context.scenario_run = context.lifecycle.begin(scenario.name)
    context.login_page = LoginPage(context.interactor, context.settings)
    context.dashboard_page = DashboardPage(context.interactor)

    try:
        context.lifecycle.start_tracing()
    except ConfigurationError as e:
        context.fatal_errors.append(e)
        context.abort(reason=f"Configuration error: {e}")
        raise


def after_step(context: Context, step: Step) -> None:
    """Attach step evidence when enabled for the step outcome."""
    passed = status_from_behave(step.status) is ScenarioStatus.PASSED
    context.lifecycle.capture_step_evidence(passed)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Capture artifacts and release the browser, in that order."""
    run = getattr(context, "scenario_run", None)

    if run is None:
        return

    run.status = status_from_behave(scenario.status)
    context.lifecycle.finish(run)
    context.scenario_run = None


def after_all(context: Context) -> None:
    """Write the failed locator report once, after every scenario has finished."""
    ledger = getattr(context, "ledger", None)

    if ledger is None:
        return

    report = ledger.flush(context.settings.get("ledger.dir"))

    if report is not None:
        logger.info("%d locator(s) needed a fallback; see %s", len(ledger), report)
