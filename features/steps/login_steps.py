"""Login step definitions."""

import logging

from behave import given, then, when
from behave.runner import Context

logger = logging.getLogger(__name__)


@given("the user is on the login page")
def step_open_login_page(context: Context) -> None:
    context.login_page.open()
    logger.info("User navigated to application.")


@when("the user logs into the application with user credentials")
def step_login_with_sheet_credentials(context: Context) -> None:
    """Credentials come from the Login sheet row keyed by the scenario name."""
    data = context.test_data.get_test_data("Login", context.scenario.name)
    context.login_page.login(data["Username"], data["Password"])


@when('the user logs into the application with username "{username}" and password "{password}"')
def step_login_with_credentials(context: Context, username: str, password: str) -> None:
    context.login_page.login(username, password)


@then('the user should see the "{expected}" overview')
def step_verify_dashboard(context: Context, expected: str) -> None:
    assert context.dashboard_page.is_displayed(), "Dashboard failed to load!"

    actual = context.dashboard_page.header_text()
    assert actual == expected, f"Header title mismatch on Dashboard: expected {expected!r}, got {actual!r}"


@then('the user should see the "{expected}" error message')
def step_verify_error_message(context: Context, expected: str) -> None:
    actual = context.login_page.error_message()
    assert actual == expected, f"Expected error {expected!r}, got {actual!r}"
