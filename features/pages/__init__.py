"""Page objects for the OrangeHRM demo application."""

from features.pages.dashboard_page import DashboardPage
from features.pages.login_page import LoginPage

__all__ = ["DashboardPage", "LoginPage"]
