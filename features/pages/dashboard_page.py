"""Dashboard page."""

from healwright.browser import ElementInteractor, LocatorSet


class DashboardPage:
    """Landing page after a successful login."""

    HEADER = LocatorSet.of(
        "h6.oxd-text--h6",
        "//h6[text()='Dashboard']",
        ".oxd-topbar-header-breadcrumb-module",
    )

    def __init__(self, interactor: ElementInteractor) -> None:
        self.interactor = interactor

    def is_displayed(self) -> bool:
        """Wait for the dashboard URL, then probe the header."""
        self.interactor.wait_for_url("dashboard")
        return self.interactor.is_visible(self.HEADER)

    def header_text(self) -> str:
        return self.interactor.read_text(self.HEADER)
