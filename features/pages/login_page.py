"""Login page."""

import logging

from healwright.browser import ElementInteractor, LocatorSet
from healwright.core.config import Settings

logger = logging.getLogger(__name__)


class LoginPage:
    """OrangeHRM login form."""

    USERNAME = LocatorSet.of(
        "input[name='username']",
        "//input[@placeholder='Username']",
        "input.oxd-input",
    )
    PASSWORD = LocatorSet.of(
        "input[name='password']",
        "//input[@type='password']",
        "input.oxd-input--active",
    )
    LOGIN_BUTTON = LocatorSet.of(
        "button[type='submit']",
        "//button[contains(.,'Login')]",
        ".orangehrm-login-button",
    )
    ERROR_MESSAGE = LocatorSet.of(
        "div.orangehrm-login-error p",
        "//div[@class='orangehrm-login-error']//p",
        ".oxd-alert-content-text",
    )

    def __init__(self, interactor: ElementInteractor, settings: Settings) -> None:
        self.interactor = interactor
        self.settings = settings

    def open(self) -> None:
        self.interactor.navigate(self.settings.require("url"))
        self.interactor.wait_for_page_stable()

    def enter_credentials(self, username: str, password: str) -> None:
        self.interactor.fill(self.USERNAME, username)
        self.interactor.fill(self.PASSWORD, password)

    def submit(self) -> None:
        self.interactor.click(self.LOGIN_BUTTON)
        self.interactor.wait_for_page_stable()

    def login(self, username: str, password: str) -> None:
        self.enter_credentials(username, password)
        self.submit()
        logger.info("Logged in as %s", username)

    def error_message(self) -> str:
        return self.interactor.read_text(self.ERROR_MESSAGE)
