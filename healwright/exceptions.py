"""Exception hierarchy for healwright."""

from __future__ import annotations


class HealwrightError(Exception):
    """Base class for all healwright errors."""

    pass


class ConfigurationError(HealwrightError):
    """Raised when required configuration is missing or invalid.

    Fatal and never retried: a worker cannot launch a browser without it.
    """

    pass


class LocatorResolutionFailure(HealwrightError):
    """Raised when every locator of a set failed for an action.

    Parameters
    ----------
    action : str
        Ledger label of the action that was attempted
    locators : tuple[str, ...]
        Selectors that were tried, in order
    """

    def __init__(self, action: str, locators: tuple[str, ...]) -> None:
        self.action = action
        self.locators = locators
        super().__init__(
            f"Action Failed: None of the provided locators for '{action}' were found "
            f"(tried {len(locators)}: {', '.join(locators)})"
        )


class DataLookupError(HealwrightError):
    """Raised when the data provider has no record for a unique key."""

    pass


class WaitTimeoutError(HealwrightError):
    """Raised when a bounded polling wait expires."""

    pass
