"""Playwright sessions and self-healing interactions."""

from healwright.browser.interactions import Action, ElementInteractor, LocatorSet
from healwright.browser.session import Session, SessionManager, SessionState

__all__ = ["Action", "ElementInteractor", "LocatorSet", "Session", "SessionManager", "SessionState"]
