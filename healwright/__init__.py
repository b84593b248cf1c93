"""healwright - self-healing Playwright harness for behave suites."""

__version__ = "0.1.0"
