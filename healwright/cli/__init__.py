"""Command-line interface."""

from healwright.cli.main import HealwrightCLI, main

__all__ = ["HealwrightCLI", "main"]
