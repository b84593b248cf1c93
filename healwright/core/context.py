"""Worker-local binding of the scenario currently executing.

Each worker thread runs one scenario at a time. The binding lets the Failure
Ledger attribute a failed locator to the right scenario without every caller
of the interaction engine having to pass the name along.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

_local = threading.local()


def bind_scenario(name: str) -> None:
    """Bind ``name`` as the current scenario of the calling worker."""
    _local.scenario = name


def current_scenario() -> str | None:
    """Return the calling worker's scenario name, or None if unbound."""
    return getattr(_local, "scenario", None)


def unbind_scenario() -> None:
    """Clear the calling worker's scenario binding."""
    _local.__dict__.pop("scenario", None)


@contextmanager
def scenario_binding(name: str) -> Iterator[str]:
    """Bind a scenario for the duration of a block.

    The previous binding (if any) is restored on exit.

    Parameters
    ----------
    name : str
        Scenario name to bind

    Yields
    ------
    str
        The bound name
    """
    previous = current_scenario()
    bind_scenario(name)

    try:
        yield name
    finally:
        if previous is None:
            unbind_scenario()
        else:
            bind_scenario(previous)
