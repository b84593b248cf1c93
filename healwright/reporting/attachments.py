"""Allure-backed attachment sink and environment metadata."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import allure

from healwright.core.config import Settings
from healwright.utils import ensure_dir

logger = logging.getLogger(__name__)


class AttachmentSink(Protocol):
    """Anything that can receive named evidence for the current test."""

    def attach(self, body: bytes, name: str, mime_type: str, extension: str) -> None:
        ...

    def attach_file(self, path: Path, name: str, mime_type: str, extension: str) -> None:
        ...


class AllureAttachmentSink:
    """Attach evidence to the running Allure test case.

    Outside an Allure-instrumented run the calls are no-ops, so the same
    lifecycle code works under plain behave and under unit tests.
    """

    def attach(self, body: bytes, name: str, mime_type: str, extension: str) -> None:
        allure.attach(body, name=name, attachment_type=mime_type, extension=extension)
        logger.debug("Attached %s (%s, %d bytes)", name, mime_type, len(body))

    def attach_file(self, path: Path, name: str, mime_type: str, extension: str) -> None:
        allure.attach.file(str(path), name=name, attachment_type=mime_type, extension=extension)
        logger.debug("Attached %s from %s", name, path)


def write_environment_info(settings: Settings, results_dir: str | Path | None = None) -> Path:
    """Write Allure's ``environment.properties`` for the report header.

    Parameters
    ----------
    settings : Settings
        Resolved configuration of the run
    results_dir : str | Path | None
        Allure results directory; defaults to ``allure.results_dir``

    Returns
    -------
    Path
        Path of the written file
    """
    directory = ensure_dir(results_dir or settings.get("allure.results_dir", "allure-results"))
    env_file = directory / "environment.properties"

    lines = [
        f"Environment={settings.environment}",
        f"Browser={settings.get('browser', '')}",
        f"URL={settings.get('url', '')}",
        f"Headless={str(settings.get_bool('headless', True)).lower()}",
    ]
    env_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.debug("Wrote Allure environment info to %s", env_file)
    return env_file
