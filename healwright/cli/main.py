"""CLI entry point for healwright."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Any, Callable, Sequence

import fire

from healwright.constants import EXIT_CONFIG_ERROR, EXIT_ERROR, ScenarioStatus
from healwright.core.config import ConfigLoader, Settings
from healwright.core.executor import ScenarioExecutor
from healwright.core.ledger import FailureLedger
from healwright.exceptions import ConfigurationError, DataLookupError
from healwright.logging import configure_logging
from healwright.reporting import defect_age as defect_age_report
from healwright.reporting.attachments import write_environment_info
from healwright.utils import log_and_print_error, sanitize_scenario_name

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


class HealwrightCLI:
    """Command-line interface for running and reporting on UI suites.

    Parameters
    ----------
    runner : Callable[..., subprocess.CompletedProcess] | None
        Executes one behave worker process; defaults to ``subprocess.run``
    config_loader : ConfigLoader | None
        Loader used to build settings for each command
    """

    def __init__(
        self,
        runner: Runner | None = None,
        config_loader: ConfigLoader | None = None,
    ) -> None:
        self._runner = runner or subprocess.run
        self._config_loader = config_loader or ConfigLoader()

    def _settings(self, env: str | None, overrides: dict[str, Any]) -> Settings:
        settings = self._config_loader.load_config(
            env=env, overrides={k: v for k, v in overrides.items() if v is not None}
        )
        self._config_loader.validate_config(settings)
        return settings

    def run(
        self,
        features: str = "features",
        tags: str | None = None,
        env: str | None = None,
        browser: str | None = None,
        headless: bool | None = None,
        workers: int | None = None,
    ) -> dict[str, Any]:
        """Run every feature file in its own behave process.

        Parameters
        ----------
        features : str
            Feature file or directory of feature files
        tags : str | None
            behave tag expression
        env : str | None
            Execution environment (selects ``config/<env>.yaml``)
        browser : str | None
            chromium, firefox or webkit
        headless : bool | None
            Run browsers without a window
        workers : int | None
            Feature files run at the same time; defaults to ``threads``

        Returns
        -------
        dict[str, Any]
            Per-feature status and the combined failed locator report path
        """
        settings = self._settings(env, {"browser": browser, "headless": headless})
        settings.require("browser")
        feature_files = self._discover(features)

        if not feature_files:
            raise ValueError(f"No feature files found under {features}")

        output_dir = Path(settings.get("output_dir"))
        shutil.rmtree(output_dir / "ledger", ignore_errors=True)
        results_dir = settings.get("allure.results_dir")
        write_environment_info(settings, results_dir)

        jobs = [
            (str(path), self._behave_job(path, settings, output_dir, results_dir, tags))
            for path in feature_files
        ]
        pool_size = workers or settings.get_int("threads")
        results = ScenarioExecutor(workers=pool_size).run(jobs)

        combined = self._combine_ledgers(output_dir)
        failed = [result.name for result in results if result.failed]

        summary = {
            "features": {result.name: result.status.value for result in results},
            "failed_locator_report": str(combined) if combined else None,
        }

        if failed:
            log_and_print_error("%d of %d feature(s) failed", len(failed), len(results))
            sys.exit(EXIT_ERROR)

        return summary

    def _discover(self, features: str) -> list[Path]:
        path = Path(features)

        if path.is_file():
            return [path]

        return sorted(path.rglob("*.feature"))

    def _behave_job(
        self,
        feature: Path,
        settings: Settings,
        output_dir: Path,
        results_dir: str,
        tags: str | None,
    ) -> Callable[[], ScenarioStatus]:
        ledger_dir = output_dir / "ledger" / sanitize_scenario_name(feature.stem)

        command = [
            sys.executable,
            "-m",
            "behave",
            str(feature),
            "--no-capture",
            "-f",
            "allure_behave.formatter:AllureFormatter",
            "-o",
            results_dir,
            "-f",
            "pretty",
            "-D",
            f"ledger.dir={ledger_dir}",
        ]

        if tags:
            command.extend(["--tags", tags])

        env = dict(os.environ)
        env["HEALWRIGHT_ENV"] = settings.environment
        env["HEALWRIGHT_BROWSER"] = str(settings.get("browser", ""))
        env["HEALWRIGHT_HEADLESS"] = str(settings.get_bool("headless", True)).lower()

        def job() -> ScenarioStatus:
            logger.info("Running %s", feature)
            completed = self._runner(command, env=env, check=False)
            return ScenarioStatus.PASSED if completed.returncode == 0 else ScenarioStatus.FAILED

        return job

    def _combine_ledgers(self, output_dir: Path) -> Path | None:
        """Merge the per-process ledger reports into one timestamped run report."""
        ledger = FailureLedger()

        for report in sorted((output_dir / "ledger").glob("*/failed_locators_*.json")):
            try:
                ledger.merge(FailureLedger.load_report(report))
            except (OSError, ValueError, KeyError) as e:
                logger.warning("Skipping unreadable ledger report %s: %s", report, e)

        combined = ledger.flush(output_dir)

        if combined is not None:
            logger.info("Combined failed locator report: %s", combined)

        return combined

    def defect_age(
        self,
        results_dir: str = "allure-results",
        history: str | None = None,
        output: str = "test-output",
    ) -> str:
        """Write the defect age CSV for the failing tests of the last run.

        Parameters
        ----------
        results_dir : str
            Allure results directory of the run
        history : str | None
            Allure ``history.json``; defaults to ``<results_dir>/history/history.json``
        output : str
            Directory or CSV path for the report

        Returns
        -------
        str
            Path of the written report
        """
        ages = defect_age_report.aggregate(results_dir, history)
        report = defect_age_report.write_report(ages, output)

        for age in ages:
            print(f"{age.name}: failing for {age.consecutive_failures} run(s), {age.age_days} day(s)")

        return str(report)

    def env_info(self, env: str | None = None, results_dir: str | None = None) -> str:
        """Write Allure's environment.properties for the given environment."""
        settings = self._settings(env, {})
        return str(write_environment_info(settings, results_dir))


def handle_configuration_error(error: ConfigurationError, debug_mode: bool) -> None:
    """Handle invalid or missing configuration.

    Parameters
    ----------
    error : ConfigurationError
        The configuration error that was raised
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ConfigurationError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"Configuration error: {error}\n", file=sys.stderr)
    print("Check config/healwright.yaml, config/<env>.yaml and HEALWRIGHT_* variables.", file=sys.stderr)
    sys.exit(EXIT_CONFIG_ERROR)


def handle_data_error(error: DataLookupError, debug_mode: bool) -> None:
    """Handle a missing test data file, sheet or row.

    Raises
    ------
    DataLookupError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"Test data error: {error}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def handle_value_error(error: ValueError, debug_mode: bool) -> None:
    """Handle invalid command arguments.

    Raises
    ------
    ValueError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"Error: {error}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def handle_os_error(error: OSError, debug_mode: bool) -> None:
    """Handle filesystem or process launch errors.

    Raises
    ------
    OSError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise error

    print(f"I/O error: {error}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for Fire CLI with graceful error handling.

    Set ``HEALWRIGHT_DEBUG=1`` to get full tracebacks instead of one-line
    error messages.
    """
    debug_mode = os.environ.get("HEALWRIGHT_DEBUG") == "1"
    configure_logging(logging.DEBUG if debug_mode else logging.INFO)

    try:
        fire.Fire(HealwrightCLI(), command=list(argv) if argv is not None else None)
    except ConfigurationError as e:
        handle_configuration_error(e, debug_mode)
    except DataLookupError as e:
        handle_data_error(e, debug_mode)
    except ValueError as e:
        handle_value_error(e, debug_mode)
    except OSError as e:
        handle_os_error(e, debug_mode)
