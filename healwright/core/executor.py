"""Run scenario jobs on a bounded worker pool with whole-job retries.

This is the in-process runner: each job is a Python callable, and
``lifecycle_job`` turns a scenario body into one that runs inside
``ScenarioLifecycle.run``. It suits suites driven from Python directly.
The CLI uses the same executor with one behave process per job instead,
because behave itself is not thread-safe.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence

from healwright.constants import ScenarioStatus
from healwright.core.lifecycle import ScenarioLifecycle, ScenarioRun
from healwright.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

Job = Callable[[], ScenarioStatus]


@dataclass
class JobResult:
    """Outcome of one job after its final attempt."""

    name: str
    status: ScenarioStatus
    attempts: int
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.status is ScenarioStatus.FAILED

    @property
    def fatal(self) -> bool:
        """True when the job stopped on a configuration error and was not retried."""
        return isinstance(self.error, ConfigurationError)


class ScenarioExecutor:
    """Execute named jobs concurrently, one worker per job at a time.

    A job runs start to finish on a single worker thread, so worker-local
    state (scenario binding, browser session) never crosses jobs. A failed
    job is executed again from scratch, up to ``retries`` extra times.
    A ``ConfigurationError`` is fatal: the job fails at once, without retries.

    Parameters
    ----------
    workers : int
        Size of the worker pool
    retries : int
        Extra attempts granted to a failing job
    """

    def __init__(self, workers: int = 1, retries: int = 0) -> None:
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")

        if retries < 0:
            raise ValueError(f"retries must be >= 0, got {retries}")

        self.workers = workers
        self.retries = retries

    def run(self, jobs: Sequence[tuple[str, Job]]) -> list[JobResult]:
        """Execute all jobs and return their results in submission order."""
        if not jobs:
            return []

        logger.info("Running %d job(s) on %d worker(s)", len(jobs), self.workers)

        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="healwright-worker"
        ) as pool:
            futures = [pool.submit(self._execute, name, job) for name, job in jobs]
            return [future.result() for future in futures]

    def _execute(self, name: str, job: Job) -> JobResult:
        attempts = 0
        status = ScenarioStatus.FAILED
        error: BaseException | None = None

        while attempts <= self.retries:
            attempts += 1
            error = None

            try:
                status = job()
            except ConfigurationError as e:
                logger.error("Job '%s' stopped on a configuration error: %s", name, e)
                return JobResult(name=name, status=ScenarioStatus.FAILED, attempts=attempts, error=e)
            except Exception as e:
                logger.error("Job '%s' raised on attempt %d: %s", name, attempts, e)
                status = ScenarioStatus.FAILED
                error = e

            if status is not ScenarioStatus.FAILED:
                break

            if attempts <= self.retries:
                logger.info("Retrying '%s' (attempt %d of %d)", name, attempts + 1, self.retries + 1)

        return JobResult(name=name, status=status, attempts=attempts, error=error)


def lifecycle_job(
    lifecycle: ScenarioLifecycle,
    name: str,
    body: Callable[[ScenarioRun], None],
) -> Job:
    """Wrap an in-process scenario body so every attempt gets a fresh lifecycle.

    Teardown has already completed when the job returns. An error raised by
    ``body`` is re-raised afterwards so the executor keeps it on the result.
    """

    def job() -> ScenarioStatus:
        scenario = lifecycle.run(name, body)

        if scenario.error is not None:
            raise scenario.error

        return scenario.status

    return job
