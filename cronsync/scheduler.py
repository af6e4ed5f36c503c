"""Cron scheduler service backed by APScheduler."""

import logging
from typing import Callable, Optional

from apscheduler.schedulers import SchedulerNotRunningError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import OVERLAP_CONCURRENT, OVERLAP_POLICIES, OVERLAP_SKIP
from .exceptions import InvalidScheduleError, SchedulerError

logger = logging.getLogger(__name__)


def parse_schedule(expression: str, timezone: Optional[str] = None) -> CronTrigger:
    """Parse a 5-field crontab expression.

    Args:
        expression: Cron expression, e.g. ``"0 3 * * *"``
        timezone: Optional timezone name (defaults to the local timezone)

    Returns:
        CronTrigger for the expression

    Raises:
        InvalidScheduleError: If the expression cannot be parsed
    """
    try:
        return CronTrigger.from_crontab(expression, timezone=timezone)
    except (ValueError, TypeError) as e:
        raise InvalidScheduleError(expression, str(e)) from e


class CronScheduler:
    """Invokes registered callbacks on cron schedules.

    The overlap policy decides what happens when a job fires while its
    previous run is still executing: ``skip`` drops the new firing,
    ``concurrent`` runs both.
    """

    def __init__(
        self,
        overlap: str = OVERLAP_SKIP,
        max_concurrent_runs: int = 5,
        timezone: Optional[str] = None,
    ):
        """Initialize the scheduler.

        Args:
            overlap: Overlap policy ("skip" or "concurrent")
            max_concurrent_runs: Upper bound of simultaneous runs of one job
                with the "concurrent" policy
            timezone: Timezone used to evaluate cron expressions

        Raises:
            SchedulerError: If the scheduler cannot be constructed
        """
        if overlap not in OVERLAP_POLICIES:
            raise SchedulerError(f"Unknown overlap policy: {overlap!r}")
        self.overlap = overlap
        self.timezone = timezone
        max_instances = max_concurrent_runs if overlap == OVERLAP_CONCURRENT else 1

        # Jobs added before start() do not receive the scheduler job defaults
        self._job_options = {
            "coalesce": True,
            "max_instances": max_instances,
            "misfire_grace_time": 60,
        }

        try:
            if timezone:
                self._scheduler = BackgroundScheduler(timezone=timezone)
            else:
                self._scheduler = BackgroundScheduler()
        except Exception as e:
            raise SchedulerError(f"Cannot create scheduler: {e}") from e

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def register(self, expression: str, callback: Callable[[], None], name: str) -> str:
        """Register a zero-argument callback on a cron schedule.

        Args:
            expression: Cron expression
            callback: Function invoked on every firing
            name: Job name shown in logs

        Returns:
            Job id

        Raises:
            InvalidScheduleError: If the expression cannot be parsed
        """
        trigger = parse_schedule(expression, timezone=self.timezone)
        job = self._scheduler.add_job(callback, trigger, name=name, **self._job_options)
        logger.debug(f"Registered job {name} ({expression}) as {job.id}")
        return job.id

    def start(self) -> None:
        """Start the scheduler clock in a background thread."""
        self._scheduler.start()

    def shutdown(self, wait: bool = True) -> None:
        """Stop the scheduler clock.

        Args:
            wait: Wait for running jobs to finish
        """
        try:
            self._scheduler.shutdown(wait=wait)
        except SchedulerNotRunningError:
            logger.debug("Scheduler was not running")
