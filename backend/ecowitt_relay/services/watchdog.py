"""
Liveness Watchdog
=================

Forces a process restart when the station stops reporting.

The relay has no way to fix a wedged station connection on its own, so it
exits with status 1 and lets the supervisor (systemd, Docker, Kubernetes)
start a fresh process.

POLICIES:
--------
- activity: checks once a second. Once the first report has arrived, the
  process exits if the report count has not moved for longer than the TTL.
- fixed: exits once, unconditionally, TTL after startup. A crude periodic
  restart kept for deployments that relied on it.

Both run as jobs on the application's AsyncIOScheduler, and stop with it.
"""

import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ecowitt_relay.errors import ConfigError

logger = logging.getLogger(__name__)


Terminator = Callable[[int], None]


def terminate_process(status: int) -> None:
    """Exit immediately, without waiting for in-flight requests."""
    logger.critical(f"terminating process with status {status}")
    logging.shutdown()
    os._exit(status)


class ActivityMonitor:
    """Thread-safe count of accepted reports."""

    def __init__(self):
        self._lock = threading.Lock()
        self._count = 0

    def record(self) -> int:
        """Count one report. Returns the new total."""
        with self._lock:
            self._count += 1
            return self._count

    @property
    def count(self) -> int:
        with self._lock:
            return self._count


# =============================================================================
# RESTART POLICIES
# =============================================================================

class RestartPolicy(ABC):
    """A background job that may terminate the process."""

    name: str = ""
    job_id: str = ""

    def __init__(self, ttl: float, terminate: Terminator = terminate_process):
        self.ttl = ttl
        self._terminate = terminate
        self._scheduler: Optional[BaseScheduler] = None

    @abstractmethod
    def start(self, scheduler: BaseScheduler) -> None:
        """Add the watchdog job to the scheduler."""

    def stop(self) -> None:
        """Remove the watchdog job, if it is still scheduled."""
        if self._scheduler is None:
            return
        if self._scheduler.get_job(self.job_id) is not None:
            self._scheduler.remove_job(self.job_id)
        self._scheduler = None
        logger.info("closing background routine")


class FixedRestartPolicy(RestartPolicy):
    """Exit once, TTL after start, whatever the traffic."""

    name = "fixed"
    job_id = "watchdog_fixed"

    def start(self, scheduler: BaseScheduler) -> None:
        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.ttl)
        scheduler.add_job(
            self.expire,
            trigger=DateTrigger(run_date=run_date),
            id=self.job_id,
            replace_existing=True,
        )
        self._scheduler = scheduler
        logger.info(f"Watchdog will restart the process at {run_date.isoformat()}")

    def expire(self) -> None:
        logger.info("ttl expired, forcing restart")
        self._terminate(1)


class ActivityRestartPolicy(RestartPolicy):
    """Exit when the report count stops moving for longer than the TTL."""

    name = "activity"
    job_id = "watchdog_activity"
    TICK_SECONDS = 1

    def __init__(
        self,
        ttl: float,
        monitor: ActivityMonitor,
        terminate: Terminator = terminate_process,
        clock: Callable[[], float] = time.monotonic
    ):
        super().__init__(ttl, terminate)
        self.monitor = monitor
        self._clock = clock
        self.last_count = monitor.count
        self.last_increment = clock()

    def start(self, scheduler: BaseScheduler) -> None:
        scheduler.add_job(
            self.check,
            trigger=IntervalTrigger(seconds=self.TICK_SECONDS),
            id=self.job_id,
            replace_existing=True,
        )
        self._scheduler = scheduler
        logger.info(f"Watchdog armed: restart after {self.ttl}s without reports")

    def check(self) -> bool:
        """
        One watchdog tick.

        Returns:
            True if the TTL expired and the process was told to terminate
        """
        count = self.monitor.count
        # Not armed until the station has reported at least once
        if count == 0:
            return False

        if count != self.last_count:
            self.last_count = count
            self.last_increment = self._clock()
            return False

        if self._clock() - self.last_increment > self.ttl:
            logger.info("ttl expired with no reports")
            self._terminate(1)
            return True
        return False


RESTART_POLICIES = (ActivityRestartPolicy.name, FixedRestartPolicy.name)


def build_restart_policy(
    name: str,
    ttl: Optional[float],
    monitor: ActivityMonitor,
    terminate: Terminator = terminate_process
) -> Optional[RestartPolicy]:
    """
    Build the configured restart policy.

    Returns:
        None when the TTL is unset or not positive (no watchdog)

    Raises:
        ConfigError: Unknown policy name
    """
    if name not in RESTART_POLICIES:
        raise ConfigError(
            f"unknown restart policy {name!r}, expected one of {', '.join(RESTART_POLICIES)}"
        )
    if ttl is None or ttl <= 0:
        return None
    if name == FixedRestartPolicy.name:
        return FixedRestartPolicy(ttl, terminate)
    return ActivityRestartPolicy(ttl, monitor, terminate)
