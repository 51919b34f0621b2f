"""
ingest/scheduler.py

Long-running entry point that triggers the live and daily jobs.

Responsibilities
----------------
- Describe each recurring job by the minutes (and optionally the hour) it
  fires at, and compute its next run time.
- Run each job on its own thread, guarded so the same job never overlaps
  with itself.
- Check database connectivity on startup and drain the pool on
  SIGINT/SIGTERM.

Schedule
--------
- Regional update: every 30 minutes, at :00 and :30.
- Regional daily totals: daily at 00:02.

Notes
-----
- Times are evaluated in the process's local time zone.
- Shutdown does not wait for an in-flight job to finish.
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from .config import DatabaseSettings, configure_logging
from .jobs import run_daily_totals, run_live_update
from .load import Datastore

logger = logging.getLogger(__name__)


class RecurringJob:
    """A job that fires at fixed minutes of every hour, or of one hour a day."""

    def __init__(
        self,
        name: str,
        func: Callable[[], object],
        minutes: tuple[int, ...],
        hour: int | None = None,
    ):
        if not minutes or any(not 0 <= m < 60 for m in minutes):
            raise ValueError(f"invalid minutes for {name}: {minutes!r}")
        if hour is not None and not 0 <= hour < 24:
            raise ValueError(f"invalid hour for {name}: {hour!r}")
        self.name = name
        self.func = func
        self.minutes = tuple(sorted(set(minutes)))
        self.hour = hour
        self._guard = threading.Lock()

    def next_run(self, after: datetime) -> datetime:
        """Return the first fire time strictly after ``after``."""
        base = after.replace(second=0, microsecond=0)
        # Two days of minute slots always contains the next daily fire time.
        for offset in range(1, 2 * 24 * 60 + 1):
            candidate = base + timedelta(minutes=offset)
            if candidate.minute not in self.minutes:
                continue
            if self.hour is not None and candidate.hour != self.hour:
                continue
            return candidate
        raise RuntimeError("Unreachable")

    def run_once(self) -> bool:
        """Run the job unless a previous invocation is still in progress.

        The scheduler's own timer thread calls this serially, so the guard
        only matters when the job is also triggered from outside that
        thread (a manual run or another caller); such a call is skipped
        while the timed run is in flight.

        Returns:
            bool: True if the job ran, False if it was skipped.
        """
        if not self._guard.acquire(blocking=False):
            logger.warning("%s is still running; skipping this tick", self.name)
            return False
        try:
            self.func()
        except Exception:
            logger.exception("Unhandled error in %s", self.name)
        finally:
            self._guard.release()
        return True


class Scheduler:
    """Owns the recurring jobs and their timer threads."""

    def __init__(self, jobs: list[RecurringJob], clock: Callable[[], datetime] = datetime.now):
        self.jobs = jobs
        self.clock = clock
        self.stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

    def _loop(self, job: RecurringJob):
        while not self.stop_event.is_set():
            due = job.next_run(self.clock())
            wait = (due - self.clock()).total_seconds()
            if self.stop_event.wait(max(wait, 0)):
                break
            job.run_once()

    def start(self):
        for job in self.jobs:
            thread = threading.Thread(target=self._loop, args=(job,), name=job.name, daemon=True)
            thread.start()
            self._threads.append(thread)
            logger.info("%s scheduled, next run at %s", job.name, job.next_run(self.clock()))

    def stop(self):
        self.stop_event.set()

    def wait(self):
        """Block until :meth:`stop` is called."""
        self.stop_event.wait()


def build_scheduler(store: Datastore) -> Scheduler:
    """Create the scheduler with the regional update and daily totals jobs."""
    return Scheduler(
        [
            RecurringJob("Regional Update", lambda: run_live_update(store), minutes=(0, 30)),
            RecurringJob(
                "Regional Daily Totals", lambda: run_daily_totals(store), minutes=(2,), hour=0
            ),
        ]
    )


def main(argv=None):
    """Start the scheduler and block until a termination signal arrives.

    Returns:
        int: Exit code; 1 if the startup connectivity check fails.
    """
    configure_logging()
    logger.info("Starting Carbon Intensity scheduler")

    store = Datastore.from_settings(DatabaseSettings.from_env(use_defaults=True))
    try:
        store.ping()
    except SQLAlchemyError as exc:
        logger.error("Database connection error: %s", exc)
        store.close()
        return 1
    logger.info("Database connected successfully")

    scheduler = build_scheduler(store)

    def handle_signal(signum, frame):
        logger.info("%s received, shutting down gracefully", signal.Signals(signum).name)
        scheduler.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    scheduler.start()
    logger.info("Scheduler is running. Press Ctrl+C to exit.")
    scheduler.wait()

    store.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
