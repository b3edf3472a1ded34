"""Retention enforcement: delete partitions older than the cutoff, on demand or on a schedule."""

import logging
import os
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from daylog.models import CleanupResult
from daylog.partitions import parse_partition_filename

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 14
CLEANUP_COMPONENT = "LogCleanup"


class RetentionEngine:
    """Deletes partitions dated strictly before ``today - retention_days``."""

    def __init__(self, catalog, writer, retention_days: int = DEFAULT_RETENTION_DAYS,
                 time_func=None):
        self._catalog = catalog
        self._writer = writer
        self._retention_days = retention_days
        self._time_func = time_func or writer.now

    @property
    def retention_days(self) -> int:
        return self._retention_days

    def cutoff(self, now: datetime | None = None):
        now = now or self._time_func()
        return now.date() - timedelta(days=self._retention_days)

    def cleanup(self, now: datetime | None = None) -> CleanupResult:
        """Run one retention pass and audit the outcome to today's partition.

        Per-file problems are collected in ``errors``; a failure of the pass
        itself is audited at ERROR level and re-raised.
        """
        now = now or self._time_func()
        logger.info("Starting log cleanup process...")
        try:
            result = self._sweep(now)
            logger.info("Cleanup completed: %d deleted, %d kept, %d errors",
                        result.deleted, result.kept, len(result.errors))
            self._writer.append_audit(
                f"Log cleanup completed: {result.deleted} deleted, {result.kept} kept",
                "INFO",
                CLEANUP_COMPONENT,
                now=now,
            )
        except Exception as e:
            logger.exception("Error during log cleanup")
            try:
                self._writer.append_audit(f"Log cleanup failed: {e}", "ERROR", CLEANUP_COMPONENT,
                                         now=now)
            except Exception:
                logger.exception("Failed to log cleanup error")
            raise
        return result

    def _sweep(self, now: datetime) -> CleanupResult:
        cutoff = self.cutoff(now)
        result = CleanupResult()

        for name in self._catalog.candidate_files():
            day = parse_partition_filename(name)
            if day is None:
                result.errors.append({"file": name, "error": "Invalid file format"})
                continue

            if day >= cutoff:
                result.kept += 1
                result.kept_files.append(name)
                continue

            try:
                os.remove(os.path.join(self._catalog.root, name))
            except OSError as e:
                # an overlapping run may already have removed it
                logger.error("Error processing file %s: %s", name, e)
                result.errors.append({"file": name, "error": str(e)})
                continue
            result.deleted += 1
            result.deleted_files.append(name)
            logger.info("Deleted old log file: %s (%s)", name, day.isoformat())

        return result


class RetentionScheduler:
    """Owns the background scheduler that triggers ``RetentionEngine.cleanup``.

    ``start()`` registers a daily cron run and a one-shot run shortly after
    startup; ``stop()`` shuts the scheduler down. Both triggers call the same
    cleanup as the HTTP endpoint.
    """

    DAILY_JOB_ID = "daily-log-cleanup"
    STARTUP_JOB_ID = "startup-log-cleanup"

    def __init__(self, engine: RetentionEngine, hour: int = 2, minute: int = 0,
                 startup_delay: float = 5, timezone=None, scheduler=None):
        self._engine = engine
        self._hour = hour
        self._minute = minute
        self._startup_delay = startup_delay
        self._timezone = timezone
        if scheduler is None:
            scheduler = BackgroundScheduler(timezone=timezone) if timezone else BackgroundScheduler()
        self._scheduler = scheduler

    @property
    def scheduler(self):
        return self._scheduler

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def run_cleanup(self, trigger: str = "scheduled"):
        """Job body: run cleanup and log (never raise) the outcome."""
        logger.info("%s log cleanup started at %s", trigger.capitalize(), datetime.now().isoformat())
        try:
            result = self._engine.cleanup()
        except Exception:
            logger.exception("%s log cleanup failed", trigger.capitalize())
            return None
        logger.info("%s log cleanup completed successfully", trigger.capitalize())
        return result

    def start(self, now: datetime | None = None) -> None:
        self._scheduler.add_job(
            self.run_cleanup,
            "cron",
            hour=self._hour,
            minute=self._minute,
            args=["scheduled"],
            id=self.DAILY_JOB_ID,
            replace_existing=True,
        )
        if self._startup_delay is not None and self._startup_delay >= 0:
            run_at = (now or datetime.now().astimezone()) + timedelta(seconds=self._startup_delay)
            self._scheduler.add_job(
                self.run_cleanup,
                "date",
                run_date=run_at,
                args=["initial"],
                id=self.STARTUP_JOB_ID,
                replace_existing=True,
            )
        self._scheduler.start()
        logger.info("Cron job scheduled: daily log cleanup at %02d:%02d (%s)",
                    self._hour, self._minute, self._timezone or "local time")

    def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Retention scheduler stopped")
