"""Daily crawl schedule.

An APScheduler CronTrigger decides when the next crawl fires; the crawl
service sleeps until then. The delay is recomputed after every cycle,
so a long crawl pushes nothing but that day's sleep.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from apscheduler.triggers.cron import CronTrigger

from pricecrawler.config import Settings

logger = structlog.get_logger(__name__)


class CrawlScheduler:
    """Computes how long to wait before the next daily crawl."""

    def __init__(self, hour: int = 0, minute: int = 0, timezone=None):
        """Initialize crawl scheduler.

        Args:
            hour: Hour of day the crawl runs at
            minute: Minute of that hour
            timezone: tzinfo or zone name; None uses the host's local zone
        """
        self.trigger = CronTrigger(hour=hour, minute=minute, second=0, timezone=timezone)
        self.timezone = self.trigger.timezone
        self.logger = logger.bind(service="crawl_scheduler")

    @classmethod
    def from_settings(cls, config: Settings) -> "CrawlScheduler":
        return cls(
            hour=config.RUN_AT_HOUR,
            minute=config.RUN_AT_MINUTE,
            timezone=config.CRAWL_TIMEZONE or None,
        )

    def next_run_time(self, now: Optional[datetime] = None) -> datetime:
        """Next fire time strictly after `now`."""
        now = self._localize(now)
        # Passing now as the previous fire time makes the trigger skip it
        next_run = self.trigger.get_next_fire_time(now, now)
        if next_run is None:
            raise RuntimeError("Crawl trigger produced no next fire time")
        return next_run

    def delay_until_next_run(self, now: Optional[datetime] = None) -> timedelta:
        """Whole-second, non-negative delay until the next scheduled crawl."""
        now = self._localize(now)
        next_run = self.next_run_time(now)
        seconds = int((next_run - now).total_seconds())
        delay = timedelta(seconds=max(0, seconds))
        self.logger.info(
            "next_crawl_scheduled",
            next_run=next_run.isoformat(),
            delay_seconds=int(delay.total_seconds()),
        )
        return delay

    def _localize(self, now: Optional[datetime]) -> datetime:
        if now is None:
            return datetime.now(self.timezone)
        if now.tzinfo is None:
            # pytz zones must localize, zoneinfo zones can simply be attached
            if hasattr(self.timezone, "localize"):
                return self.timezone.localize(now)
            return now.replace(tzinfo=self.timezone)
        return now
