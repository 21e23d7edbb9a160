from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Sequence

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

from challenge.clock import next_reset_at, time_until_reset, to_reference_day
from challenge.config import DEFAULT_SETTINGS, ChallengeSettings
from domain.archive import DAILY_YEAR_DATE_KEY, DAILY_YEAR_KEY, ArchiveStore
from domain.storage import StorageBackend

LOGGER = logging.getLogger("challenge.scheduler")

LAST_RESET_KEY = "doubleFeature_lastResetDate"
DAY_STATE_KEYS: Sequence[str] = (DAILY_YEAR_KEY, DAILY_YEAR_DATE_KEY)
JOB_ID = "daily-reset-check"

NewDayListener = Callable[[date], None]


class DailyResetScheduler:
    """Rolls the archive forward once per reference-zone day boundary."""

    def __init__(
        self,
        backend: StorageBackend,
        archive: ArchiveStore,
        *,
        settings: ChallengeSettings = DEFAULT_SETTINGS,
        day_state_keys: Iterable[str] = DAY_STATE_KEYS,
        scheduler: BaseScheduler | None = None,
    ) -> None:
        self._backend = backend
        self._archive = archive
        self._settings = settings
        self._day_state_keys = tuple(day_state_keys)
        self._scheduler = scheduler
        self._started_scheduler = False
        self._job = None
        self._lock = threading.Lock()
        self._listeners: List[NewDayListener] = []
        self._volatile_marker: Optional[str] = None

    def add_listener(self, listener: NewDayListener) -> None:
        self._listeners.append(listener)

    def reference_day(self, now: datetime | None = None) -> date:
        return to_reference_day(now, offset_hours=self._settings.reference_offset_hours)

    def last_reset_day(self) -> Optional[str]:
        stored = self._backend.get(LAST_RESET_KEY)
        return stored if stored is not None else self._volatile_marker

    def check(self, now: datetime | None = None) -> bool:
        """Run the boundary check; returns ``True`` when a new day was rolled in."""

        today = self.reference_day(now)
        marker = today.isoformat()
        with self._lock:
            if self.last_reset_day() == marker:
                return False
            if not self._backend.set(LAST_RESET_KEY, marker):
                LOGGER.warning("Unable to persist last reset day %s; keeping it in memory", marker)
            self._volatile_marker = marker
            appended = self._archive.append_yesterday(today)
            self._clear_day_state(marker)
            for listener in list(self._listeners):
                try:
                    listener(today)
                except Exception:
                    LOGGER.exception("New-day listener %r failed for %s", listener, marker)
        LOGGER.info(
            "Daily reset for %s (archived %s)",
            marker,
            f"{appended.date}={appended.year}" if appended else "nothing new",
        )
        return True

    def _clear_day_state(self, marker: str) -> None:
        # A daily year already handed out for the new day stays pinned.
        current_pin = self._backend.get(DAILY_YEAR_DATE_KEY) == marker
        for key in self._day_state_keys:
            if current_pin and key in (DAILY_YEAR_KEY, DAILY_YEAR_DATE_KEY):
                continue
            if not self._backend.remove(key):
                LOGGER.warning("Unable to clear per-day state '%s'", key)

    def next_reset_at(self, now: datetime | None = None) -> datetime:
        return next_reset_at(now, offset_hours=self._settings.reference_offset_hours)

    def time_until_reset(self, now: datetime | None = None) -> tuple[int, int, int]:
        return time_until_reset(now, offset_hours=self._settings.reference_offset_hours)

    @property
    def running(self) -> bool:
        return self._job is not None

    def start(self) -> None:
        """Schedule the recurring boundary check on the configured scheduler."""

        if self._job is not None:
            return
        if self._scheduler is None:
            self._scheduler = BackgroundScheduler(timezone="UTC")
        self._job = self._scheduler.add_job(
            self.check,
            "interval",
            seconds=self._settings.check_interval_seconds,
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()
            self._started_scheduler = True
        LOGGER.info("Daily reset check every %ss", self._settings.check_interval_seconds)

    def stop(self) -> None:
        if self._job is not None:
            try:
                self._job.remove()
            except JobLookupError:
                LOGGER.debug("Daily reset job already removed")
            self._job = None
        if self._started_scheduler and self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._started_scheduler = False


__all__ = ["DAY_STATE_KEYS", "DailyResetScheduler", "JOB_ID", "LAST_RESET_KEY"]
